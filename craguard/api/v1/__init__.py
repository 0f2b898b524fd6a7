"""API v1 routes."""

from fastapi import APIRouter

from craguard.api.v1 import auth, enrichment, health, reports, sbom, scans, vulnerabilities

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(sbom.router, prefix="/sbom", tags=["sbom"])
router.include_router(vulnerabilities.router, prefix="/vulnerabilities", tags=["vulnerabilities"])
router.include_router(scans.router, prefix="/scans", tags=["scans"])
router.include_router(enrichment.router, prefix="/enrichment", tags=["enrichment"])
router.include_router(reports.router, prefix="/reports", tags=["reports"])
