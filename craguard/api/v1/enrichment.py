"""Manual trigger for NVD score enrichment."""

from typing import Annotated

from fastapi import APIRouter, Depends

from craguard.api.v1.auth import AuthenticatedUser
from craguard.api.v1.deps import DbSession, get_enrichment_pipeline
from craguard.schemas.enrichment import EnrichmentRequest, EnrichmentResult
from craguard.services.enrichment import EnrichmentPipeline

router = APIRouter()


@router.post("", response_model=EnrichmentResult)
async def enrich_vulnerabilities(
    body: EnrichmentRequest,
    pipeline: Annotated[EnrichmentPipeline, Depends(get_enrichment_pipeline)],
    db: DbSession,
    _user: AuthenticatedUser,
) -> EnrichmentResult:
    """
    Enrich up to 50 vulnerabilities lacking an NVD score, optionally for one project.
    Call again to work through a larger backlog.
    """
    result = await pipeline.run(body.project_id)
    db.commit()
    return result
