"""
CLI entrypoint for scheduled jobs. Run from cron, e.g.:

  python -m craguard.jobs scan                 # re-scan all current inventories
  python -m craguard.jobs expire --all         # expire overdue vulnerabilities everywhere
  python -m craguard.jobs expire --project <uuid>
  python -m craguard.jobs enrich [--project <uuid>]

Daily: 0 3 * * * cd /path/to/craguard && .venv/bin/python -m craguard.jobs scan
"""

import argparse
import asyncio
import logging
import sys
from uuid import UUID

import httpx
from sqlalchemy.orm import Session

from craguard.core.config import Settings, get_settings
from craguard.core.database import SessionLocal
from craguard.repositories.projects import ProjectRepository
from craguard.services.factory import build_enrichment, build_remediation, build_sweep

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


async def run_scan(db: Session, settings: Settings) -> int:
    async with httpx.AsyncClient() as client:
        result = await build_sweep(db, client, settings).run()
    logger.info(
        "Scan completed: projects=%s components=%s new_vulnerabilities=%s",
        result.stats.projects_scanned,
        result.stats.components_scanned,
        result.stats.new_vulnerabilities_found,
    )
    for error in result.errors or []:
        logger.warning("Scan error: %s", error)
    return 0


def run_expire(db: Session, settings: Settings, project_id: UUID | None) -> int:
    service = build_remediation(db, settings)
    project_ids = [project_id] if project_id else [p.id for p in ProjectRepository(db).list_all()]
    total = 0
    for pid in project_ids:
        total += service.expire_overdue(pid)
        db.commit()
    logger.info("Expiry completed: projects=%s expired=%s", len(project_ids), total)
    return 0


async def run_enrich(db: Session, settings: Settings, project_id: UUID | None) -> int:
    async with httpx.AsyncClient() as client:
        result = await build_enrichment(db, client, settings).run(project_id)
    db.commit()
    logger.info(
        "Enrichment completed: enriched=%s skipped=%s failed=%s",
        result.enriched,
        result.skipped,
        result.failed,
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="craguard.jobs", description="CRA Guard scheduled jobs.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("scan", help="Re-scan every project's current inventory against OSV")

    expire = sub.add_parser("expire", help="Move overdue vulnerabilities to Ignored")
    target = expire.add_mutually_exclusive_group(required=True)
    target.add_argument("--project", type=UUID, help="Project id")
    target.add_argument("--all", action="store_true", help="Every project")

    enrich = sub.add_parser("enrich", help="Backfill NVD scores (up to 50 per run)")
    enrich.add_argument("--project", type=UUID, default=None, help="Limit to one project")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    db = SessionLocal()
    try:
        if args.command == "scan":
            return asyncio.run(run_scan(db, settings))
        if args.command == "expire":
            return run_expire(db, settings, args.project)
        return asyncio.run(run_enrich(db, settings, args.project))
    except Exception as e:
        db.rollback()
        logger.exception("Job %s failed: %s", args.command, e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
