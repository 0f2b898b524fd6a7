"""Background work handed off by request handlers.

Each task opens its own session and HTTP client because the request's are
closed by the time it runs. Failures are logged and not retried; the next
invocation picks up whatever is still pending.
"""

import logging
from uuid import UUID

import httpx

from craguard.core.config import get_settings
from craguard.core.database import session_scope
from craguard.services.factory import build_enrichment

logger = logging.getLogger(__name__)


async def run_enrichment_task(project_id: UUID | None = None) -> None:
    settings = get_settings()
    try:
        with session_scope() as db:
            async with httpx.AsyncClient() as client:
                result = await build_enrichment(db, client, settings).run(project_id)
    except Exception:
        logger.exception(
            "Background enrichment failed",
            extra={"project_id": str(project_id) if project_id else None},
        )
        return
    logger.info(
        "Background enrichment completed: enriched=%s failed=%s",
        result.enriched,
        result.failed,
    )
