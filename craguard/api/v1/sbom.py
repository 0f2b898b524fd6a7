"""SBOM upload (JSON body or multipart file) and version history."""

import json
import logging
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

from craguard.api.v1.auth import AuthenticatedUser
from craguard.api.v1.deps import AppSettings, get_ingestion_service, get_sbom_version_repository
from craguard.core.errors import AppError, ValidationError
from craguard.repositories.sbom_versions import SbomVersionRepository
from craguard.schemas.sbom import SbomVersionListResponse, SbomVersionOut, UploadRequest, UploadResult
from craguard.services.ingestion import IngestionService
from craguard.services.tasks import run_enrichment_task

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_UPLOAD_FILE_BYTES = 50 * 1024 * 1024  # 50 MB

STORAGE_FAILURE_MESSAGE = "SBOM upload failed; nothing was stored."


def _is_upload_file(obj: object) -> bool:
    """True if obj is an uploaded file (UploadFile or file-like with filename and read)."""
    if isinstance(obj, UploadFile):
        return True
    return (
        hasattr(obj, "read")
        and callable(getattr(obj, "read", None))
        and hasattr(obj, "filename")
    )


def _parse_project_id(value: Any) -> UUID:
    try:
        return UUID(str(value))
    except (TypeError, ValueError) as e:
        raise ValidationError("projectId must be a UUID") from e


async def _read_upload(request: Request) -> tuple[UUID, str | bytes | dict]:
    """Project id and raw SBOM content from a JSON body or a multipart form."""
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type == "application/json":
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ValidationError(f"Invalid JSON body: {e!s}") from e
        try:
            upload = UploadRequest.model_validate(body)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(p) for p in first.get("loc", ()))
            raise ValidationError(f"Invalid upload request ({field}): {first.get('msg')}") from e
        return upload.project_id, upload.file_content

    if content_type == "multipart/form-data":
        form = await request.form()
        project_id = _parse_project_id(form.get("projectId"))
        file = form.get("file")
        if file is None or not _is_upload_file(file):
            # Some clients send the file under another name; use first file-like part.
            file = next((v for v in form.values() if _is_upload_file(v)), None)
        if file is None:
            raise ValidationError("Multipart request must include a 'file' part with the SBOM JSON.")
        content = await file.read()
        if len(content) > MAX_UPLOAD_FILE_BYTES:
            raise ValidationError(
                f"File size must not exceed {MAX_UPLOAD_FILE_BYTES // (1024 * 1024)} MB."
            )
        return project_id, content

    raise ValidationError("Content-Type must be application/json or multipart/form-data.")


@router.post(
    "/upload",
    response_model=UploadResult,
    response_model_exclude_none=True,
    status_code=201,
)
async def upload_sbom(
    request: Request,
    background_tasks: BackgroundTasks,
    service: Annotated[IngestionService, Depends(get_ingestion_service)],
    user: AuthenticatedUser,
    settings: AppSettings,
) -> UploadResult | JSONResponse:
    """
    Ingest a CycloneDX or SPDX JSON SBOM for a project.

    - **JSON body**: `{"projectId": "<uuid>", "fileContent": "<SBOM text>"}`
    - **File upload**: `multipart/form-data` with a `projectId` field and a `file` part.

    Failures answer with the same body shape and `success: false`. NVD enrichment of
    new findings runs in the background after the response is sent.
    """
    try:
        project_id, content = await _read_upload(request)
        result = await service.upload(project_id, content, uploaded_by=user.id)
    except AppError as e:
        failure = UploadResult(success=False, message=e.message)
        return JSONResponse(
            status_code=e.status_code,
            content=failure.model_dump(by_alias=True, exclude_none=True),
        )
    except SQLAlchemyError:
        logger.exception("SBOM upload failed in the database")
        failure = UploadResult(success=False, message=STORAGE_FAILURE_MESSAGE)
        return JSONResponse(
            status_code=500,
            content=failure.model_dump(by_alias=True, exclude_none=True),
        )

    if settings.ENRICH_AFTER_UPLOAD and result.vulnerabilities_inserted > 0:
        background_tasks.add_task(run_enrichment_task, project_id)
    return result


@router.get("/{project_id}/versions", response_model=SbomVersionListResponse)
def list_versions(
    project_id: UUID,
    versions: Annotated[SbomVersionRepository, Depends(get_sbom_version_repository)],
    _user: AuthenticatedUser,
) -> SbomVersionListResponse:
    """SBOM version history for a project, newest first."""
    rows = versions.list_for_project(project_id)
    return SbomVersionListResponse(versions=[SbomVersionOut.model_validate(r) for r in rows])
