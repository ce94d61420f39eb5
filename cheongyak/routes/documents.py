"""
API routes for announcement upload and analysis polling
"""
import asyncio
import logging
import uuid
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, HTTPException, UploadFile, File, Form

from ..config import settings
from ..exceptions import DocumentValidationError, ServiceUnavailableError
from ..models.document import Document, ProcessingStatus
from ..services.analysis_service import analysis_orchestrator, failure_reason
from ..services.cache_service import analysis_cache
from ..services.mongo_service import mongo_service
from ..services.resilience import breaker_registry
from ..services.task_queue import analysis_worker_pool
from ..utils.validators import (
    compute_fingerprint,
    extract_text_snippet,
    sanitize_filename,
    validate_upload
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


def store_upload(content: bytes, filename: str) -> Path:
    """Write upload bytes under the upload directory with a unique name"""
    directory = Path(settings.upload_directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{uuid.uuid4().hex}_{filename}"
    path.write_bytes(content)
    return path


@router.post("")
async def upload_document(
    user_id: str = Form(..., description="Uploading user"),
    file: UploadFile = File(..., description="Announcement PDF or image")
):
    """
    Upload an offer announcement and start its analysis
    """
    try:
        if not file.filename:
            raise HTTPException(status_code=400, detail="No filename provided")

        content = await file.read()

        try:
            content_type = validate_upload(content, file.content_type)
        except DocumentValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))

        # Must run before the document is created; nothing is stored if it fails
        profile = await mongo_service.get_profile(user_id)
        if profile is None:
            logger.info(f"No profile for user {user_id}; the document will not be scored")

        safe_filename = sanitize_filename(file.filename)
        path = await asyncio.to_thread(store_upload, content, safe_filename)

        document = Document(
            user_id=user_id,
            file_name=safe_filename,
            file_path=str(path),
            file_size=len(content),
            content_type=content_type,
            fingerprint=compute_fingerprint(content)
        )
        await mongo_service.create_document(document)

        try:
            analysis_orchestrator.start_analysis(document.id, profile)
        except ServiceUnavailableError as e:
            await mongo_service.update_document_status(document.id, ProcessingStatus.FAILED, str(e))
            raise HTTPException(status_code=503, detail=str(e))
        except Exception as e:
            await mongo_service.update_document_status(
                document.id, ProcessingStatus.FAILED, failure_reason(e)
            )
            raise

        logger.info(f"Document uploaded successfully: {document.id}")

        return {
            "message": "Document uploaded successfully",
            "document_id": document.id,
            "file_name": document.file_name,
            "status": document.status.value
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to upload document: {e}")
        raise HTTPException(status_code=500, detail=f"Upload failed: {str(e)}")


@router.get("/health/breakers")
async def get_pipeline_health():
    """
    Circuit breaker states and worker pool statistics
    """
    return {
        "breakers": breaker_registry.snapshot(),
        "workers": analysis_worker_pool.get_stats()
    }


@router.get("/{document_id}")
async def get_document_status(document_id: str):
    """
    Get the processing status of an uploaded document
    """
    try:
        document = await mongo_service.get_document(document_id)

        if not document:
            raise HTTPException(status_code=404, detail=f"Document not found: {document_id}")

        status_info = {
            "document_id": document.id,
            "file_name": document.file_name,
            "status": document.status.value,
            "uploaded_at": document.created_at,
            "updated_at": document.updated_at
        }

        if document.status == ProcessingStatus.FAILED:
            status_info["error_message"] = document.error_message

        return status_info

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get status: {str(e)}")


@router.get("/{document_id}/analysis")
async def get_document_analysis(document_id: str, include_text: Optional[bool] = False):
    """
    Get the analysis outcome of a completed document
    """
    try:
        outcome = await mongo_service.get_analysis_outcome(document_id)

        if not outcome:
            raise HTTPException(status_code=404, detail=f"Analysis not available: {document_id}")

        result = outcome.model_dump(exclude={"extracted_text"})
        if include_text:
            result["extracted_text"] = outcome.extracted_text
        else:
            result["text_preview"] = extract_text_snippet(outcome.extracted_text)
        return result

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get analysis: {str(e)}")


@router.delete("/cache/{fingerprint}")
async def invalidate_cached_analysis(fingerprint: str):
    """
    Drop a cached analysis so the next identical upload is analysed again
    """
    try:
        removed = await analysis_cache.invalidate(fingerprint)
        return {"fingerprint": fingerprint, "invalidated": removed}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to invalidate cache: {str(e)}")
