"""
Analysis orchestrator: drives one uploaded document through classification,
OCR, criteria extraction, scoring, duplicate reconciliation and caching
"""
import logging
import time
from typing import Optional, Protocol

from ..config import settings
from ..exceptions import DocumentNotFoundError
from ..models.document import (
    AnalysisOutcome,
    Document,
    OcrQuality,
    OcrQualityResult,
    ProcessingStatus
)
from ..models.offer import get_current_utc_time, new_object_id
from ..models.profile import UserProfile
from .cache_service import AnalysisCache, analysis_cache
from .criteria_extractor import CriteriaExtractor, criteria_extractor
from .duplicate_service import DuplicateReconciler, duplicate_reconciler
from .eligibility_service import EligibilityService, eligibility_service
from .mongo_service import mongo_service
from .ocr_service import OcrService, ocr_service
from .offer_service import build_offer_from_criteria
from .task_queue import AnalysisWorkerPool, analysis_worker_pool

logger = logging.getLogger(__name__)

MAX_ERROR_MESSAGE_LENGTH = 500


class DocumentStore(Protocol):
    async def get_document(self, document_id: str) -> Optional[Document]:
        ...

    async def update_document_status(
        self,
        document_id: str,
        status: ProcessingStatus,
        error_message: Optional[str] = None,
        expected_status: Optional[ProcessingStatus] = None
    ) -> bool:
        ...

    async def save_analysis_outcome(self, outcome: AnalysisOutcome) -> AnalysisOutcome:
        ...


def failure_reason(error: BaseException) -> str:
    message = str(error) or type(error).__name__
    return message[:MAX_ERROR_MESSAGE_LENGTH]


class AnalysisOrchestrator:
    """Runs document analyses; every run ends COMPLETED or FAILED"""

    def __init__(
        self,
        store: Optional[DocumentStore] = None,
        cache: Optional[AnalysisCache] = None,
        ocr: Optional[OcrService] = None,
        extractor: Optional[CriteriaExtractor] = None,
        eligibility: Optional[EligibilityService] = None,
        reconciler: Optional[DuplicateReconciler] = None,
        pool: Optional[AnalysisWorkerPool] = None,
        model_name: Optional[str] = None
    ):
        self.store = store or mongo_service
        self.cache = cache or analysis_cache
        self.ocr = ocr or ocr_service
        self.extractor = extractor or criteria_extractor
        self.eligibility = eligibility or eligibility_service
        self.reconciler = reconciler or duplicate_reconciler
        self.pool = pool or analysis_worker_pool
        self.model_name = model_name or settings.openrouter_model

    def start_analysis(self, document_id: str, profile: Optional[UserProfile]) -> None:
        """Schedule an analysis and return immediately"""
        self.pool.submit(lambda: self.analyze(document_id, profile), name=document_id)
        logger.info(f"Analysis scheduled for document {document_id}")

    async def analyze(self, document_id: str, profile: Optional[UserProfile]) -> None:
        """
        Analyse one document; failures are recorded on the document, never raised

        Args:
            document_id: Document to analyse
            profile: Uploader's profile snapshot, or None to skip scoring
        """
        started = time.monotonic()
        try:
            await self._run(document_id, profile, started)
        except Exception as e:
            logger.exception(f"Analysis failed for document {document_id}: {e}")
            await self._mark_failed(document_id, e)

    async def _run(self, document_id: str, profile: Optional[UserProfile], started: float) -> None:
        document = await self.store.get_document(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document not found: {document_id}")

        if document.status != ProcessingStatus.PENDING:
            logger.warning(
                f"Document {document_id} is {document.status.value}, not PENDING; analysis skipped"
            )
            return

        # Only one run may move a document out of PENDING
        claimed = await self.store.update_document_status(
            document_id,
            ProcessingStatus.PROCESSING,
            expected_status=ProcessingStatus.PENDING
        )
        if not claimed:
            logger.warning(f"Document {document_id} was claimed by another run; analysis skipped")
            return

        logger.info(f"Analysis started for document {document_id}")

        cached = await self.cache.get(document.fingerprint)
        if cached is not None:
            outcome = cached.model_copy(update={
                "id": new_object_id(),
                "document_id": document_id,
                "created_at": get_current_utc_time()
            })
            await self.store.save_analysis_outcome(outcome)
            await self.store.update_document_status(document_id, ProcessingStatus.COMPLETED)
            await self.cache.touch(document.fingerprint)
            logger.info(f"Document {document_id} completed from cache")
            return

        needs_ocr = await self.ocr.detect_needs_ocr(document)
        text = await self.ocr.extract_text(document, needs_ocr)

        if needs_ocr:
            quality = self.ocr.assess_quality(text)
            logger.info(f"OCR quality for document {document_id}: {quality.quality.value}")
        else:
            quality = OcrQualityResult(quality=OcrQuality.HIGH)

        criteria = await self.extractor.extract(text)
        offer = build_offer_from_criteria(criteria, document_id)

        is_eligible = False
        match_score = 0
        if profile is not None:
            is_eligible = self.eligibility.is_eligible(profile, offer)
            match_score = self.eligibility.calculate_match_score(profile, offer)

        await self.reconciler.reconcile(criteria, document_id, offer)

        outcome = AnalysisOutcome(
            document_id=document_id,
            **criteria.model_dump(),
            match_score=match_score,
            is_eligible=is_eligible,
            ocr_quality=quality.quality,
            ocr_warning=quality.warning,
            extracted_text=text[:settings.extracted_text_limit],
            ai_model=self.model_name,
            processing_time_ms=int((time.monotonic() - started) * 1000)
        )
        await self.store.save_analysis_outcome(outcome)
        await self.cache.put(document.fingerprint, outcome)
        await self.store.update_document_status(document_id, ProcessingStatus.COMPLETED)

        logger.info(
            f"Document {document_id} completed in {outcome.processing_time_ms}ms "
            f"(eligible: {is_eligible}, score: {match_score})"
        )

    async def _mark_failed(self, document_id: str, error: BaseException) -> None:
        try:
            await self.store.update_document_status(
                document_id,
                ProcessingStatus.FAILED,
                failure_reason(error)
            )
        except Exception as e:
            logger.error(f"Could not record failure for document {document_id}: {e}")


# Global analysis orchestrator instance
analysis_orchestrator = AnalysisOrchestrator()
