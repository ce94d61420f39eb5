"""
Services package for the Housing Subscription Matching System
"""

from .mongo_service import MongoService
from .pdf_service import PDFService
from .llm_service import LLMService
from .eligibility_service import EligibilityService
from .score_breakdown import DetailedScorer
from .ocr_service import OcrService
from .criteria_extractor import CriteriaExtractor
from .cache_service import AnalysisCache
from .duplicate_service import DuplicateReconciler
from .offer_service import OfferService
from .analysis_service import AnalysisOrchestrator

__all__ = [
    "MongoService",
    "PDFService",
    "LLMService",
    "EligibilityService",
    "DetailedScorer",
    "OcrService",
    "CriteriaExtractor",
    "AnalysisCache",
    "DuplicateReconciler",
    "OfferService",
    "AnalysisOrchestrator"
]
