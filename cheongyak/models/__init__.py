"""
Models package for the Housing Subscription Matching System
"""

from .profile import UserProfile

from .offer import (
    HousingType,
    Provenance,
    Offer,
    OfferCriteria
)

from .document import (
    ProcessingStatus,
    OcrQuality,
    OcrQualityResult,
    Document,
    AnalysisOutcome
)

from .eligibility import (
    EligibilityDetails,
    MatchScoreBreakdown,
    EligibilityCheckRequest,
    EligibilityCheckResponse,
    CompareOffersRequest,
    ComparedOffer,
    ComparisonSummary,
    OfferComparison
)

__all__ = [
    # Profile models
    "UserProfile",

    # Offer models
    "HousingType",
    "Provenance",
    "Offer",
    "OfferCriteria",

    # Document models
    "ProcessingStatus",
    "OcrQuality",
    "OcrQualityResult",
    "Document",
    "AnalysisOutcome",

    # Eligibility models
    "EligibilityDetails",
    "MatchScoreBreakdown",
    "EligibilityCheckRequest",
    "EligibilityCheckResponse",
    "CompareOffersRequest",
    "ComparedOffer",
    "ComparisonSummary",
    "OfferComparison"
]
