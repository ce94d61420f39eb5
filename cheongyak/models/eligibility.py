"""
Pydantic models for eligibility results
"""
from typing import List, Optional
from pydantic import BaseModel, Field

from .offer import Offer
from .profile import UserProfile


class EligibilityDetails(BaseModel):
    """Per-criterion eligibility flags and the primary match score"""
    age_eligible: bool
    income_eligible: bool
    household_eligible: bool
    housing_owned_eligible: bool
    overall_eligible: bool
    match_score: int = Field(..., ge=0, le=100)


class MatchScoreBreakdown(BaseModel):
    """Five-axis explanatory score; the primary match score is canonical"""
    offer_id: Optional[str] = None
    offer_name: Optional[str] = None
    is_eligible: bool
    overall_score: int = Field(..., ge=0, le=100)
    age_score: int = Field(0, ge=0, le=10)
    income_score: int = Field(0, ge=0, le=30)
    household_score: int = Field(0, ge=0, le=10)
    housing_owned_score: int = Field(0, ge=0, le=20)
    location_score: int = Field(0, ge=0, le=30)
    reason: str
    approximate: bool = Field(default=True)


class EligibilityCheckRequest(BaseModel):
    """Request to evaluate a profile against one offer"""
    profile: UserProfile
    offer_id: str


class EligibilityCheckResponse(BaseModel):
    offer_id: str
    details: EligibilityDetails
    breakdown: MatchScoreBreakdown


class CompareOffersRequest(BaseModel):
    """Request to compare 2 to 5 offers side by side for one profile"""
    profile: UserProfile
    offer_ids: List[str] = Field(..., min_length=2, max_length=5)


class ComparedOffer(BaseModel):
    offer: Offer
    details: EligibilityDetails


class ComparisonSummary(BaseModel):
    """Price range and score spread across the compared offers"""
    lowest_min_price: Optional[int] = None
    highest_max_price: Optional[int] = None
    highest_match_score: Optional[int] = None
    lowest_match_score: Optional[int] = None
    best_match: Optional[str] = Field(None, description="Name of the highest-scoring offer")


class OfferComparison(BaseModel):
    offers: List[ComparedOffer]
    total_count: int
    summary: ComparisonSummary
