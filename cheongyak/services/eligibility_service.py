"""
Eligibility service for checking applicant profiles against offer bounds
"""
import logging
from typing import List, Optional, Tuple

from ..models.eligibility import (
    ComparedOffer,
    ComparisonSummary,
    EligibilityDetails,
    OfferComparison
)
from ..models.offer import Offer
from ..models.profile import UserProfile

logger = logging.getLogger(__name__)

MAX_SCORE = 100
HOUSING_OWNED_PENALTY = 5
INCOME_EDGE_PENALTY = 10
LOCATION_MISMATCH_PENALTY = 15


def within_bounds(value: int, lower: Optional[int], upper: Optional[int]) -> bool:
    """Inclusive bounds check; a missing bound is unrestricted"""
    if lower is not None and value < lower:
        return False
    if upper is not None and value > upper:
        return False
    return True


def matches_region(preferred_regions: List[str], region: str) -> bool:
    """True when any preferred token appears in the region label"""
    return any(token in region for token in preferred_regions)


class EligibilityService:
    """Service for deciding eligibility and computing the primary match score"""

    def check_age(self, profile: UserProfile, offer: Offer) -> bool:
        return within_bounds(profile.age, offer.min_age, offer.max_age)

    def check_income(self, profile: UserProfile, offer: Offer) -> bool:
        return within_bounds(profile.annual_income, offer.min_income, offer.max_income)

    def check_household(self, profile: UserProfile, offer: Offer) -> bool:
        return within_bounds(
            profile.household_members,
            offer.min_household_members,
            offer.max_household_members
        )

    def check_housing_owned(self, profile: UserProfile, offer: Offer) -> bool:
        return within_bounds(profile.housing_owned, None, offer.max_housing_owned)

    def is_eligible(self, profile: UserProfile, offer: Offer) -> bool:
        """Eligible when every bounded criterion holds"""
        return (
            self.check_age(profile, offer)
            and self.check_income(profile, offer)
            and self.check_household(profile, offer)
            and self.check_housing_owned(profile, offer)
        )

    def calculate_match_score(self, profile: UserProfile, offer: Offer) -> int:
        """
        Primary match score in [0, 100]

        Args:
            profile: Applicant profile snapshot
            offer: Offer to evaluate

        Returns:
            0 when ineligible, otherwise 100 minus the applicable penalties
        """
        if not self.is_eligible(profile, offer):
            return 0

        score = MAX_SCORE

        if offer.max_housing_owned is not None and profile.housing_owned > 0:
            score -= HOUSING_OWNED_PENALTY

        if offer.min_income is not None and offer.max_income is not None:
            income_range = offer.max_income - offer.min_income
            position = profile.annual_income - offer.min_income
            if position < income_range * 0.1 or position > income_range * 0.9:
                score -= INCOME_EDGE_PENALTY

        if profile.location_preferences is not None and offer.region is not None:
            if not matches_region(profile.preferred_regions(), offer.region):
                score -= LOCATION_MISMATCH_PENALTY

        return max(0, score)

    def get_eligibility_details(self, profile: UserProfile, offer: Offer) -> EligibilityDetails:
        """Per-criterion flags together with the overall verdict and score"""
        return EligibilityDetails(
            age_eligible=self.check_age(profile, offer),
            income_eligible=self.check_income(profile, offer),
            household_eligible=self.check_household(profile, offer),
            housing_owned_eligible=self.check_housing_owned(profile, offer),
            overall_eligible=self.is_eligible(profile, offer),
            match_score=self.calculate_match_score(profile, offer)
        )

    def rank_offers(self, profile: UserProfile, offers: List[Offer]) -> List[Tuple[Offer, int]]:
        """Eligible offers paired with their score, best first"""
        ranked = [
            (offer, self.calculate_match_score(profile, offer))
            for offer in offers
            if self.is_eligible(profile, offer)
        ]
        ranked.sort(key=lambda item: item[1], reverse=True)
        logger.debug(f"Ranked {len(ranked)} of {len(offers)} offers as eligible")
        return ranked

    def compare_offers(self, profile: UserProfile, offers: List[Offer]) -> OfferComparison:
        """Side-by-side eligibility for several offers, with a price and score summary"""
        compared = [
            ComparedOffer(offer=offer, details=self.get_eligibility_details(profile, offer))
            for offer in offers
        ]
        if not compared:
            return OfferComparison(offers=[], total_count=0, summary=ComparisonSummary())

        min_prices = [offer.min_price for offer in offers if offer.min_price is not None]
        max_prices = [offer.max_price for offer in offers if offer.max_price is not None]
        scores = [entry.details.match_score for entry in compared]
        # Ties keep the earlier offer
        best = max(compared, key=lambda entry: entry.details.match_score)

        summary = ComparisonSummary(
            lowest_min_price=min(min_prices) if min_prices else None,
            highest_max_price=max(max_prices) if max_prices else None,
            highest_match_score=max(scores),
            lowest_match_score=min(scores),
            best_match=best.offer.name
        )
        return OfferComparison(offers=compared, total_count=len(compared), summary=summary)


# Global eligibility service instance
eligibility_service = EligibilityService()
