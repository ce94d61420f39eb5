"""
Five-axis score breakdown used to explain a match to the applicant.

The weights here do not sum to the same penalties as the primary match score
in ``eligibility_service``; the primary score stays canonical and this
breakdown is reported with ``approximate=True``.
"""
from typing import Optional

from ..models.eligibility import MatchScoreBreakdown
from ..models.offer import Offer
from ..models.profile import UserProfile
from .eligibility_service import EligibilityService, eligibility_service, matches_region

AGE_MAX = 10
INCOME_MAX = 30
HOUSEHOLD_MAX = 10
HOUSING_OWNED_MAX = 20
LOCATION_MAX = 30

INELIGIBLE_REASON = "자격 조건 미달"


def reason_for(score: int) -> str:
    if score >= 90:
        return "매우 적합한 청약입니다"
    if score >= 75:
        return "적합한 청약입니다"
    if score >= 60:
        return "조건부 적합입니다"
    return "자격은 있으나 조건이 다소 맞지 않습니다"


class DetailedScorer:
    """Breaks a match down into age, income, household, housing and location axes"""

    def __init__(self, eligibility: Optional[EligibilityService] = None):
        self.eligibility = eligibility or eligibility_service

    def score(self, profile: UserProfile, offer: Offer) -> MatchScoreBreakdown:
        if not self.eligibility.is_eligible(profile, offer):
            return MatchScoreBreakdown(
                offer_id=offer.id,
                offer_name=offer.name,
                is_eligible=False,
                overall_score=0,
                reason=INELIGIBLE_REASON
            )

        age = self.age_score(profile, offer)
        income = self.income_score(profile, offer)
        household = self.household_score(profile, offer)
        housing = self.housing_owned_score(profile, offer)
        location = self.location_score(profile, offer)

        deductions = (
            (AGE_MAX - age)
            + (INCOME_MAX - income)
            + (HOUSEHOLD_MAX - household)
            + (HOUSING_OWNED_MAX - housing)
            + (LOCATION_MAX - location)
        )
        overall = max(0, 100 - deductions)

        return MatchScoreBreakdown(
            offer_id=offer.id,
            offer_name=offer.name,
            is_eligible=True,
            overall_score=overall,
            age_score=age,
            income_score=income,
            household_score=household,
            housing_owned_score=housing,
            location_score=location,
            reason=reason_for(overall)
        )

    def age_score(self, profile: UserProfile, offer: Offer) -> int:
        if offer.min_age is None and offer.max_age is None:
            return AGE_MAX
        # Applicants close to either age limit score lower
        if offer.min_age is not None and profile.age < offer.min_age + 5:
            return 7
        if offer.max_age is not None and profile.age > offer.max_age - 5:
            return 7
        return AGE_MAX

    def income_score(self, profile: UserProfile, offer: Offer) -> int:
        if offer.min_income is None and offer.max_income is None:
            return INCOME_MAX
        if offer.min_income is None or offer.max_income is None:
            return 25

        income_range = offer.max_income - offer.min_income
        if income_range <= 0:
            return 20
        ratio = (profile.annual_income - offer.min_income) / income_range
        if 0.2 <= ratio <= 0.8:
            return INCOME_MAX
        if 0.1 <= ratio <= 0.9:
            return 25
        return 20

    def household_score(self, profile: UserProfile, offer: Offer) -> int:
        lower, upper = offer.min_household_members, offer.max_household_members
        if lower is None and upper is None:
            return HOUSEHOLD_MAX
        if lower is None or upper is None:
            return 8

        distance = abs(profile.household_members - (lower + upper) // 2)
        if distance == 0:
            return HOUSEHOLD_MAX
        if distance <= 1:
            return 8
        return 6

    def housing_owned_score(self, profile: UserProfile, offer: Offer) -> int:
        cap = offer.max_housing_owned
        if cap is None:
            return HOUSING_OWNED_MAX
        if cap == 0:
            return HOUSING_OWNED_MAX if profile.housing_owned == 0 else 0

        ratio = profile.housing_owned / cap
        if ratio <= 0.5:
            return HOUSING_OWNED_MAX
        if ratio <= 0.75:
            return 15
        return 10

    def location_score(self, profile: UserProfile, offer: Offer) -> int:
        if profile.location_preferences is None or offer.region is None:
            return 15
        if matches_region(profile.preferred_regions(), offer.region):
            return LOCATION_MAX
        return 5


# Global detailed scorer instance
detailed_scorer = DetailedScorer()
