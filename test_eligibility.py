"""
Tests for eligibility checks, the primary match score and the score breakdown
"""
import pytest

from cheongyak.models.offer import Offer
from cheongyak.models.profile import UserProfile
from cheongyak.services.eligibility_service import EligibilityService
from cheongyak.services.score_breakdown import DetailedScorer, reason_for


service = EligibilityService()
scorer = DetailedScorer(service)


def make_profile(**overrides) -> UserProfile:
    data = {
        "age": 30,
        "annual_income": 50_000_000,
        "household_members": 3,
        "housing_owned": 0,
        "location_preferences": "서울,경기",
    }
    data.update(overrides)
    return UserProfile(**data)


def test_profile_and_offer_from_example_are_eligible(profile, seoul_offer):
    assert service.is_eligible(profile, seoul_offer)
    assert service.calculate_match_score(profile, seoul_offer) > 0


@pytest.mark.parametrize("age,expected", [(19, True), (65, True), (18, False), (66, False)])
def test_age_bounds_are_inclusive(age, expected):
    offer = Offer(min_age=19, max_age=65)
    assert service.is_eligible(make_profile(age=age), offer) is expected


def test_missing_bounds_are_unrestricted():
    offer = Offer()
    for profile in (make_profile(age=0, annual_income=0), make_profile(age=150, annual_income=10**12, housing_owned=9)):
        assert service.is_eligible(profile, offer)
        assert service.get_eligibility_details(profile, offer).overall_eligible


def test_one_sided_bounds():
    offer = Offer(min_income=30_000_000)
    assert service.check_income(make_profile(annual_income=10**12), offer)
    assert not service.check_income(make_profile(annual_income=29_999_999), offer)


def test_each_failing_criterion_is_reported_independently():
    offer = Offer(
        min_age=19, max_age=39,
        min_income=0, max_income=60_000_000,
        min_household_members=1, max_household_members=4,
        max_housing_owned=0
    )
    cases = {
        "age_eligible": make_profile(age=40),
        "income_eligible": make_profile(annual_income=60_000_001),
        "household_eligible": make_profile(household_members=5),
        "housing_owned_eligible": make_profile(housing_owned=1),
    }
    for failing_flag, profile in cases.items():
        details = service.get_eligibility_details(profile, offer)
        flags = details.model_dump()
        assert flags[failing_flag] is False
        assert details.overall_eligible is False
        assert details.match_score == 0
        for other in cases:
            if other != failing_flag:
                assert flags[other] is True


def test_full_score_without_penalties():
    offer = Offer(min_income=0, max_income=100_000_000, region="서울")
    assert service.calculate_match_score(make_profile(), offer) == 100


def test_housing_owned_penalty():
    offer = Offer(max_housing_owned=2)
    assert service.calculate_match_score(make_profile(housing_owned=1), offer) == 95
    assert service.calculate_match_score(make_profile(housing_owned=0), offer) == 100


@pytest.mark.parametrize("income,expected", [
    (40_000_000, 90),   # position 0.0
    (45_000_000, 90),   # just under 10%
    (47_000_000, 100),  # inside the middle band
    (93_000_000, 100),  # inside the middle band
    (95_000_000, 90),   # above 90%
    (100_000_000, 90),  # top of range
])
def test_income_edge_penalty(income, expected):
    offer = Offer(min_income=40_000_000, max_income=100_000_000)
    assert service.calculate_match_score(make_profile(annual_income=income), offer) == expected


def test_zero_width_income_range_has_no_penalty():
    offer = Offer(min_income=50_000_000, max_income=50_000_000)
    assert service.calculate_match_score(make_profile(annual_income=50_000_000), offer) == 100


def test_location_penalty_uses_substring_tokens():
    profile = make_profile(location_preferences=" 경기 , 서울")
    assert service.calculate_match_score(profile, Offer(region="서울특별시")) == 100
    assert service.calculate_match_score(profile, Offer(region="부산")) == 85
    # No preferences or no region means no penalty
    assert service.calculate_match_score(make_profile(location_preferences=None), Offer(region="부산")) == 100
    assert service.calculate_match_score(profile, Offer(region=None)) == 100


def test_all_penalties_combined():
    offer = Offer(
        min_age=19, max_age=39,
        min_income=40_000_000, max_income=100_000_000,
        min_household_members=1, max_household_members=5,
        max_housing_owned=1, region="부산"
    )
    profile = make_profile(age=20, annual_income=45_000_000, housing_owned=1)
    assert service.calculate_match_score(profile, offer) == 70


def test_adding_penalty_condition_never_increases_score():
    base = Offer(min_income=0, max_income=100_000_000)
    profile = make_profile(housing_owned=1, annual_income=99_000_000)
    without_cap = service.calculate_match_score(profile, base)
    with_cap = service.calculate_match_score(profile, base.model_copy(update={"max_housing_owned": 3}))
    with_region = service.calculate_match_score(
        profile, base.model_copy(update={"max_housing_owned": 3, "region": "제주"})
    )
    assert 0 <= with_region <= with_cap <= without_cap <= 100


def test_rank_offers_orders_eligible_offers_by_score():
    best = Offer(name="best", region="서울")
    worse = Offer(name="worse", region="부산")
    ineligible = Offer(name="ineligible", max_age=20)
    ranked = service.rank_offers(make_profile(), [worse, ineligible, best])
    assert [offer.name for offer, _ in ranked] == ["best", "worse"]
    assert [score for _, score in ranked] == [100, 85]


def test_breakdown_for_ideal_match():
    offer = Offer(
        name="힐스테이트", min_age=19, max_age=39,
        min_income=0, max_income=100_000_000,
        min_household_members=1, max_household_members=5,
        max_housing_owned=0, region="서울"
    )
    result = scorer.score(make_profile(), offer)
    assert result.is_eligible
    assert (result.age_score, result.income_score, result.household_score,
            result.housing_owned_score, result.location_score) == (10, 30, 10, 20, 30)
    assert result.overall_score == 100
    assert result.reason == "매우 적합한 청약입니다"
    assert result.approximate is True


def test_breakdown_for_edge_match():
    offer = Offer(
        min_age=19, max_age=39,
        min_income=40_000_000, max_income=100_000_000,
        min_household_members=1, max_household_members=5,
        max_housing_owned=1, region="부산"
    )
    profile = make_profile(age=20, annual_income=45_000_000, housing_owned=1)
    result = scorer.score(profile, offer)
    assert (result.age_score, result.income_score, result.household_score,
            result.housing_owned_score, result.location_score) == (7, 20, 10, 10, 5)
    assert result.overall_score == 52
    assert result.reason == "자격은 있으나 조건이 다소 맞지 않습니다"


def test_breakdown_for_ineligible_profile():
    result = scorer.score(make_profile(age=70), Offer(max_age=65))
    assert not result.is_eligible
    assert result.overall_score == 0
    assert result.reason == "자격 조건 미달"


def test_breakdown_partial_bounds():
    offer = Offer(min_income=10_000_000, max_household_members=4, max_housing_owned=4)
    result = scorer.score(make_profile(housing_owned=3, location_preferences=None), offer)
    assert result.income_score == 25
    assert result.household_score == 8
    assert result.housing_owned_score == 15
    assert result.location_score == 15


@pytest.mark.parametrize("score,reason", [
    (90, "매우 적합한 청약입니다"),
    (75, "적합한 청약입니다"),
    (60, "조건부 적합입니다"),
    (59, "자격은 있으나 조건이 다소 맞지 않습니다"),
])
def test_reason_tiers(score, reason):
    assert reason_for(score) == reason


def test_profile_update_returns_new_snapshot():
    profile = make_profile()
    older = profile.updated(age=31)
    assert older.age == 31
    assert profile.age == 30
    assert profile.preferred_regions() == ["서울", "경기"]


def test_compare_offers_summarises_prices_and_scores():
    profile = make_profile()
    seoul = Offer(name="서울 자이", region="서울", min_price=300_000_000, max_price=500_000_000)
    busan = Offer(name="부산 롯데캐슬", region="부산", min_price=200_000_000)
    youth = Offer(name="청년 주택", region="서울", max_age=25, max_price=250_000_000)

    comparison = service.compare_offers(profile, [busan, seoul, youth])

    assert comparison.total_count == 3
    assert [entry.offer.name for entry in comparison.offers] == ["부산 롯데캐슬", "서울 자이", "청년 주택"]
    assert [entry.details.match_score for entry in comparison.offers] == [85, 100, 0]
    assert comparison.offers[2].details.age_eligible is False
    summary = comparison.summary
    assert summary.lowest_min_price == 200_000_000
    assert summary.highest_max_price == 500_000_000
    assert summary.highest_match_score == 100
    assert summary.lowest_match_score == 0
    assert summary.best_match == "서울 자이"


def test_compare_offers_tie_keeps_first_offer():
    profile = make_profile()
    first = Offer(name="첫째", region="서울")
    second = Offer(name="둘째", region="경기")

    summary = service.compare_offers(profile, [first, second]).summary

    assert summary.best_match == "첫째"
    assert summary.lowest_min_price is None
    assert summary.highest_max_price is None


def test_compare_no_offers():
    comparison = service.compare_offers(make_profile(), [])
    assert comparison.total_count == 0
    assert comparison.summary.best_match is None
