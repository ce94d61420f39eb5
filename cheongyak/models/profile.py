"""
Pydantic models for applicant profiles
"""
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict


class UserProfile(BaseModel):
    """Applicant profile snapshot used for eligibility evaluation"""
    user_id: Optional[str] = Field(None, description="Owner of the profile")
    age: int = Field(..., ge=0, le=150, description="Applicant's age")
    annual_income: int = Field(..., ge=0, description="Annual household income (KRW)")
    household_members: int = Field(..., ge=1, description="Number of household members")
    housing_owned: int = Field(0, ge=0, description="Number of homes currently owned")
    location_preferences: Optional[str] = Field(
        None, description="Comma separated preferred regions, most preferred first"
    )

    def preferred_regions(self) -> List[str]:
        """Preferred region tokens in order, trimmed"""
        if self.location_preferences is None:
            return []
        return [token.strip() for token in self.location_preferences.split(',')]

    def updated(self, **changes) -> "UserProfile":
        """Return a new profile snapshot with the given fields replaced"""
        return self.model_validate({**self.model_dump(), **changes})

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "user_id": "user-1",
                "age": 32,
                "annual_income": 50000000,
                "household_members": 3,
                "housing_owned": 0,
                "location_preferences": "서울,경기"
            }
        }
    )
