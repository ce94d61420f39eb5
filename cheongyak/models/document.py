"""
Pydantic models for uploaded announcement documents and their analysis
"""
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict

from .offer import get_current_utc_time, new_object_id


class ProcessingStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class OcrQuality(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class OcrQualityResult(BaseModel):
    """Quality grade of extracted text with an optional user-facing warning"""
    quality: OcrQuality
    warning: Optional[str] = None


class Document(BaseModel):
    """Uploaded announcement file and its processing state"""
    id: str = Field(default_factory=new_object_id, description="Document identifier")
    user_id: str = Field(..., description="Uploader")
    file_name: str = Field(..., description="Sanitized original file name")
    file_path: str = Field(..., description="Location of the stored file")
    file_size: int = Field(..., ge=0)
    content_type: str = Field(..., description="application/pdf, image/jpeg or image/png")
    fingerprint: str = Field(..., description="SHA-256 hex digest of the file bytes")
    status: ProcessingStatus = Field(default=ProcessingStatus.PENDING)
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=get_current_utc_time)
    updated_at: datetime = Field(default_factory=get_current_utc_time)

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")


class AnalysisOutcome(BaseModel):
    """Result of analysing one document; at most one per document"""
    id: str = Field(default_factory=new_object_id)
    document_id: str = Field(..., description="Analysed document")

    # Extracted attributes
    name: Optional[str] = None
    region: Optional[str] = None
    address: Optional[str] = None
    housing_type: Optional[str] = None
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    min_income: Optional[int] = None
    max_income: Optional[int] = None
    min_household_members: Optional[int] = None
    max_household_members: Optional[int] = None
    max_housing_owned: Optional[int] = None
    special_qualifications: Optional[str] = None
    preference_categories: Optional[str] = None
    min_price: Optional[int] = None
    max_price: Optional[int] = None
    application_period: Optional[str] = None

    # Match against the uploader's profile
    match_score: int = Field(default=0, ge=0, le=100)
    is_eligible: bool = Field(default=False)

    ocr_quality: OcrQuality = Field(default=OcrQuality.HIGH)
    ocr_warning: Optional[str] = None
    extracted_text: Optional[str] = None
    ai_model: Optional[str] = None
    processing_time_ms: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=get_current_utc_time)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "document_id": "65a1f0c2e4b0a1b2c3d4e5f6",
                "name": "힐스테이트 광교",
                "region": "경기",
                "housing_type": "아파트",
                "min_age": 19,
                "max_income": 70000000,
                "match_score": 90,
                "is_eligible": True,
                "ocr_quality": "HIGH",
                "ai_model": "google/gemini-2.0-flash-001",
                "processing_time_ms": 4210
            }
        }
    )
