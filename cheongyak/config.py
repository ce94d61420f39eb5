"""
Configuration settings for the Housing Subscription Matching System
"""
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # MongoDB Configuration
    mongodb_url: str = Field(default="mongodb://localhost:27017")
    mongodb_db_name: str = Field(default="cheongyak_db")

    # OpenRouter API Configuration
    openrouter_api_key: str = Field(default="")
    openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1")
    openrouter_model: str = Field(default="google/gemini-2.0-flash-001")

    # Application Configuration
    app_name: str = Field(default="Housing Subscription Matching System")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=True)
    log_level: str = Field(default="INFO")

    # File Upload Configuration
    upload_directory: str = Field(default="uploads")
    max_file_size: int = Field(default=10485760)  # 10MB
    allowed_content_types: str = Field(default="application/pdf,image/jpeg,image/png")

    # API Configuration
    api_prefix: str = Field(default="/api/v1")
    cors_origins: str = Field(default="http://localhost:3000,http://localhost:8080")

    # Result cache
    cache_backend: str = Field(default="mongo", description="mongo or memory")
    cache_ttl_days: int = Field(default=30)

    # Resilience
    breaker_failure_threshold: int = Field(default=5)
    breaker_recovery_timeout: float = Field(default=30.0)  # seconds
    retry_attempts: int = Field(default=2)
    retry_backoff_base: float = Field(default=0.5)  # seconds
    retry_backoff_max: float = Field(default=8.0)  # seconds
    ocr_timeout: float = Field(default=120.0)
    llm_timeout: float = Field(default=60.0)
    registry_timeout: float = Field(default=30.0)

    # Analysis workers
    analysis_workers: int = Field(default=16)
    analysis_queue_size: int = Field(default=1000)

    # OCR Configuration
    ocr_language: str = Field(default="kor+eng")
    ocr_dpi: int = Field(default=300)
    ocr_text_threshold: int = Field(default=50, description="Characters per page below which a PDF needs OCR")

    # Criteria extraction
    extraction_temperature: float = Field(default=0.2)
    extraction_max_tokens: int = Field(default=2000)
    extracted_text_limit: int = Field(default=10000)

    # Offer lifecycle
    expiry_sweep_interval: float = Field(default=3600.0)  # seconds
    registry_default_min_age: int = Field(default=19)
    registry_default_min_household: int = Field(default=1)
    registry_default_max_housing_owned: int = Field(default=0)

    # Criteria extraction prompt template
    criteria_prompt_template: str = Field(
        default="""다음은 청약 공고문에서 추출한 텍스트입니다. 이 텍스트를 분석하여 청약 자격 조건을 JSON 형식으로 추출해주세요.

텍스트:
{document_text}

다음 JSON 형식으로 응답해주세요 (값이 없으면 null로 표시):
{{
  "name": "청약 이름",
  "region": "지역 (예: 서울, 경기, 인천 등)",
  "address": "상세 주소",
  "housing_type": "주택 유형 (아파트, 오피스텔, 빌라, 타운하우스 중 하나)",
  "min_age": 최소 나이 (숫자),
  "max_age": 최대 나이 (숫자),
  "min_income": 최소 연소득 (원 단위 숫자),
  "max_income": 최대 연소득 (원 단위 숫자),
  "min_household_members": 최소 세대원 수 (숫자),
  "max_household_members": 최대 세대원 수 (숫자),
  "max_housing_owned": 최대 주택 소유 수 (숫자),
  "special_qualifications": "특별 자격 조건",
  "preference_categories": "우선 공급 대상",
  "min_price": 최소 분양가 (원 단위 숫자),
  "max_price": 최대 분양가 (원 단위 숫자),
  "application_period": "신청 기간 (YYYY-MM-DD ~ YYYY-MM-DD)"
}}

JSON 형식만 응답하고, 다른 설명은 포함하지 마세요."""
    )

    def get_allowed_content_types_list(self) -> List[str]:
        """Get allowed upload content types as a list"""
        return [ctype.strip() for ctype in self.allowed_content_types.split(',') if ctype.strip()]

    def get_cors_origins_list(self) -> List[str]:
        """Get CORS origins as a list"""
        if ',' in self.cors_origins:
            return [origin.strip() for origin in self.cors_origins.split(',')]
        return [self.cors_origins.strip()]

    def validate_required(self) -> None:
        """Validate settings needed by the running service"""
        if not self.openrouter_api_key or self.openrouter_api_key == "your_openrouter_api_key_here":
            raise ValueError(
                "OPENROUTER_API_KEY must be set in environment variables or .env file"
            )
        if self.cache_backend not in ("mongo", "memory"):
            raise ValueError(f"Unknown cache backend: {self.cache_backend}")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create global settings instance
settings = Settings()
