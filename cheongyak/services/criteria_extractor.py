"""
Criteria extraction from announcement text using the AI generation service
"""
import json
import logging
import re
from typing import Optional, Protocol

from ..config import settings
from ..exceptions import CriteriaExtractionError
from ..models.offer import OfferCriteria
from .llm_service import llm_service

logger = logging.getLogger(__name__)

STRING_FIELDS = (
    "name",
    "region",
    "address",
    "housing_type",
    "special_qualifications",
    "preference_categories",
    "application_period",
)

NUMBER_FIELDS = (
    "min_age",
    "max_age",
    "min_income",
    "max_income",
    "min_household_members",
    "max_household_members",
    "max_housing_owned",
    "min_price",
    "max_price",
)


class TextGenerator(Protocol):
    """AI capability used for extraction"""

    async def generate(self, prompt: str, temperature: float, max_tokens: int) -> str:
        ...


def strip_code_fences(content: str) -> str:
    """Remove surrounding markdown code fences from a model response"""
    content = content.strip()
    if content.startswith("```json"):
        content = content[len("```json"):]
    elif content.startswith("```"):
        content = content[len("```"):]
    if content.endswith("```"):
        content = content[:-len("```")]
    return content.strip()


def extract_string_field(content: str, field: str) -> Optional[str]:
    match = re.search(rf'"{field}"\s*:\s*"((?:[^"\\]|\\.)*)"', content)
    if not match:
        return None
    raw = match.group(1)
    try:
        value = json.loads(f'"{raw}"')
    except ValueError:
        value = raw
    value = value.strip()
    return value or None


def extract_number_field(content: str, field: str) -> Optional[int]:
    # A bare JSON number, or a quoted value made only of digits and thousands separators.
    # Anything else ("1억 2천만원", "열아홉", 1.5) resolves to None.
    match = re.search(
        rf'"{field}"\s*:\s*(?:"(\d[\d,]*)"|(\d+(?:,\d{{3}})*)(?=\s*(?:[,}}\]]|$)))',
        content
    )
    if not match:
        return None
    digits = match.group(1) or match.group(2)
    return int(digits.replace(",", ""))


class CriteriaExtractor:
    """Turns raw announcement text into structured offer criteria"""

    def __init__(self, generator: Optional[TextGenerator] = None):
        self.generator = generator or llm_service
        self.prompt_template = settings.criteria_prompt_template

    def build_prompt(self, raw_text: str) -> str:
        return self.prompt_template.format(document_text=raw_text)

    async def extract(self, raw_text: str) -> OfferCriteria:
        """
        Extract offer criteria from document text

        Args:
            raw_text: Text produced by OCR or direct PDF extraction

        Returns:
            OfferCriteria with missing fields left as None

        Raises:
            CriteriaExtractionError: when nothing usable can be parsed
        """
        prompt = self.build_prompt(raw_text)
        response = await self.generator.generate(
            prompt,
            temperature=settings.extraction_temperature,
            max_tokens=settings.extraction_max_tokens
        )
        criteria = self.parse_response(response)
        logger.info(f"Extracted criteria for offer: {criteria.name}")
        return criteria

    def parse_response(self, response: str) -> OfferCriteria:
        """Scan each field independently so one malformed value does not lose the rest"""
        content = strip_code_fences(response or "")
        if not content:
            raise CriteriaExtractionError("Failed to parse AI response: empty response")

        values = {}
        for field in STRING_FIELDS:
            values[field] = extract_string_field(content, field)
        for field in NUMBER_FIELDS:
            values[field] = extract_number_field(content, field)

        if all(value is None for value in values.values()):
            logger.error(f"No recognisable fields in AI response: {content[:200]}")
            raise CriteriaExtractionError("Failed to parse AI response: no recognisable fields")

        return OfferCriteria(**values)


# Global criteria extractor instance
criteria_extractor = CriteriaExtractor()
