"""
Exception hierarchy for the document analysis pipeline
"""


class CheongyakError(Exception):
    """Base error for the matching system"""


class DocumentValidationError(CheongyakError):
    """Upload rejected before entering the pipeline (type or size)"""


class DocumentNotFoundError(CheongyakError):
    """Referenced document does not exist"""


class ExternalServiceError(CheongyakError):
    """An external capability (OCR, AI, registry feed) failed"""

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable


class OcrError(ExternalServiceError):
    """OCR capability failed to produce a result"""


class LLMServiceError(ExternalServiceError):
    """AI generation request failed"""


class ServiceUnavailableError(CheongyakError):
    """Circuit breaker is open for the named dependency"""

    def __init__(self, breaker_name: str):
        super().__init__(f"Service temporarily unavailable: {breaker_name}")
        self.breaker_name = breaker_name


class CriteriaExtractionError(CheongyakError):
    """AI response could not be parsed into offer criteria"""
