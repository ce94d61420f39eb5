"""
API routes for the Housing Subscription Matching System
"""

from .documents import router as documents_router
from .eligibility import router as eligibility_router
from .offers import router as offers_router
from .profiles import router as profiles_router

__all__ = [
    "documents_router",
    "eligibility_router",
    "offers_router",
    "profiles_router"
]
