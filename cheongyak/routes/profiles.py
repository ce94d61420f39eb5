"""
API routes for applicant profiles
"""
from fastapi import APIRouter, HTTPException

from ..models.profile import UserProfile
from ..services.mongo_service import mongo_service

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.put("/{user_id}", response_model=UserProfile)
async def save_profile(user_id: str, profile: UserProfile):
    """
    Create or replace the profile used to score a user's uploads
    """
    try:
        return await mongo_service.save_profile(profile.updated(user_id=user_id))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to save profile: {str(e)}")


@router.get("/{user_id}", response_model=UserProfile)
async def get_profile(user_id: str):
    try:
        profile = await mongo_service.get_profile(user_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get profile: {str(e)}")
    if not profile:
        raise HTTPException(status_code=404, detail=f"Profile not found: {user_id}")
    return profile
