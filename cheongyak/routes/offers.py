"""
API routes for browsing housing subscription offers
"""
from typing import List, Optional
from fastapi import APIRouter, HTTPException, Query

from ..models.offer import Offer, Provenance
from ..services.mongo_service import mongo_service

router = APIRouter(prefix="/offers", tags=["offers"])


@router.get("", response_model=List[Offer])
async def list_active_offers(
    data_source: Optional[Provenance] = Query(None, description="REGISTRY, DOCUMENT or MERGED; omit for all")
):
    """
    List active offers, newest first
    """
    try:
        return await mongo_service.find_active_offers(data_source)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to list offers: {str(e)}")


@router.get("/{offer_id}", response_model=Offer)
async def get_offer(offer_id: str):
    try:
        offer = await mongo_service.get_offer(offer_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get offer: {str(e)}")
    if not offer:
        raise HTTPException(status_code=404, detail=f"Offer not found: {offer_id}")
    return offer
