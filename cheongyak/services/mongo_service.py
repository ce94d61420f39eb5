"""
MongoDB service for database operations
"""
from datetime import date, datetime, timezone
from typing import List, Optional, Dict, Any, Type, TypeVar
from motor.motor_asyncio import AsyncIOMotorClient
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING
import logging

from ..config import settings
from ..models.document import Document, AnalysisOutcome, ProcessingStatus
from ..models.offer import Offer, Provenance
from ..models.profile import UserProfile

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def to_mongo(model: BaseModel) -> Dict[str, Any]:
    """Serialise a model for storage, mapping ``id`` onto ``_id``"""
    data = model.model_dump(mode="json")
    if "id" in data:
        data["_id"] = data.pop("id")
    return data


def from_mongo(model_cls: Type[ModelT], doc: Dict[str, Any]) -> ModelT:
    data = dict(doc)
    if "_id" in data:
        data["id"] = str(data.pop("_id"))
    return model_cls(**data)


class MongoService:
    """Service for MongoDB operations"""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db = None

    async def connect(self):
        """Connect to MongoDB"""
        try:
            self.client = AsyncIOMotorClient(settings.mongodb_url)
            self.db = self.client[settings.mongodb_db_name]

            # Test connection
            await self.client.admin.command('ping')
            await self.ensure_indexes()
            logger.info("Connected to MongoDB successfully")

        except Exception as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise

    async def close(self):
        """Close MongoDB connection"""
        if self.client:
            self.client.close()
            logger.info("MongoDB connection closed")

    async def health_check(self) -> bool:
        """Check MongoDB connection health"""
        try:
            await self.client.admin.command('ping')
            return True
        except Exception:
            return False

    async def ensure_indexes(self):
        """Create the indexes the pipeline relies on"""
        await self.db.documents.create_index([("fingerprint", ASCENDING)])
        await self.db.analysis_outcomes.create_index([("document_id", ASCENDING)], unique=True)
        await self.db.offers.create_index([("region", ASCENDING), ("is_active", ASCENDING)])
        await self.db.offers.create_index(
            [("external_id", ASCENDING)],
            unique=True,
            partialFilterExpression={"external_id": {"$type": "string"}}
        )
        await self.db.profiles.create_index([("user_id", ASCENDING)], unique=True)
        await self.db.analysis_cache.create_index([("expires_at", ASCENDING)], expireAfterSeconds=0)

    def cache_collection(self):
        return self.db.analysis_cache

    # Document operations
    async def create_document(self, document: Document) -> Document:
        """Create a new document record"""
        try:
            await self.db.documents.insert_one(to_mongo(document))
            logger.info(f"Document created: {document.id}")
            return document
        except Exception as e:
            logger.error(f"Failed to create document: {e}")
            raise

    async def get_document(self, document_id: str) -> Optional[Document]:
        """Get document by ID"""
        try:
            doc = await self.db.documents.find_one({"_id": document_id})
            if doc:
                return from_mongo(Document, doc)
            return None
        except Exception as e:
            logger.error(f"Failed to get document: {e}")
            raise

    async def update_document_status(
        self,
        document_id: str,
        status: ProcessingStatus,
        error_message: Optional[str] = None,
        expected_status: Optional[ProcessingStatus] = None
    ) -> bool:
        """Update document processing status; with expected_status the update only applies from that state"""
        try:
            update_data = {
                "status": status.value,
                "updated_at": datetime.now(timezone.utc).isoformat()
            }
            if error_message is not None:
                update_data["error_message"] = error_message

            query = {"_id": document_id}
            if expected_status is not None:
                query["status"] = expected_status.value

            result = await self.db.documents.update_one(
                query,
                {"$set": update_data}
            )
            return result.modified_count > 0
        except Exception as e:
            logger.error(f"Failed to update document status: {e}")
            raise

    # Analysis outcome operations
    async def save_analysis_outcome(self, outcome: AnalysisOutcome) -> AnalysisOutcome:
        """Store the outcome for a document, replacing any earlier one"""
        try:
            data = to_mongo(outcome)
            data.pop("_id")
            await self.db.analysis_outcomes.update_one(
                {"document_id": outcome.document_id},
                {"$set": data, "$setOnInsert": {"_id": outcome.id}},
                upsert=True
            )
            logger.info(f"Analysis outcome saved for document: {outcome.document_id}")
            return outcome
        except Exception as e:
            logger.error(f"Failed to save analysis outcome: {e}")
            raise

    async def get_analysis_outcome(self, document_id: str) -> Optional[AnalysisOutcome]:
        """Get the outcome for a document"""
        try:
            doc = await self.db.analysis_outcomes.find_one({"document_id": document_id})
            if doc:
                return from_mongo(AnalysisOutcome, doc)
            return None
        except Exception as e:
            logger.error(f"Failed to get analysis outcome: {e}")
            raise

    # Offer operations
    async def create_offer(self, offer: Offer) -> Offer:
        """Create a new offer"""
        try:
            await self.db.offers.insert_one(to_mongo(offer))
            logger.info(f"Offer created: {offer.id} ({offer.data_source.value})")
            return offer
        except Exception as e:
            logger.error(f"Failed to create offer: {e}")
            raise

    async def update_offer(self, offer: Offer) -> Offer:
        """Replace an existing offer"""
        try:
            data = to_mongo(offer)
            await self.db.offers.replace_one({"_id": data["_id"]}, data)
            return offer
        except Exception as e:
            logger.error(f"Failed to update offer: {e}")
            raise

    async def get_offer(self, offer_id: str) -> Optional[Offer]:
        """Get offer by ID"""
        try:
            doc = await self.db.offers.find_one({"_id": offer_id})
            if doc:
                return from_mongo(Offer, doc)
            return None
        except Exception as e:
            logger.error(f"Failed to get offer: {e}")
            raise

    async def find_offer_by_external_id(self, external_id: str) -> Optional[Offer]:
        """Get a registry offer by its registry identifier"""
        try:
            doc = await self.db.offers.find_one({"external_id": external_id})
            if doc:
                return from_mongo(Offer, doc)
            return None
        except Exception as e:
            logger.error(f"Failed to get offer by external id: {e}")
            raise

    async def find_offers_by_region(self, region: str, active_only: bool = False) -> List[Offer]:
        """Get offers in a region, optionally only active ones"""
        try:
            filter_query: Dict[str, Any] = {"region": region}
            if active_only:
                filter_query["is_active"] = True

            cursor = self.db.offers.find(filter_query)
            offers = []
            async for doc in cursor:
                offers.append(from_mongo(Offer, doc))
            return offers
        except Exception as e:
            logger.error(f"Failed to get offers: {e}")
            raise

    async def find_active_offers_by_region(self, region: str) -> List[Offer]:
        return await self.find_offers_by_region(region, active_only=True)

    async def find_active_offers(self, data_source: Optional[Provenance] = None) -> List[Offer]:
        """Get active offers, optionally only those of one provenance"""
        try:
            filter_query: Dict[str, Any] = {"is_active": True}
            if data_source is not None:
                filter_query["data_source"] = data_source.value

            cursor = self.db.offers.find(filter_query).sort("created_at", DESCENDING)
            return [from_mongo(Offer, doc) async for doc in cursor]
        except Exception as e:
            logger.error(f"Failed to list active offers: {e}")
            raise

    async def deactivate_expired_offers(self, today: date) -> int:
        """Deactivate active offers whose application window closed before today"""
        try:
            result = await self.db.offers.update_many(
                {"is_active": True, "application_end_date": {"$lt": today.isoformat()}},
                {"$set": {
                    "is_active": False,
                    "updated_at": datetime.now(timezone.utc).isoformat()
                }}
            )
            return result.modified_count
        except Exception as e:
            logger.error(f"Failed to deactivate expired offers: {e}")
            raise

    # Profile operations
    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        """Get the profile snapshot for a user"""
        try:
            doc = await self.db.profiles.find_one({"user_id": user_id})
            if doc:
                doc = dict(doc)
                doc.pop("_id", None)
                return UserProfile(**doc)
            return None
        except Exception as e:
            logger.error(f"Failed to get profile: {e}")
            raise

    async def save_profile(self, profile: UserProfile) -> UserProfile:
        """Create or update a user profile"""
        try:
            await self.db.profiles.update_one(
                {"user_id": profile.user_id},
                {"$set": profile.model_dump()},
                upsert=True
            )
            logger.info(f"User profile created/updated: {profile.user_id}")
            return profile
        except Exception as e:
            logger.error(f"Failed to save profile: {e}")
            raise

    # Statistics
    async def get_database_stats(self) -> Dict[str, Any]:
        """Get database statistics"""
        try:
            stats = {
                "total_documents": await self.db.documents.count_documents({}),
                "completed_documents": await self.db.documents.count_documents({"status": "COMPLETED"}),
                "processing_documents": await self.db.documents.count_documents({"status": "PROCESSING"}),
                "failed_documents": await self.db.documents.count_documents({"status": "FAILED"}),
                "total_offers": await self.db.offers.count_documents({}),
                "active_offers": await self.db.offers.count_documents({"is_active": True}),
                "total_profiles": await self.db.profiles.count_documents({})
            }
            return stats
        except Exception as e:
            logger.error(f"Failed to get database stats: {e}")
            return {}


# Global MongoDB service instance
mongo_service = MongoService()
