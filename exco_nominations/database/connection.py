import logging

from pymongo import ASCENDING, MongoClient

from exco_nominations.config import (
    ADMINS_COLLECTION_NAME,
    CANDIDATES_COLLECTION_NAME,
    MONGO_DB_NAME,
    MONGO_TIMEOUT_MS,
    MONGO_URI,
    NOMINATIONS_COLLECTION_NAME,
    SUBMISSIONS_COLLECTION_NAME,
    VARIATIONS_COLLECTION_NAME,
    VOTERS_COLLECTION_NAME,
)

logger = logging.getLogger(__name__)


class MongoConnector:
    """Process-wide MongoDB client with one handle per collection."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            instance = super(MongoConnector, cls).__new__(cls)
            instance.client = MongoClient(
                MONGO_URI, serverSelectionTimeoutMS=MONGO_TIMEOUT_MS, tz_aware=True
            )
            instance.db = instance.client[MONGO_DB_NAME]
            instance.voters_collection = instance.db[VOTERS_COLLECTION_NAME]
            instance.submissions_collection = instance.db[SUBMISSIONS_COLLECTION_NAME]
            instance.nominations_collection = instance.db[NOMINATIONS_COLLECTION_NAME]
            instance.candidates_collection = instance.db[CANDIDATES_COLLECTION_NAME]
            instance.variations_collection = instance.db[VARIATIONS_COLLECTION_NAME]
            instance.admins_collection = instance.db[ADMINS_COLLECTION_NAME]
            cls._instance = instance
            logger.info(f"MongoDB client created for database: {MONGO_DB_NAME}")
        return cls._instance

    def ensure_indexes(self):
        # The store, not the client, is the authority on "one ballot per voter"
        self.voters_collection.create_index("full_name", unique=True)
        self.submissions_collection.create_index("voter_name", unique=True)
        self.nominations_collection.create_index("voter_id", unique=True)
        self.candidates_collection.create_index(
            [("position", ASCENDING), ("canonical_name", ASCENDING)], unique=True
        )
        self.admins_collection.create_index("email", unique=True)
        logger.info("MongoDB indexes ensured")

    def close(self):
        self.client.close()
        MongoConnector._instance = None
        logger.info("MongoDB connection closed")
