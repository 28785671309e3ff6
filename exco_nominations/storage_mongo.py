# storage_mongo.py
import logging
import re
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, OperationFailure, PyMongoError

from exco_nominations.config import MAX_NAME_DISTANCE, Position
from exco_nominations.database.connection import MongoConnector
from exco_nominations.errors import AccessDeniedError, ConflictError, TransientError

logger = logging.getLogger(__name__)

# Unauthorized, AuthenticationFailed
AUTH_ERROR_CODES = {13, 18}

SUBMISSION_MARKED = "voter_marked"
SUBMISSION_COMMITTED = "committed"


def levenshtein_distance(s1: str, s2: str) -> int:
    if len(s1) < len(s2):
        s1, s2 = s2, s1
    previous = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, start=1):
        current = [i]
        for j, c2 in enumerate(s2, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (c1 != c2),
            ))
        previous = current
    return previous[-1]


@contextmanager
def translate_errors(action: str):
    """Re-raise pymongo failures as the service's own error kinds."""
    try:
        yield
    except DuplicateKeyError as e:
        logger.warning(f"Duplicate record while trying to {action}: {e}")
        raise ConflictError(f"Could not {action}: a matching record already exists.") from e
    except OperationFailure as e:
        if e.code in AUTH_ERROR_CODES or "not authorized" in str(e).lower():
            logger.error(f"Access denied while trying to {action}: {e}")
            raise AccessDeniedError(
                f"Access denied while trying to {action}. "
                "Ask an administrator to check the database permissions."
            ) from e
        logger.error(f"Database operation failed while trying to {action}: {e}")
        raise TransientError(f"Database error while trying to {action}. Please try again.") from e
    except PyMongoError as e:
        logger.error(f"Failed to reach MongoDB while trying to {action}: {e}")
        raise TransientError(
            f"Could not {action}. Please check your connection and try again."
        ) from e


def _out(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if doc is None:
        return None
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    return doc


def _object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MongoStorage:
    """Gateway to every collection the nomination workflows read or write.

    All methods return plain dicts with the MongoDB ``_id`` exposed as ``id``.
    Store failures surface as ``ConflictError``, ``AccessDeniedError`` or
    ``TransientError``; "nothing found" is returned as ``None``/``False``.
    """

    def __init__(self, connector=None):
        self.connector = connector or MongoConnector()

    # --- Eligible voters ---

    def list_voters(self, active_only: bool = True, search: Optional[str] = None) -> List[Dict[str, Any]]:
        query: Dict[str, Any] = {}
        if active_only:
            query["is_active"] = True
        if search:
            pattern = {"$regex": re.escape(search), "$options": "i"}
            query["$or"] = [{"full_name": pattern}, {"member_id": pattern}]
        with translate_errors("load eligible voters"):
            cursor = self.connector.voters_collection.find(query).sort("full_name", ASCENDING)
            return [_out(voter) for voter in cursor]

    def get_voter_by_name(self, full_name: str) -> Optional[Dict[str, Any]]:
        with translate_errors("look up voter"):
            return _out(self.connector.voters_collection.find_one({"full_name": full_name}))

    def count_active_voters(self) -> int:
        with translate_errors("count eligible voters"):
            return self.connector.voters_collection.count_documents({"is_active": True})

    def add_voter(self, full_name: str, member_id: Optional[str]) -> Dict[str, Any]:
        now = _now()
        voter = {
            "full_name": full_name,
            "member_id": member_id,
            "is_active": True,
            "created_at": now,
            "updated_at": now,
        }
        with translate_errors(f"add voter {full_name}"):
            result = self.connector.voters_collection.insert_one(voter)
        voter["_id"] = result.inserted_id
        logger.info(f"Voter {full_name} added to the roster")
        return _out(voter)

    def set_voter_active(self, voter_id: str, is_active: bool) -> Optional[Dict[str, Any]]:
        oid = _object_id(voter_id)
        if oid is None:
            return None
        with translate_errors("update voter status"):
            result = self.connector.voters_collection.find_one_and_update(
                {"_id": oid},
                {"$set": {"is_active": is_active, "updated_at": _now()}},
                return_document=ReturnDocument.AFTER,
            )
        return _out(result)

    def delete_voter(self, voter_id: str) -> bool:
        oid = _object_id(voter_id)
        if oid is None:
            return False
        with translate_errors("delete voter"):
            result = self.connector.voters_collection.delete_one({"_id": oid})
        return result.deleted_count > 0

    # --- Voter submissions ---

    def find_submission(self, voter_name: str) -> Optional[Dict[str, Any]]:
        with translate_errors("check voting status"):
            return _out(self.connector.submissions_collection.find_one({"voter_name": voter_name}))

    def insert_submission(self, voter_id: str, voter_name: str, submitted_at: datetime) -> Dict[str, Any]:
        record = {
            "_id": voter_id,
            "voter_name": voter_name,
            "status": SUBMISSION_MARKED,
            "submitted_at": submitted_at,
        }
        with translate_errors(f"record submission for {voter_name}"):
            self.connector.submissions_collection.insert_one(record)
        return _out(record)

    def mark_submission_committed(self, voter_id: str) -> None:
        with translate_errors("finalise submission"):
            self.connector.submissions_collection.update_one(
                {"_id": voter_id}, {"$set": {"status": SUBMISSION_COMMITTED}}
            )

    def discard_partial_submission(self, voter_id: str, older_than: datetime) -> bool:
        """Delete a stale ``voter_marked`` record. Only ever matches unfinished submissions."""
        with translate_errors("discard unfinished submission"):
            result = self.connector.submissions_collection.delete_one(
                {"_id": voter_id, "status": SUBMISSION_MARKED, "submitted_at": {"$lt": older_than}}
            )
        return result.deleted_count > 0

    def list_submissions(self) -> List[Dict[str, Any]]:
        with translate_errors("load submissions"):
            cursor = self.connector.submissions_collection.find({}).sort("submitted_at", DESCENDING)
            return [_out(submission) for submission in cursor]

    def count_submissions(self) -> int:
        with translate_errors("count submissions"):
            return self.connector.submissions_collection.count_documents({})

    def list_partial_submissions(self, older_than: datetime) -> List[Dict[str, Any]]:
        with translate_errors("load unfinished submissions"):
            cursor = self.connector.submissions_collection.find(
                {"status": SUBMISSION_MARKED, "submitted_at": {"$lt": older_than}}
            ).sort("submitted_at", ASCENDING)
            pending = [_out(submission) for submission in cursor]
        return [s for s in pending if not self.has_nomination(s["id"])]

    # --- Nominations ---

    def insert_nomination(self, record: Dict[str, Any]) -> Dict[str, Any]:
        record = dict(record)
        with translate_errors(f"record nominations for {record.get('voter_name')}"):
            result = self.connector.nominations_collection.insert_one(record)
        record["_id"] = result.inserted_id
        logger.info(f"Nominations recorded for {record.get('voter_name')}")
        return _out(record)

    def has_nomination(self, voter_id: str) -> bool:
        with translate_errors("look up nominations"):
            return self.connector.nominations_collection.find_one({"voter_id": voter_id}) is not None

    def list_nominations(self) -> List[Dict[str, Any]]:
        with translate_errors("load nominations"):
            cursor = self.connector.nominations_collection.find({}).sort("submitted_at", DESCENDING)
            return [_out(nomination) for nomination in cursor]

    # --- Candidates ---

    def find_similar_names(self, input_name: str, position: Position) -> List[Dict[str, Any]]:
        with translate_errors("search similar candidate names"):
            candidates = list(self.connector.candidates_collection.find({"position": position.value}))
        matches = []
        for candidate in candidates:
            distance = levenshtein_distance(input_name, candidate["canonical_name"])
            if distance <= MAX_NAME_DISTANCE:
                matches.append({
                    "candidate_id": str(candidate["_id"]),
                    "canonical_name": candidate["canonical_name"],
                    "distance": distance,
                })
        matches.sort(key=lambda m: (m["distance"], m["canonical_name"]))
        return matches

    def process_nomination(
        self, nominee_name: str, position: Position, original_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """Count one nomination towards a candidate, creating the candidate if needed."""
        collection = self.connector.candidates_collection
        now = _now()
        with translate_errors(f"tally nomination for {nominee_name}"):
            candidate = collection.find_one_and_update(
                {"position": position.value, "canonical_name": nominee_name},
                {"$inc": {"vote_count": 1}, "$set": {"updated_at": now}},
                return_document=ReturnDocument.AFTER,
            )
            action = "matched"
            if candidate is None:
                try:
                    candidate = {
                        "canonical_name": nominee_name,
                        "position": position.value,
                        "vote_count": 1,
                        "created_at": now,
                        "updated_at": now,
                    }
                    candidate["_id"] = collection.insert_one(candidate).inserted_id
                    action = "created"
                except DuplicateKeyError:
                    # Created by a concurrent ballot between the update and the insert
                    candidate = collection.find_one_and_update(
                        {"position": position.value, "canonical_name": nominee_name},
                        {"$inc": {"vote_count": 1}, "$set": {"updated_at": now}},
                        return_document=ReturnDocument.AFTER,
                    )
            if original_name and original_name != nominee_name:
                self.connector.variations_collection.update_one(
                    {"candidate_id": str(candidate["_id"]), "variation_name": original_name},
                    {"$setOnInsert": {"created_at": now}},
                    upsert=True,
                )
        return {
            "candidate_id": str(candidate["_id"]),
            "canonical_name": candidate["canonical_name"],
            "action": action,
        }

    def list_candidates(self) -> List[Dict[str, Any]]:
        with translate_errors("load candidates"):
            cursor = self.connector.candidates_collection.find({}).sort(
                [("vote_count", DESCENDING), ("canonical_name", ASCENDING)]
            )
            return [_out(candidate) for candidate in cursor]

    # --- Admin credentials ---

    def get_admin_password_hash(self, email: str) -> Optional[str]:
        with translate_errors("authenticate admin"):
            admin = self.connector.admins_collection.find_one({"email": email})
        if not admin:
            return None
        return admin.get("password_hash")

    def set_admin_password_hash(self, email: str, password_hash: str) -> None:
        with translate_errors("store admin credential"):
            self.connector.admins_collection.update_one(
                {"email": email},
                {"$set": {"password_hash": password_hash}, "$setOnInsert": {"created_at": _now()}},
                upsert=True,
            )

    def list_admin_credentials(self) -> List[Dict[str, Any]]:
        with translate_errors("load admin credentials"):
            return [_out(admin) for admin in self.connector.admins_collection.find({})]


_storage: Optional[MongoStorage] = None


def get_storage() -> MongoStorage:
    """FastAPI dependency; the connection is opened on first use."""
    global _storage
    if _storage is None:
        storage = MongoStorage()
        with translate_errors("prepare the database"):
            storage.connector.ensure_indexes()
        _storage = storage
    return _storage
