"""Tests for the MongoDB gateway, run against mocked collections."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError, OperationFailure, ServerSelectionTimeoutError

from exco_nominations.config import Position
from exco_nominations.errors import AccessDeniedError, ConflictError, TransientError
from exco_nominations.storage_mongo import MongoStorage, levenshtein_distance, translate_errors

NOW = datetime(2025, 3, 1, tzinfo=timezone.utc)


@pytest.fixture
def connector():
    return MagicMock()


@pytest.fixture
def storage(connector):
    return MongoStorage(connector=connector)


class TestLevenshtein:
    @pytest.mark.parametrize("a, b, expected", [
        ("", "", 0),
        ("John Smith", "John Smith", 0),
        ("Jon Smith", "John Smith", 1),
        ("kitten", "sitting", 3),
        ("", "abc", 3),
        ("X", "x", 1),
    ])
    def test_distance(self, a, b, expected):
        assert levenshtein_distance(a, b) == expected
        assert levenshtein_distance(b, a) == expected


class TestTranslateErrors:
    def test_duplicate_key_is_conflict(self):
        with pytest.raises(ConflictError):
            with translate_errors("record submission"):
                raise DuplicateKeyError("E11000 duplicate key")

    @pytest.mark.parametrize("error", [
        OperationFailure("not authorized on db to execute command", code=13),
        OperationFailure("Authentication failed.", code=18),
        OperationFailure("user is not authorized", code=None),
    ])
    def test_permission_failures_are_access_denied(self, error):
        with pytest.raises(AccessDeniedError, match="permissions"):
            with translate_errors("load eligible voters"):
                raise error

    def test_other_operation_failure_is_transient(self):
        with pytest.raises(TransientError):
            with translate_errors("load eligible voters"):
                raise OperationFailure("bad query", code=2)

    def test_unreachable_server_is_transient(self):
        with pytest.raises(TransientError, match="connection"):
            with translate_errors("load eligible voters"):
                raise ServerSelectionTimeoutError("no servers")

    def test_access_denied_is_not_transient(self):
        assert not issubclass(AccessDeniedError, TransientError)


class TestVoters:
    def test_list_active_sorted(self, storage, connector):
        oid = ObjectId()
        cursor = connector.voters_collection.find.return_value
        cursor.sort.return_value = [{"_id": oid, "full_name": "Alice A", "is_active": True}]

        voters = storage.list_voters()

        connector.voters_collection.find.assert_called_once_with({"is_active": True})
        cursor.sort.assert_called_once_with("full_name", 1)
        assert voters == [{"id": str(oid), "full_name": "Alice A", "is_active": True}]

    def test_search_is_escaped_and_case_insensitive(self, storage, connector):
        connector.voters_collection.find.return_value.sort.return_value = []
        storage.list_voters(active_only=False, search="a.b")
        query = connector.voters_collection.find.call_args[0][0]
        assert "is_active" not in query
        assert query["$or"][0] == {"full_name": {"$regex": r"a\.b", "$options": "i"}}

    def test_access_denied_on_roster_read(self, storage, connector):
        connector.voters_collection.find.side_effect = OperationFailure("not authorized", code=13)
        with pytest.raises(AccessDeniedError):
            storage.list_voters()

    def test_invalid_id_is_not_found(self, storage, connector):
        assert storage.set_voter_active("not-an-id", False) is None
        assert storage.delete_voter("not-an-id") is False
        connector.voters_collection.delete_one.assert_not_called()

    def test_duplicate_name_conflicts(self, storage, connector):
        connector.voters_collection.insert_one.side_effect = DuplicateKeyError("E11000")
        with pytest.raises(ConflictError):
            storage.add_voter("Alice A", None)


class TestSubmissions:
    def test_submission_keyed_by_voter_id(self, storage, connector):
        record = storage.insert_submission("v1", "Alice A", NOW)
        inserted = connector.submissions_collection.insert_one.call_args[0][0]
        assert inserted["_id"] == "v1"
        assert inserted["status"] == "voter_marked"
        assert record["id"] == "v1"

    def test_second_submission_conflicts(self, storage, connector):
        connector.submissions_collection.insert_one.side_effect = DuplicateKeyError("E11000")
        with pytest.raises(ConflictError):
            storage.insert_submission("v1", "Alice A", NOW)

    def test_missing_submission_is_none(self, storage, connector):
        connector.submissions_collection.find_one.return_value = None
        assert storage.find_submission("Alice A") is None

    def test_discard_only_matches_stale_markers(self, storage, connector):
        connector.submissions_collection.delete_one.return_value.deleted_count = 1
        assert storage.discard_partial_submission("v1", NOW)
        connector.submissions_collection.delete_one.assert_called_once_with(
            {"_id": "v1", "status": "voter_marked", "submitted_at": {"$lt": NOW}}
        )

    def test_list_newest_first_with_ids(self, storage, connector):
        connector.submissions_collection.find.return_value.sort.return_value = [
            {"_id": "v2", "voter_name": "Bob B", "status": "committed", "submitted_at": NOW},
        ]
        assert storage.list_submissions() == [
            {"id": "v2", "voter_name": "Bob B", "status": "committed", "submitted_at": NOW},
        ]
        connector.submissions_collection.find.return_value.sort.assert_called_once_with("submitted_at", -1)


class TestCandidates:
    def test_similar_names_within_cutoff_sorted(self, storage, connector):
        connector.candidates_collection.find.return_value = [
            {"_id": "c1", "canonical_name": "John Smith"},
            {"_id": "c2", "canonical_name": "Jon Smyth"},
            {"_id": "c3", "canonical_name": "Someone Else"},
        ]

        matches = storage.find_similar_names("Jon Smith", Position.PRESIDENT)

        connector.candidates_collection.find.assert_called_once_with({"position": "president"})
        assert [(m["canonical_name"], m["distance"]) for m in matches] == [("John Smith", 1), ("Jon Smyth", 1)]

    def test_existing_candidate_is_incremented(self, storage, connector):
        connector.candidates_collection.find_one_and_update.return_value = {
            "_id": "c1", "canonical_name": "John Smith", "vote_count": 3,
        }

        result = storage.process_nomination("John Smith", Position.PRESIDENT, original_name="Jon Smith")

        assert result == {"candidate_id": "c1", "canonical_name": "John Smith", "action": "matched"}
        connector.candidates_collection.insert_one.assert_not_called()
        connector.variations_collection.update_one.assert_called_once()

    def test_new_candidate_is_created(self, storage, connector):
        connector.candidates_collection.find_one_and_update.return_value = None
        connector.candidates_collection.insert_one.return_value.inserted_id = "c9"

        result = storage.process_nomination("Zed Q", Position.SECRETARY)

        assert result["action"] == "created"
        inserted = connector.candidates_collection.insert_one.call_args[0][0]
        assert inserted["vote_count"] == 1
        assert inserted["position"] == "secretary"
        connector.variations_collection.update_one.assert_not_called()

    def test_lookup_failure_is_transient(self, storage, connector):
        connector.candidates_collection.find.side_effect = ServerSelectionTimeoutError("down")
        with pytest.raises(TransientError):
            storage.find_similar_names("Jon", Position.PRESIDENT)
