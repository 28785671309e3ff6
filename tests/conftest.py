"""Shared test helpers: an in-memory stand-in for MongoStorage and a fixed clock."""

import itertools
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from exco_nominations.config import MAX_NAME_DISTANCE, POSITIONS, SUPER_ADMIN_PRIVILEGE, ADMIN_PRIVILEGE
from exco_nominations.errors import ConflictError
from exco_nominations.models.admin_model import AdminUser
from exco_nominations.models.nomination_model import NominationIn
from exco_nominations.security import create_access_token, hash_password
from exco_nominations.storage_mongo import SUBMISSION_COMMITTED, SUBMISSION_MARKED, levenshtein_distance

START = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)

ADMIN_USERS = [
    {"name": "Super Sam", "email": "sam@example.com", "privilege": SUPER_ADMIN_PRIVILEGE},
    {"name": "Plain Pat", "email": "pat@example.com", "privilege": ADMIN_PRIVILEGE},
]
ADMIN_PASSWORD = "correct horse"


class FakeClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeStorage:
    """Implements the MongoStorage method set in memory, unique constraints included."""

    def __init__(self, clock=None):
        self.clock = clock or FakeClock()
        self.voters = {}
        self.submissions = {}
        self.nominations = []
        self.candidates = []
        self.variations = []
        self.admins = {}
        self.writes = 0
        self._ids = itertools.count(1)

    def _next_id(self, prefix):
        return f"{prefix}{next(self._ids)}"

    # --- Eligible voters ---

    def list_voters(self, active_only=True, search=None):
        voters = [dict(v) for v in self.voters.values() if v["is_active"] or not active_only]
        if search:
            needle = search.lower()
            voters = [v for v in voters
                      if needle in v["full_name"].lower() or needle in (v["member_id"] or "").lower()]
        return sorted(voters, key=lambda v: v["full_name"])

    def get_voter_by_name(self, full_name):
        for voter in self.voters.values():
            if voter["full_name"] == full_name:
                return dict(voter)
        return None

    def count_active_voters(self):
        return sum(1 for v in self.voters.values() if v["is_active"])

    def add_voter(self, full_name, member_id, is_active=True):
        if self.get_voter_by_name(full_name):
            raise ConflictError(f"Could not add voter {full_name}: a matching record already exists.")
        voter = {
            "id": self._next_id("v"),
            "full_name": full_name,
            "member_id": member_id,
            "is_active": is_active,
            "created_at": self.clock(),
            "updated_at": self.clock(),
        }
        self.voters[voter["id"]] = voter
        return dict(voter)

    def set_voter_active(self, voter_id, is_active):
        voter = self.voters.get(voter_id)
        if voter is None:
            return None
        voter.update(is_active=is_active, updated_at=self.clock())
        return dict(voter)

    def delete_voter(self, voter_id):
        return self.voters.pop(voter_id, None) is not None

    # --- Voter submissions ---

    def find_submission(self, voter_name):
        for submission in self.submissions.values():
            if submission["voter_name"] == voter_name:
                return dict(submission)
        return None

    def insert_submission(self, voter_id, voter_name, submitted_at):
        if voter_id in self.submissions or self.find_submission(voter_name):
            raise ConflictError(f"Could not record submission for {voter_name}: a matching record already exists.")
        self.writes += 1
        self.submissions[voter_id] = {
            "id": voter_id, "voter_name": voter_name, "status": SUBMISSION_MARKED, "submitted_at": submitted_at,
        }
        return dict(self.submissions[voter_id])

    def mark_submission_committed(self, voter_id):
        self.submissions[voter_id]["status"] = SUBMISSION_COMMITTED

    def discard_partial_submission(self, voter_id, older_than):
        submission = self.submissions.get(voter_id)
        if submission and submission["status"] == SUBMISSION_MARKED and submission["submitted_at"] < older_than:
            del self.submissions[voter_id]
            return True
        return False

    def list_submissions(self):
        return sorted((dict(s) for s in self.submissions.values()), key=lambda s: s["submitted_at"], reverse=True)

    def count_submissions(self):
        return len(self.submissions)

    def list_partial_submissions(self, older_than):
        return [
            dict(s) for s in self.submissions.values()
            if s["status"] == SUBMISSION_MARKED and s["submitted_at"] < older_than and not self.has_nomination(s["id"])
        ]

    # --- Nominations ---

    def insert_nomination(self, record):
        if self.has_nomination(record["voter_id"]):
            raise ConflictError("Could not record nominations: a matching record already exists.")
        self.writes += 1
        stored = dict(record, id=self._next_id("n"))
        self.nominations.append(stored)
        return dict(stored)

    def has_nomination(self, voter_id):
        return any(n["voter_id"] == voter_id for n in self.nominations)

    def list_nominations(self):
        return [dict(n) for n in reversed(self.nominations)]

    # --- Candidates ---

    def add_candidate(self, canonical_name, position, vote_count=1):
        candidate = {
            "id": self._next_id("c"),
            "canonical_name": canonical_name,
            "position": position.value,
            "vote_count": vote_count,
            "created_at": self.clock(),
            "updated_at": self.clock(),
        }
        self.candidates.append(candidate)
        return candidate

    def find_similar_names(self, input_name, position):
        matches = []
        for candidate in self.candidates:
            if candidate["position"] != position.value:
                continue
            distance = levenshtein_distance(input_name, candidate["canonical_name"])
            if distance <= MAX_NAME_DISTANCE:
                matches.append({"candidate_id": candidate["id"], "canonical_name": candidate["canonical_name"],
                                "distance": distance})
        return sorted(matches, key=lambda m: (m["distance"], m["canonical_name"]))

    def process_nomination(self, nominee_name, position, original_name=None):
        for candidate in self.candidates:
            if candidate["position"] == position.value and candidate["canonical_name"] == nominee_name:
                candidate["vote_count"] += 1
                action = "matched"
                break
        else:
            candidate = self.add_candidate(nominee_name, position)
            action = "created"
        if original_name and original_name != nominee_name:
            self.variations.append({"candidate_id": candidate["id"], "variation_name": original_name})
        return {"candidate_id": candidate["id"], "canonical_name": candidate["canonical_name"], "action": action}

    def list_candidates(self):
        return sorted((dict(c) for c in self.candidates), key=lambda c: (-c["vote_count"], c["canonical_name"]))

    # --- Admin credentials ---

    def get_admin_password_hash(self, email):
        admin = self.admins.get(email)
        return admin["password_hash"] if admin else None

    def set_admin_password_hash(self, email, password_hash):
        self.admins.setdefault(email, {"id": email, "email": email})["password_hash"] = password_hash

    def list_admin_credentials(self):
        return [dict(a) for a in self.admins.values()]


def make_nomination(voter_name: str = "Alice A", nominee: str = "Bob B", **overrides) -> NominationIn:
    """A complete ballot naming the same nominee for every position unless overridden."""
    fields = {position.value: nominee for position in POSITIONS}
    fields.update(overrides)
    return NominationIn(voter_name=voter_name, **fields)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage(clock):
    storage = FakeStorage(clock)
    storage.add_voter("Alice A", "M001")
    storage.add_voter("Bob B", "M002")
    return storage


@pytest.fixture(scope="session")
def admin_password_hash():
    return hash_password(ADMIN_PASSWORD)


@pytest.fixture
def client(storage, clock, admin_password_hash):
    from exco_nominations.dedup import DraftRegistry
    from exco_nominations.main import app
    from exco_nominations.routes.admin_routes import get_admin_users
    from exco_nominations.routes.nomination_routes import get_draft_registry, get_submitter
    from exco_nominations.submission import NominationSubmitter
    from exco_nominations.storage_mongo import get_storage

    for admin in ADMIN_USERS:
        storage.set_admin_password_hash(admin["email"], admin_password_hash)
    registry = DraftRegistry(clock=clock)
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_draft_registry] = lambda: registry
    app.dependency_overrides[get_submitter] = lambda: NominationSubmitter(storage, clock=clock)
    app.dependency_overrides[get_admin_users] = lambda: ADMIN_USERS
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def super_headers():
    token = create_access_token(AdminUser(**ADMIN_USERS[0]))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers():
    token = create_access_token(AdminUser(**ADMIN_USERS[1]))
    return {"Authorization": f"Bearer {token}"}
