# exco_nominations/config.py
# Central place for environment settings, limits and the fixed position set
import json
import os
from enum import Enum
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

# --- Database Config ---
MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB_NAME = os.getenv("MONGO_DB", "exco_nominations")
MONGO_TIMEOUT_MS = int(os.getenv("MONGO_TIMEOUT_MS", "5000"))

VOTERS_COLLECTION_NAME = "eligible_voters"
SUBMISSIONS_COLLECTION_NAME = "voter_submissions"
NOMINATIONS_COLLECTION_NAME = "nominations"
CANDIDATES_COLLECTION_NAME = "candidates"
VARIATIONS_COLLECTION_NAME = "name_variations"
ADMINS_COLLECTION_NAME = "admin_users"

# --- Security & JWT Config ---
# In production, use secure, environment-variable-based secrets
SECRET_KEY = os.getenv("SECRET_KEY", "a_very_secret_key_for_dev_only")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if origin.strip()
]

# --- Nomination rules ---
STATEMENT_MAX_LENGTH = 300
TOP_NOMINEES_LIMIT = 9          # size of the Board of Trustees
MAX_NAME_DISTANCE = 3           # edit distance cutoff for "similar" candidate names
PARTIAL_COMMIT_TIMEOUT_MINUTES = 15
DRAFT_TTL_MINUTES = 30


class Position(str, Enum):
    PRESIDENT = "president"
    TOURNAMENT_DIRECTOR = "tournament_director"
    HON_LEGAL_ADVISER = "hon_legal_adviser"
    SECRETARY = "secretary"
    HON_SOCIAL_SECRETARY = "hon_social_secretary"

    @property
    def label(self) -> str:
        return POSITION_LABELS[self]


POSITION_LABELS = {
    Position.PRESIDENT: "President",
    Position.TOURNAMENT_DIRECTOR: "Tournament Director",
    Position.HON_LEGAL_ADVISER: "Hon. Legal Adviser",
    Position.SECRETARY: "Secretary",
    Position.HON_SOCIAL_SECRETARY: "Hon. Social Secretary",
}

# Enumeration order is the display and export order
POSITIONS = list(Position)


def position_from_label(value: str) -> Position:
    """Accepts either the field key ("hon_legal_adviser") or the label ("Hon. Legal Adviser")."""
    for position in POSITIONS:
        if value in (position.value, position.label):
            return position
    raise ValueError(f"Unknown position: {value}")


# --- Admin roster ---
# Identities and privilege tiers only. Password hashes live in the admin_users collection.
ADMIN_PRIVILEGE = "admin"
SUPER_ADMIN_PRIVILEGE = "super_admin"

DEFAULT_ADMIN_USERS = [
    {"name": "Anjola Adegbola", "email": "anjola@example.com", "privilege": SUPER_ADMIN_PRIVILEGE},
    {"name": "Babatunde Oluwafemi Adegbola", "email": "babatunde@example.com", "privilege": SUPER_ADMIN_PRIVILEGE},
    {"name": "Sunday Oluyemi", "email": "sunday@example.com", "privilege": ADMIN_PRIVILEGE},
    {"name": "Wilson Gbenro Olagbegi", "email": "wilson@example.com", "privilege": ADMIN_PRIVILEGE},
]


def load_admin_users(path: Optional[str] = None) -> List[dict]:
    path = path or os.getenv("ADMIN_USERS_FILE")
    if not path:
        return [dict(user) for user in DEFAULT_ADMIN_USERS]
    with open(path, "r") as f:
        users = json.load(f)
    for user in users:
        if not user.get("name") or not user.get("email"):
            raise ValueError(f"Admin entry needs a name and an email: {user!r}")
        if user.get("privilege", ADMIN_PRIVILEGE) not in (ADMIN_PRIVILEGE, SUPER_ADMIN_PRIVILEGE):
            raise ValueError(f"Unknown privilege for admin {user['name']}: {user.get('privilege')}")
        user.setdefault("privilege", ADMIN_PRIVILEGE)
    return users


ADMIN_USERS = load_admin_users()
