import logging
from typing import List, Optional

from exco_nominations.errors import AccessDeniedError, NotFoundError, ValidationError
from exco_nominations.models.admin_model import AdminUser
from exco_nominations.models.voter_model import EligibleVoter
from exco_nominations.security import verify_password

logger = logging.getLogger(__name__)


# Active roster for the nomination form, sorted by name.
# An empty list is a valid answer ("no eligible voters"), not an error.
def list_active_voters(storage) -> List[EligibleVoter]:
    voters = [EligibleVoter(**voter) for voter in storage.list_voters(active_only=True)]
    if not voters:
        logger.warning("No active eligible voters found")
    else:
        logger.info(f"Loaded {len(voters)} eligible voters")
    return voters


# Full roster for the management screen, optionally filtered by name or member id
def list_voters(storage, include_inactive: bool = True, search: Optional[str] = None) -> List[EligibleVoter]:
    search = search.strip() if search else None
    return [
        EligibleVoter(**voter)
        for voter in storage.list_voters(active_only=not include_inactive, search=search or None)
    ]


def add_voter(storage, full_name: str, member_id: Optional[str] = None) -> EligibleVoter:
    full_name = (full_name or "").strip()
    if not full_name:
        raise ValidationError("full_name", "Please enter a voter name.")
    member_id = (member_id or "").strip() or None
    return EligibleVoter(**storage.add_voter(full_name, member_id))


def set_voter_active(storage, voter_id: str, is_active: bool) -> EligibleVoter:
    voter = storage.set_voter_active(voter_id, is_active)
    if voter is None:
        raise NotFoundError(f"Voter {voter_id} not found.")
    logger.info(f"Voter {voter['full_name']} {'activated' if is_active else 'deactivated'}")
    return EligibleVoter(**voter)


def delete_voter(storage, voter_id: str, confirm: bool = False) -> None:
    if not confirm:
        raise ValidationError(
            "confirm",
            "Deleting a voter is permanent and cannot be undone. Confirm to proceed.",
        )
    if not storage.delete_voter(voter_id):
        raise NotFoundError(f"Voter {voter_id} not found.")
    logger.warning(f"Voter {voter_id} permanently deleted from the roster")


# Login admin. The selected name must be on the configured admin roster.
def authenticate_admin(storage, admin_users: List[dict], admin_name: str, password: str) -> AdminUser:
    if not admin_name or not password:
        raise ValidationError("admin_name" if not admin_name else "password",
                              "Please select your name and enter password.")
    admin = next((a for a in admin_users if a["name"] == admin_name), None)
    if admin is None:
        raise AccessDeniedError("Selected admin not found.")
    password_hash = storage.get_admin_password_hash(admin["email"])
    if not password_hash or not verify_password(password, password_hash):
        logger.warning(f"Failed admin login for {admin_name}")
        raise AccessDeniedError("Invalid name or password.")
    logger.info(f"Admin {admin_name} logged in")
    return AdminUser(**admin)
