"""Hash any admin credential that was inserted into the database as plain text.

Usage: python -m exco_nominations.hash_admin_passwords
"""
import logging

from exco_nominations.security import hash_password, is_password_hash

logger = logging.getLogger(__name__)


def hash_existing_passwords(storage) -> int:
    hashed = 0
    for admin in storage.list_admin_credentials():
        password = admin.get("password_hash")
        # Skip if password already looks hashed
        if password and not is_password_hash(password):
            storage.set_admin_password_hash(admin["email"], hash_password(password))
            logger.info(f"Hashed password for admin {admin.get('email')}")
            hashed += 1
    return hashed


if __name__ == "__main__":
    from exco_nominations.storage_mongo import get_storage

    logging.basicConfig(level=logging.INFO)
    count = hash_existing_passwords(get_storage())
    logger.info(f"{count} admin passwords hashed")
