"""
auth.py
Operator login (single account, bcrypt hashes in SQLite).
The first run creates admin/admin123 and forces a password change.
"""

from __future__ import annotations

import logging

import bcrypt
import db

logger = logging.getLogger(__name__)

DEFAULT_USERNAME = "admin"
DEFAULT_PASSWORD = "admin123"
MIN_PASSWORD_LENGTH = 6


def _to_bcrypt_secret(password: str) -> bytes:
    """
    bcrypt only uses the first 72 BYTES of the password; longer input is
    truncated explicitly instead of raising.
    """
    return password.encode("utf-8")[:72]


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(_to_bcrypt_secret(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(_to_bcrypt_secret(password), password_hash.encode("utf-8"))


def ensure_operator() -> None:
    """Create the auth tables and the default operator on first run."""
    def default_hash() -> str:
        logger.info("No operator account found, creating default '%s'", DEFAULT_USERNAME)
        return hash_password(DEFAULT_PASSWORD)

    db.init_db(default_hash)


def login(username: str, password: str) -> bool:
    admin = db.fetch_one("SELECT password_hash FROM admin_users WHERE username = ?", (username,))
    if not admin:
        logger.warning("Login attempt for unknown user %r", username)
        return False
    return verify_password(password, admin["password_hash"])


def validate_new_password(new_password: str, confirmation: str) -> list[str]:
    errors: list[str] = []
    if len(new_password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if new_password != confirmation:
        errors.append("Passwords do not match.")
    return errors


def change_password(username: str, new_password: str) -> None:
    db.execute(
        "UPDATE admin_users SET password_hash = ? WHERE username = ?",
        (hash_password(new_password), username),
    )
    db.clear_force_password_change()
