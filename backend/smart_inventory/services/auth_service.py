# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Registration and login.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost from BCRYPT_LOG_ROUNDS, 12 by default)
- Minimum 8 characters; must contain uppercase, lowercase, digit, special char
- Unknown accounts still pay for one bcrypt comparison, and every login
  failure returns the same message, so callers cannot probe which emails exist
- Plaintext passwords are never stored, logged or returned
"""

from __future__ import annotations

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from ..roles import Role, DEFAULT_ROLE
from ..time_utils import utcnow
from ..validation import ValidationError, validate_email
from .token_service import Identity, issue_token


INVALID_LOGIN_MESSAGE = "Invalid email or password"

# Compared against when the account does not exist, keyed by bcrypt cost
_dummy_hashes: dict[int, bytes] = {}


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


class LoginError(Exception):
    """Invalid credentials. Message never says which part was wrong."""

    def __init__(self):
        super().__init__(INVALID_LOGIN_MESSAGE)


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>?_\-+=\[\]/\\;~`]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config["BCRYPT_LOG_ROUNDS"])
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def _dummy_hash() -> bytes:
    rounds = current_app.config["BCRYPT_LOG_ROUNDS"]
    if rounds not in _dummy_hashes:
        _dummy_hashes[rounds] = bcrypt.hashpw(b"not-a-real-password", bcrypt.gensalt(rounds=rounds))
    return _dummy_hashes[rounds]


def verify_password(password: str, password_hash: str) -> bool:
    """bcrypt.checkpw is constant-time with respect to the hash."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def register_user(
    username: str | None,
    email: str | None,
    password: str | None,
    re_password: str | None,
    role: str | None = None,
) -> User:
    """
    Create a user account.

    Raises ValidationError (missing fields, mismatch, duplicate, bad role)
    or PasswordValidationError.
    """
    for label, value in (("username", username), ("email", email), ("password", password), ("rePassword", re_password)):
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"{label} must be a string")

    username = (username or "").strip()
    email = (email or "").strip().lower()

    if not username:
        raise ValidationError("username is required")
    if len(username) > 64:
        raise ValidationError("username exceeds max length 64")
    if not email:
        raise ValidationError("Email is required")
    validate_email(email)
    if not password:
        raise ValidationError("Password is required")
    if not re_password:
        raise ValidationError("Confirm Password is required")
    if password != re_password:
        raise ValidationError("Password and Confirm Password should be same")

    try:
        user_role = Role.parse(role) if role else DEFAULT_ROLE
    except ValueError as e:
        raise ValidationError(str(e))

    existing = db.session.query(User).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        field = "username" if existing.username == username else "email"
        raise ValidationError(f"{field} '{username if field == 'username' else email}' already exists")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=user_role,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate_user(email: str | None, password: str | None) -> User:
    """
    Check email/password. Raises LoginError on any failure.

    Updates last_login_at on success.
    """
    if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
        raise LoginError()

    user = db.session.query(User).filter(
        User.email == email.strip().lower(),
        User.is_active.is_(True),
    ).first()

    if user is None:
        bcrypt.checkpw(password.encode("utf-8"), _dummy_hash())
        raise LoginError()

    if not verify_password(password, user.password_hash):
        raise LoginError()

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def identity_for(user: User) -> Identity:
    return Identity(id=user.id, username=user.username, email=user.email, role=user.role)


def login(email: str | None, password: str | None) -> tuple[User, str]:
    """Authenticate and mint a signed token. Returns (user, token)."""
    user = authenticate_user(email, password)
    return user, issue_token(identity_for(user))
