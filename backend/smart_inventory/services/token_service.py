# Overview: Signed, time-limited auth tokens and the request Identity they resolve to.

"""
Stateless bearer tokens.

A token is an itsdangerous timed signature over {id, username, email, role}
made with the app SECRET_KEY. Verification needs no database round trip:
the token is the source of truth for the caller's role until it expires
(TOKEN_MAX_AGE_SECONDS, one hour by default).
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from ..roles import Role


TOKEN_SALT = "smart-inventory-auth"


class AuthError(Exception):
    """Base for authentication failures (HTTP 401)."""


class MissingCredentialError(AuthError):
    """No bearer credential was presented."""


class InvalidCredentialError(AuthError):
    """Signature did not verify, token expired, or payload is malformed."""


@dataclass(frozen=True)
class Identity:
    id: int
    username: str
    email: str
    role: Role

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role.value,
        }


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def issue_token(identity: Identity) -> str:
    """Sign an identity into a bearer token."""
    return _serializer().dumps(identity.to_dict())


def extract_bearer(auth_header: str | None) -> str:
    """Pull the token out of an Authorization header value."""
    if not auth_header or not auth_header.startswith("Bearer "):
        raise MissingCredentialError("Authentication required")
    token = auth_header.split(" ", 1)[1].strip()
    if not token:
        raise MissingCredentialError("Authentication required")
    return token


def authenticate(raw_token: str | None) -> Identity:
    """
    Verify a bearer token and return the embedded Identity.

    Raises MissingCredentialError / InvalidCredentialError.
    """
    if not raw_token:
        raise MissingCredentialError("Authentication required")

    max_age = current_app.config["TOKEN_MAX_AGE_SECONDS"]
    try:
        payload = _serializer().loads(raw_token, max_age=max_age)
    except SignatureExpired:
        raise InvalidCredentialError("Token expired") from None
    except BadSignature:
        raise InvalidCredentialError("Invalid token") from None

    try:
        return Identity(
            id=int(payload["id"]),
            username=str(payload["username"]),
            email=str(payload["email"]),
            role=Role.parse(payload["role"]),
        )
    except (KeyError, TypeError, ValueError):
        raise InvalidCredentialError("Invalid token") from None
