# Overview: Request decorators that apply the identity & role gate to API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .services import token_service, permission_service
from .services.permission_service import PermissionDeniedError
from .services.token_service import MissingCredentialError, InvalidCredentialError


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.identity to the Identity embedded in the token. No database
    lookup happens here; the signed token is trusted until it expires.

    Returns 401 if:
    - No Authorization header / not a Bearer credential
    - Signature invalid, token expired, or payload malformed
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            token = token_service.extract_bearer(request.headers.get("Authorization"))
            identity = token_service.authenticate(token)
        except MissingCredentialError:
            return jsonify({"error": "Authentication required"}), 401
        except InvalidCredentialError:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.identity = identity
        return f(*args, **kwargs)

    return decorated_function


def require_role(operation: str):
    """
    Require the caller's role to be allowed for operation (see roles.OPERATION_ROLES).

    Must be stacked below @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            identity = getattr(g, "identity", None)
            if identity is None:
                return jsonify({"error": "Authentication required"}), 401

            try:
                permission_service.authorize(identity, operation)
            except PermissionDeniedError as e:
                current_app.logger.warning(
                    "Permission denied: user=%s role=%s operation=%s path=%s",
                    identity.id, identity.role.value, operation, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_operation": operation,
                    "message": str(e),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
