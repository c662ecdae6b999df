# backend/smart_inventory/routes/auth.py
"""
Authentication API routes.

- POST /api/auth/signup: create an account (employee unless an admin token assigns another role)
- POST /api/auth/login: exchange email + password for a signed token
- GET  /api/auth/me: echo the identity carried by the caller's token
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import permission_service
from ..services import token_service
from ..services.auth_service import LoginError
from ..services.permission_service import PermissionDeniedError
from ..services.token_service import MissingCredentialError, InvalidCredentialError
from ..roles import DEFAULT_ROLE, Operation, Role
from ..validation import ValidationError
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _check_role_assignment(requested_role):
    """
    Anyone may sign up as an employee. Any other role needs an admin token.

    Returns an error response tuple, or None when the signup may proceed.
    """
    if not requested_role:
        return None
    try:
        role = Role.parse(requested_role)
    except ValueError as e:
        return jsonify({"error": str(e), "success": False}), 400
    if role is DEFAULT_ROLE:
        return None

    try:
        token = token_service.extract_bearer(request.headers.get("Authorization"))
        identity = token_service.authenticate(token)
    except MissingCredentialError:
        return jsonify({"error": "Authentication required", "message": "Only an admin can assign a role"}), 401
    except InvalidCredentialError:
        return jsonify({"error": "Invalid or expired token"}), 401

    try:
        permission_service.authorize(identity, Operation.ASSIGN_ROLE)
    except PermissionDeniedError as e:
        current_app.logger.warning(
            "Permission denied: user=%s role=%s operation=%s path=%s",
            identity.id, identity.role.value, Operation.ASSIGN_ROLE, request.path,
        )
        return jsonify({
            "error": "Permission denied",
            "required_operation": Operation.ASSIGN_ROLE,
            "message": str(e),
        }), 403
    return None


@auth_bp.post("/signup")
def signup_route():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    denied = _check_role_assignment(data.get("role"))
    if denied is not None:
        return denied

    try:
        user = auth_service.register_user(
            username=data.get("username"),
            email=data.get("email"),
            password=data.get("password"),
            re_password=data.get("rePassword", data.get("re_password")),
            role=data.get("role"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e), "success": False}), 400
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("User %s registered with role %s", user.id, user.role.value)
    return jsonify({
        "message": "User created successfully Please Login!",
        "user": {
            "id": user.id,
            "username": user.username,
            "email": user.email,
            "role": user.role.value,
        },
    }), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and issue a signed token.

    Token must be sent as "Authorization: Bearer <token>" on protected routes.
    It is also returned in the Authorization response header.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    email = data.get("email")
    password = data.get("password")
    if not email or not password:
        return jsonify({"error": "Email and Password are required"}), 400

    try:
        user, token = auth_service.login(email, password)
    except LoginError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500

    identity = auth_service.identity_for(user)
    response = jsonify({
        "message": "Login Successful",
        "token": token,
        "user": identity.to_dict(),
        "operations": permission_service.allowed_operations(identity),
    })
    response.headers["Authorization"] = f"Bearer {token}"
    return response, 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({
        "user": g.identity.to_dict(),
        "operations": permission_service.allowed_operations(g.identity),
    }), 200
