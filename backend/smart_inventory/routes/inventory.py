# backend/smart_inventory/routes/inventory.py
"""
Inventory routes.

SECURITY: All routes require authentication.
- Reads: any role
- Create / update: admin, manager
- Delete: admin
"""
from flask import Blueprint, request, current_app

from ..services import inventory_service
from ..models import StockItem
from ..roles import Operation
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    NotFoundError,
)
from ..decorators import require_auth, require_role

STOCK_ITEM_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "category",
        "description",
        "image_url",
        "price_cents",
        "quantity",
        "reorder_threshold",
    },
    required_on_create={"name", "category", "price_cents", "quantity", "reorder_threshold"},
)

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventories")


@inventory_bp.get("")
@require_auth
@require_role(Operation.VIEW_INVENTORY)
def list_items_route():
    """
    List active stock items ordered by name.

    Query params:
    - low_stock: "true" to return only items at or below their reorder threshold
    """
    low_stock_only = request.args.get("low_stock", "false").lower() == "true"
    items = inventory_service.list_items(low_stock_only=low_stock_only)
    return [item.to_dict() for item in items], 200


@inventory_bp.get("/<int:item_id>")
@require_auth
@require_role(Operation.VIEW_INVENTORY)
def get_item_route(item_id: int):
    try:
        item = inventory_service.get_item(item_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return item.to_dict(), 200


@inventory_bp.post("")
@require_auth
@require_role(Operation.CREATE_INVENTORY)
def create_item_route():
    payload = request.get_json(silent=True)

    try:
        patch = validate_payload(model=StockItem, payload=payload, policy=STOCK_ITEM_POLICY, partial=False)
        item = inventory_service.create_item(patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create stock item")
        return {"error": "Internal server error"}, 500

    return item.to_dict(), 201


@inventory_bp.put("/<int:item_id>")
@require_auth
@require_role(Operation.UPDATE_INVENTORY)
def update_item_route(item_id: int):
    payload = request.get_json(silent=True)

    try:
        patch = validate_payload(model=StockItem, payload=payload, policy=STOCK_ITEM_POLICY, partial=True)
        item = inventory_service.update_item(item_id=item_id, patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to update stock item")
        return {"error": "Internal server error"}, 500

    return item.to_dict(), 200


@inventory_bp.delete("/<int:item_id>")
@require_auth
@require_role(Operation.DELETE_INVENTORY)
def delete_item_route(item_id: int):
    """
    Delete a stock item. Items with sale history are deactivated instead
    of removed ("archived": true in the response).
    """
    try:
        hard = inventory_service.delete_item(item_id=item_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to delete stock item")
        return {"error": "Internal server error"}, 500

    current_app.logger.info("Stock item %s %s", item_id, "deleted" if hard else "archived")
    return {"ok": True, "archived": not hard, "message": "Inventory deleted successfully"}, 200
