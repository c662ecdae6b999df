# backend/smart_inventory/routes/sales.py
"""Sales API routes. Any authenticated role may record and read sales."""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import sales_service, reporting_service
from ..services.sales_service import SaleError, ItemNotFoundError, InsufficientStockError
from ..roles import Operation
from ..time_utils import parse_iso_datetime
from ..validation import ValidationError, NotFoundError, parse_sale_request
from ..decorators import require_auth, require_role


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
@require_role(Operation.VIEW_SALES)
def list_sales_route():
    """
    List sales newest first.

    Query params:
    - page: int (optional) - page number (1-indexed). If omitted, returns all sales.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    page = request.args.get("page", type=int)
    per_page = request.args.get("per_page", type=int)
    return jsonify(sales_service.list_sales(page=page, per_page=per_page)), 200


@sales_bp.post("")
@require_auth
@require_role(Operation.CREATE_SALE)
def record_sale_route():
    """
    Record a sale and decrement stock.

    Body: {"item_id": int, "quantity": int, "customer": {"name", "email", "phone"}?}
    409 when the item does not have enough stock.
    """
    try:
        sale_request = parse_sale_request(request.get_json(silent=True))
        sale = sales_service.record_sale(
            item_id=sale_request.item_id,
            quantity=sale_request.quantity,
            customer=sale_request.customer,
            user_id=g.identity.id,
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ItemNotFoundError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except InsufficientStockError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Sale created successfully", "sale": sale.to_dict()}), 201


@sales_bp.get("/stats")
@require_auth
@require_role(Operation.VIEW_STATISTICS)
def sales_stats_route():
    """
    Revenue totals and top sellers.

    Query params:
    - as_of: ISO-8601 datetime (optional) - evaluate windows at this instant instead of now
    """
    try:
        as_of = parse_iso_datetime(request.args.get("as_of"))
    except ValueError:
        return jsonify({"error": "as_of must be an ISO-8601 datetime"}), 400

    try:
        stats = reporting_service.compute_statistics(now=as_of)
    except Exception:
        current_app.logger.exception("Failed to compute sales statistics")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(stats), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_role(Operation.VIEW_SALES)
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"sale": sale.to_dict()}), 200
