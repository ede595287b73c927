# Overview: Flask API routes for the product catalog; parses input and returns JSON responses.

# backend/mua_admin/routes/products.py
"""
Product catalog routes.

Product names are unique; a duplicate name answers 409.

SECURITY: All routes require authentication.
"""
from flask import Blueprint, request

from ..decorators import require_auth
from ..errors import ConflictError, NotFoundError, ValidationError
from ..services import product_service
from . import internal_error

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products_route():
    """
    List products grouped by category order.

    Query params:
    - include_inactive: "true" to include deactivated products
    """
    include_inactive = request.args.get("include_inactive", "").lower() == "true"
    products = product_service.list_products(include_inactive=include_inactive)
    return {"products": [p.to_dict() for p in products]}


@products_bp.post("")
@require_auth
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        product = product_service.create_product(payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        return internal_error("Failed to create product")

    return {"product": product.to_dict()}, 201


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        product = product_service.get_product(product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"product": product.to_dict()}


@products_bp.put("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        product = product_service.update_product(product_id, payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        return internal_error("Failed to update product")

    return {"product": product.to_dict()}


@products_bp.delete("/<int:product_id>")
@require_auth
def delete_product_route(product_id: int):
    try:
        deleted = product_service.delete_product(product_id)
    except Exception:
        return internal_error("Failed to delete product")

    if not deleted:
        return {"error": "Product not found"}, 404
    return {"success": True, "message": "Product deleted"}
