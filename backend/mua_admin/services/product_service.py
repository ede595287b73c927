# Overview: Product catalog CRUD.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product
from ..validation import MAX_AMOUNT, ModelValidationPolicy, validate_payload


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "category", "description", "price", "image_url", "is_active"},
    required_on_create={"name", "category", "price"},
)


def enforce_rules_product(patch: dict) -> None:
    if "price" in patch:
        price = patch["price"]
        if price is None or price < 0:
            raise ValidationError("Price must be a valid positive number")
        if price > MAX_AMOUNT:
            raise ValidationError(f"Price cannot exceed {MAX_AMOUNT:,}")


def _commit_unique_name() -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("A product with this name already exists")


def create_product(payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)

    product = Product(**patch)
    db.session.add(product)
    _commit_unique_name()
    return product


def update_product(product_id: int, payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    product = get_product(product_id)
    for key, value in patch.items():
        setattr(product, key, value)
    _commit_unique_name()
    return product


def delete_product(product_id: int) -> bool:
    product = db.session.get(Product, product_id)
    if not product:
        return False
    db.session.delete(product)
    db.session.commit()
    return True


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product


def list_products(include_inactive: bool = False) -> list[Product]:
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    return query.order_by(Product.category.asc(), Product.name.asc()).all()
