# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

# backend/paint_erp/routes/inventory.py
"""
Inventory routes: brands, product types, products and stock.

SECURITY: All routes require authentication. Creating brands requires the
super_admin role.
"""
from flask import Blueprint, request

from ..decorators import require_auth, require_role
from ..responses import fail, internal_error, ok
from ..services import catalog_service, import_service, stock_service
from ..services.import_service import UploadError
from ..validation import (
    ConflictError,
    NotFoundError,
    PayloadPolicy,
    ValidationError,
    coerce_bool,
    coerce_count,
    coerce_int,
    coerce_money,
    coerce_price_by_size,
    coerce_stock_by_size,
    coerce_text,
    validate_payload,
)

PRODUCT_POLICY = PayloadPolicy(
    fields={
        "name": ("name", lambda v, k: coerce_text(v, k, max_length=255, required=True)),
        "brand": ("brand_id", lambda v, k: coerce_int(v, k, minimum=1)),
        "price": ("price", coerce_money),
        "stock": ("stock", coerce_count),
        "unit": ("unit", lambda v, k: coerce_text(v, k, max_length=16) or "L"),
        "productCode": ("product_code", lambda v, k: coerce_text(v, k, max_length=64)),
        "productImage": ("product_image", lambda v, k: coerce_text(v, k, max_length=1024)),
        "lowStockThreshold": ("low_stock_threshold", coerce_count),
        "type": ("type", lambda v, k: coerce_text(v, k, max_length=128, required=True)),
        "description": ("description", coerce_text),
        "stockBySize": ("stock_by_size", coerce_stock_by_size),
        "priceBySize": ("price_by_size", coerce_price_by_size),
        "isActive": ("is_active", coerce_bool),
    },
    required_on_create={"name", "brand", "type"},
)

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _products_payload(products) -> list[dict]:
    return [p.to_dict() for p in products]


# ---------------------------------------------------------------------------
# Brands
# ---------------------------------------------------------------------------

@inventory_bp.get("/brands")
@require_auth
def list_brands_route():
    brands = catalog_service.list_brands()
    return ok([b.to_dict() for b in brands], count=len(brands))


@inventory_bp.post("/brands")
@require_auth
@require_role("super_admin")
def create_brand_route():
    data = request.get_json(silent=True) or {}
    try:
        brand = catalog_service.create_brand(name=data.get("name"), image=data.get("image") or "")
    except (ValidationError, ConflictError) as e:
        return fail(str(e), 400)
    except Exception as e:
        return internal_error(e, "create brand")

    return ok(brand.to_dict(), message="Brand created successfully", status=201)


# ---------------------------------------------------------------------------
# Product types
# ---------------------------------------------------------------------------

@inventory_bp.get("/types")
@require_auth
def list_types_route():
    types = catalog_service.list_product_types()
    return ok(types, count=len(types))


@inventory_bp.get("/types/<int:brand_id>")
@require_auth
def list_brand_types_route(brand_id: int):
    try:
        catalog_service.get_brand(brand_id)
    except NotFoundError as e:
        return fail(str(e), 404)

    types = catalog_service.list_product_types(brand_id=brand_id)
    return ok(types, count=len(types))


@inventory_bp.post("/types")
@require_auth
def upsert_type_route():
    """Create a product type, or update the icon of an existing (name, brand) pair."""
    data = request.get_json(silent=True) or {}
    try:
        raw_brand = data.get("brand")
        brand_id = None if raw_brand in (None, "") else coerce_int(raw_brand, "brand", minimum=1)
        icon = data.get("icon")
        product_type, created = catalog_service.upsert_product_type(
            name=data.get("name"),
            icon=coerce_text(icon, "icon", max_length=1024) if icon is not None else None,
            brand_id=brand_id,
        )
    except ValidationError as e:
        return fail(str(e), 400)
    except NotFoundError as e:
        return fail(str(e), 404)
    except Exception as e:
        return internal_error(e, "save product type")

    if created:
        return ok(product_type.to_dict(), message="Product type created successfully", status=201)
    return ok(product_type.to_dict(), message="Product type updated successfully")


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

@inventory_bp.get("/products")
@require_auth
def list_products_route():
    """
    List active products.

    Query params:
    - search: case-insensitive substring of the product name
    - brand: brand id
    """
    try:
        raw_brand = request.args.get("brand")
        brand_id = coerce_int(raw_brand, "brand", minimum=1) if raw_brand else None
    except ValidationError as e:
        return fail(str(e), 400)

    products = catalog_service.list_products(search=request.args.get("search"), brand_id=brand_id)
    return ok(_products_payload(products), count=len(products))


@inventory_bp.get("/products/low-stock")
@require_auth
def low_stock_route():
    try:
        raw_brand = request.args.get("brand")
        brand_id = coerce_int(raw_brand, "brand", minimum=1) if raw_brand else None
    except ValidationError as e:
        return fail(str(e), 400)

    products = catalog_service.list_low_stock_products(brand_id=brand_id)
    return ok(_products_payload(products), count=len(products))


@inventory_bp.get("/products/<int:brand_id>")
@require_auth
def list_brand_products_route(brand_id: int):
    try:
        brand = catalog_service.get_brand(brand_id)
    except NotFoundError as e:
        return fail(str(e), 404)

    products = catalog_service.list_products(brand_id=brand.id)
    return ok(_products_payload(products), count=len(products), brand=brand.to_summary())


@inventory_bp.get("/products/<int:brand_id>/<type_name>")
@require_auth
def list_brand_type_products_route(brand_id: int, type_name: str):
    try:
        brand = catalog_service.get_brand(brand_id)
    except NotFoundError as e:
        return fail(str(e), 404)

    products = catalog_service.list_products(brand_id=brand.id, type_name=type_name)
    return ok(_products_payload(products), count=len(products), brand=brand.to_summary())


@inventory_bp.post("/products")
@require_auth
def create_product_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(payload=payload, policy=PRODUCT_POLICY, partial=False)
        product = catalog_service.create_product(patch=patch)
    except (ValidationError, ConflictError) as e:
        return fail(str(e), 400)
    except NotFoundError as e:
        return fail(str(e), 404)
    except Exception as e:
        return internal_error(e, "create product")

    return ok(product.to_dict(), message="Product created successfully", status=201)


@inventory_bp.put("/products/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(payload=payload, policy=PRODUCT_POLICY, partial=True)
        product = catalog_service.update_product(product_id=product_id, patch=patch)
    except (ValidationError, ConflictError) as e:
        return fail(str(e), 400)
    except NotFoundError as e:
        return fail(str(e), 404)
    except Exception as e:
        return internal_error(e, "update product")

    return ok(product.to_dict(), message="Product updated successfully")


@inventory_bp.delete("/products/<int:product_id>")
@require_auth
def delete_product_route(product_id: int):
    try:
        catalog_service.delete_product(product_id=product_id)
    except NotFoundError as e:
        return fail(str(e), 404)
    except Exception as e:
        return internal_error(e, "delete product")

    return ok(message="Product deleted successfully")


@inventory_bp.patch("/products/<int:product_id>/stock")
@require_auth
def update_stock_route(product_id: int):
    """
    Set stock for a product.

    Body: {stock} overwrites the total, {size, stockBySize} sets one
    container size and recomputes the total.
    """
    data = request.get_json(silent=True) or {}
    try:
        product = stock_service.update_stock(
            product_id,
            stock=data.get("stock"),
            size=data.get("size"),
            size_count=data.get("stockBySize"),
        )
    except ValidationError as e:
        return fail(str(e), 400)
    except NotFoundError as e:
        return fail(str(e), 404)
    except Exception as e:
        return internal_error(e, "update stock")

    return ok(product.to_dict(), message="Stock updated successfully")


@inventory_bp.post("/products/bulk")
@require_auth
def bulk_create_route():
    """
    Bulk product upload.

    JSON body {brandId, productType, products: [...]}, or multipart form
    with a CSV/Excel `file` plus brandId and productType fields.
    Responds 201 when at least one product was created, 400 otherwise;
    per-entry failures are listed in data.failed either way.
    """
    upload = request.files.get("file")
    try:
        if upload is not None:
            source = request.form
            entries = import_service.parse_upload(upload)
        else:
            source = request.get_json(silent=True) or {}
            entries = source.get("products")

        raw_brand = source.get("brandId")
        if raw_brand in (None, ""):
            raise ValidationError("brandId is required")
        brand_id = coerce_int(raw_brand, "brandId", minimum=1)

        result = import_service.bulk_create_products(
            brand_id=brand_id,
            product_type=source.get("productType"),
            entries=entries,
        )
    except (ValidationError, UploadError) as e:
        return fail(str(e), 400)
    except NotFoundError as e:
        return fail(str(e), 404)
    except Exception as e:
        return internal_error(e, "bulk upload products")

    message = f"{len(result.success)} products created, {len(result.failed)} failed"
    if not result.success:
        return fail(message, 400, data=result.to_dict())
    return ok(result.to_dict(), message=message, status=201)
