# backend/paint_erp/services/catalog_service.py
"""
Catalog Service: brands, product types and products.

Stock quantities are never written here directly; product creation and
stockBySize edits go through stock_service so the total stays in line with
the container sizes.
"""
from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import Brand, Product, ProductType
from ..validation import ConflictError, NotFoundError, ValidationError
from . import stock_service

PRODUCT_MUTABLE_FIELDS = {
    "name",
    "price",
    "unit",
    "product_code",
    "product_image",
    "low_stock_threshold",
    "type",
    "description",
    "is_active",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


# ---------------------------------------------------------------------------
# Brands
# ---------------------------------------------------------------------------

def list_brands() -> list[Brand]:
    return (
        db.session.query(Brand)
        .filter(Brand.is_active.is_(True))
        .order_by(Brand.name.asc())
        .all()
    )


def get_brand(brand_id: int) -> Brand:
    brand = db.session.query(Brand).filter_by(id=brand_id).first()
    if brand is None:
        raise NotFoundError("Brand not found")
    return brand


def create_brand(*, name: str, image: str = "") -> Brand:
    """
    Create a brand.

    Raises:
        ValidationError: blank name
        ConflictError: a brand with the same trimmed name exists (case-sensitive)
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Brand name is required")

    if db.session.query(Brand).filter_by(name=name).first():
        raise ConflictError("Brand with this name already exists")

    brand = Brand(name=name, image=(image or "").strip())
    db.session.add(brand)
    db.session.commit()
    return brand


# ---------------------------------------------------------------------------
# Product types
# ---------------------------------------------------------------------------

def upsert_product_type(*, name: str, icon: str | None = None, brand_id: int | None = None) -> tuple[ProductType, bool]:
    """
    Create or update a product type keyed by (name, brand).

    brand_id None is a global type. An existing record only has its icon
    replaced (when one is given) and is re-activated.

    Returns (product_type, created).
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Product type name is required")
    if brand_id is not None:
        get_brand(brand_id)

    existing = (
        db.session.query(ProductType)
        .filter(ProductType.name == name)
        .filter(ProductType.brand_id.is_(None) if brand_id is None else ProductType.brand_id == brand_id)
        .first()
    )
    if existing:
        if icon is not None:
            existing.icon = icon.strip()
        existing.is_active = True
        db.session.commit()
        return existing, False

    product_type = ProductType(name=name, icon=(icon or "").strip(), brand_id=brand_id)
    db.session.add(product_type)
    db.session.commit()
    return product_type, True


def list_product_types(brand_id: int | None = None) -> list[dict]:
    """
    Merge ProductType records with the type names already used on products.

    Products created before ProductType existed still surface their type.
    Names are de-duplicated exactly. For a brand, its own record wins over the
    global one; in the unscoped list the global record wins over any brand's.
    Records win over bare product names. Sorted by name.
    """
    records_q = db.session.query(ProductType).filter(ProductType.is_active.is_(True))
    names_q = db.session.query(Product.type).filter(Product.is_active.is_(True))
    if brand_id is not None:
        records_q = records_q.filter(
            or_(ProductType.brand_id.is_(None), ProductType.brand_id == brand_id)
        )
        names_q = names_q.filter(Product.brand_id == brand_id)

    if brand_id is None:
        records = sorted(records_q.all(), key=lambda t: (t.brand_id is not None, t.id))
    else:
        records = sorted(records_q.all(), key=lambda t: (t.brand_id is None, t.id))

    merged: dict[str, dict] = {}
    for record in records:
        merged.setdefault(record.name, record.to_dict())
    for (type_name,) in names_q.distinct().all():
        if type_name:
            merged.setdefault(type_name, {
                "id": None,
                "name": type_name,
                "icon": "",
                "brand": None,
                "isActive": True,
            })

    return [merged[name] for name in sorted(merged)]


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

def list_products(
    *,
    search: str | None = None,
    brand_id: int | None = None,
    type_name: str | None = None,
) -> list[Product]:
    """Active products, name-sorted, optionally filtered by name search, brand and type."""
    q = db.session.query(Product).filter(Product.is_active.is_(True))
    if brand_id is not None:
        q = q.filter(Product.brand_id == brand_id)
    if type_name:
        q = q.filter(Product.type == type_name)
    if search:
        q = q.filter(Product.name.icontains(search.strip(), autoescape=True))
    return q.order_by(Product.name.asc(), Product.id.asc()).all()


def get_product(product_id: int, *, include_inactive: bool = False) -> Product:
    q = db.session.query(Product).filter(Product.id == product_id)
    if not include_inactive:
        q = q.filter(Product.is_active.is_(True))
    product = q.first()
    if product is None:
        raise NotFoundError("Product not found")
    return product


def ensure_product_unique(*, brand_id: int, product_code: str, name: str, exclude_id: int | None = None) -> None:
    """
    Products are unique per brand by productCode; products without a code
    fall back to being unique by name.
    """
    q = db.session.query(Product).filter(Product.brand_id == brand_id)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)

    if product_code:
        if q.filter(Product.product_code == product_code).first():
            raise ConflictError(f"Product with code {product_code} already exists for this brand")
    elif q.filter(Product.name == name, Product.product_code == "").first():
        raise ConflictError("Product with this name already exists for this brand")


def create_product(*, patch: dict) -> Product:
    """
    Create product using a validated patch dict.

    patch carries column attributes plus optional stock_by_size /
    price_by_size maps. Either stock or a stock_by_size map is required.

    Raises:
        ValidationError: missing stock
        NotFoundError: brand does not exist
        ConflictError: duplicate code (or name) within the brand
    """
    stock_by_size = patch.get("stock_by_size") or None
    price_by_size = patch.get("price_by_size") or None
    if patch.get("stock") is None and not stock_by_size:
        raise ValidationError("Valid stock quantity is required")

    brand = get_brand(patch["brand_id"])

    name = patch["name"]
    product_code = patch.get("product_code", "")
    ensure_product_unique(brand_id=brand.id, product_code=product_code, name=name)

    p = Product(brand_id=brand.id, price=0, stock=0)
    apply_product_patch(p, patch)
    db.session.add(p)
    db.session.flush()  # ensure p.id exists before size rows

    stock_service.apply_initial_stock(
        p,
        stock=patch.get("stock"),
        stock_by_size=stock_by_size,
        price_by_size=price_by_size,
    )

    db.session.commit()
    return p


def update_product(*, product_id: int, patch: dict) -> Product:
    """
    Partial update.

    A new productImage is copied to every other product of the brand in the
    same colour-variant family (same code before the first hyphen).

    Raises:
        NotFoundError: product missing
        ConflictError: new code (or name) collides within the brand
    """
    p = get_product(product_id, include_inactive=True)

    new_code = patch.get("product_code", p.product_code)
    new_name = patch.get("name", p.name)
    if new_code != p.product_code or new_name != p.name:
        ensure_product_unique(brand_id=p.brand_id, product_code=new_code, name=new_name, exclude_id=p.id)

    image_changed = "product_image" in patch and patch["product_image"] != p.product_image

    apply_product_patch(p, patch)

    if patch.get("price_by_size"):
        stock_service.set_size_prices(p, patch["price_by_size"])
    if patch.get("stock_by_size"):
        stock_service.set_size_stocks(p, patch["stock_by_size"])

    if image_changed:
        _propagate_image(p)

    db.session.commit()
    return p


def _propagate_image(product: Product) -> int:
    base = product.base_code
    if not base:
        return 0

    siblings = (
        db.session.query(Product)
        .filter(
            Product.brand_id == product.brand_id,
            Product.id != product.id,
            or_(
                Product.product_code == base,
                Product.product_code.startswith(f"{base}-", autoescape=True),
            ),
        )
        .all()
    )
    for sibling in siblings:
        sibling.product_image = product.product_image
    return len(siblings)


def delete_product(*, product_id: int) -> Product:
    """
    Soft-delete a product.

    Invoices keep their line snapshots; nothing cascades.
    """
    p = get_product(product_id, include_inactive=True)
    if p.is_active:
        p.is_active = False
    db.session.commit()
    return p


def list_low_stock_products(*, brand_id: int | None = None) -> list[Product]:
    """Active products at or below their low-stock threshold, lowest stock first."""
    q = db.session.query(Product).filter(
        Product.is_active.is_(True),
        Product.stock <= Product.low_stock_threshold,
    )
    if brand_id is not None:
        q = q.filter(Product.brand_id == brand_id)
    return q.order_by(Product.stock.asc(), Product.name.asc()).all()
