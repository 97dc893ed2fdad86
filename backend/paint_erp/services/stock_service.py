# Overview: Service-layer operations for stock; the only code that writes Product.stock or size quantities.

"""
Paint ERP Stock Invariants (authoritative)

Stock model:
- Every product has one ProductSizeStock row per container size (1L, 4L, 10L, 20L).
- Product.stock is the total across those rows ("size mode").
- Legacy mode writes Product.stock directly and leaves the size rows alone,
  so stock can differ from the size total for products managed that way.

Business invariants:
- No quantity may go negative (also enforced by CHECK constraints).
- After any size-mode write, Product.stock == SUM(size quantities). The total
  is recomputed in SQL from the rows, never incremented separately.
- Decrements are conditional UPDATEs (quantity >= requested) so two
  concurrent invoices cannot both take the last units.

Transactions:
- Helpers here flush but never commit, except update_stock() which is a
  complete request-level operation. Callers own the transaction.
"""

from __future__ import annotations

from sqlalchemy import func, select, update

from ..extensions import db
from ..models import CONTAINER_SIZES, Product, ProductSizeStock
from ..validation import InsufficientStockError, NotFoundError, ValidationError, coerce_count, coerce_size
from .concurrency import lock_for_update, run_with_retry


def ensure_size_rows(product: Product) -> None:
    """Create the missing per-size rows (quantity 0, price 0) for a product."""
    present = {row.size for row in product.size_stocks}
    for size in CONTAINER_SIZES:
        if size not in present:
            product.size_stocks.append(ProductSizeStock(size=size, quantity=0, price=0))


def _sync_total(product: Product) -> int:
    """Recompute Product.stock from the size rows inside the database."""
    db.session.flush()
    size_total = (
        select(func.coalesce(func.sum(ProductSizeStock.quantity), 0))
        .where(ProductSizeStock.product_id == product.id)
        .scalar_subquery()
    )
    db.session.execute(
        update(Product.__table__)
        .where(Product.__table__.c.id == product.id)
        .values(stock=size_total)
    )
    db.session.expire(product, ["stock"])
    return product.stock


def available_stock(product: Product, size: str | None = None) -> int:
    if size is None:
        return product.stock
    row = product.size_row(size)
    return row.quantity if row is not None else 0


def apply_initial_stock(
    product: Product,
    *,
    stock: int | None = None,
    stock_by_size: dict[str, int] | None = None,
    price_by_size: dict | None = None,
) -> None:
    """
    Seed stock on a new product.

    With stock_by_size the total is the sum across all sizes (unspecified
    sizes are 0) and any bare stock value is ignored; otherwise the bare
    stock is stored as-is.
    """
    ensure_size_rows(product)
    if price_by_size:
        set_size_prices(product, price_by_size)

    if stock_by_size:
        for row in product.size_stocks:
            row.quantity = stock_by_size.get(row.size, 0)
        _sync_total(product)
    else:
        product.stock = stock or 0
        db.session.flush()


def set_size_prices(product: Product, price_by_size: dict) -> None:
    ensure_size_rows(product)
    for row in product.size_stocks:
        if row.size in price_by_size:
            row.price = price_by_size[row.size]


def set_size_stocks(product: Product, stock_by_size: dict[str, int]) -> int:
    """Overwrite the given sizes (others untouched) and recompute the total."""
    ensure_size_rows(product)
    for row in product.size_stocks:
        if row.size in stock_by_size:
            row.quantity = stock_by_size[row.size]
    return _sync_total(product)


def set_total_stock(product: Product, quantity: int) -> int:
    """Legacy mode: overwrite Product.stock and leave size rows alone."""
    product.stock = quantity
    db.session.flush()
    return product.stock


def decrement_stock(product: Product, quantity: int, size: str | None = None) -> int:
    """
    Take quantity units out of stock, at size granularity when size is given.

    The UPDATE only matches while enough stock remains, so the check and the
    write are one atomic step in the database. Returns the remaining quantity
    at the decremented granularity.

    Raises InsufficientStockError when the row did not match.
    """
    if quantity < 1:
        raise ValidationError("quantity must be at least 1")

    db.session.flush()

    if size is None:
        table = Product.__table__
        result = db.session.execute(
            update(table)
            .where(table.c.id == product.id, table.c.stock >= quantity)
            .values(stock=table.c.stock - quantity)
        )
        db.session.expire(product, ["stock"])
        if result.rowcount != 1:
            raise _insufficient(product, quantity, None)
        return product.stock

    row = product.size_row(size)
    if row is None:
        raise _insufficient(product, quantity, size)

    table = ProductSizeStock.__table__
    result = db.session.execute(
        update(table)
        .where(table.c.id == row.id, table.c.quantity >= quantity)
        .values(quantity=table.c.quantity - quantity)
    )
    db.session.expire(row, ["quantity"])
    if result.rowcount != 1:
        raise _insufficient(product, quantity, size)

    _sync_total(product)
    return row.quantity


def _insufficient(product: Product, requested: int, size: str | None) -> InsufficientStockError:
    available = available_stock(product, size)
    label = f"{product.name} ({size})" if size else product.name
    return InsufficientStockError(
        f"Insufficient stock for {label}. Available: {available}",
        details={
            "product_id": product.id,
            "size": size,
            "requested_quantity": requested,
            "available": available,
        },
    )


def update_stock(
    product_id: int,
    *,
    stock=None,
    size=None,
    size_count=None,
) -> Product:
    """
    Manual stock adjustment from the inventory screen.

    Size mode: size plus a count (size_count, or stock when only that is
    sent) sets that container size and recomputes the total.
    Legacy mode: a bare stock count overwrites the total.

    Raises:
        ValidationError: neither mode's fields present, unknown size, bad count
        NotFoundError: product missing
    """
    if size is not None and size != "":
        size = coerce_size(size)
        raw_count = size_count if size_count is not None else stock
        if raw_count is None:
            raise ValidationError("stockBySize count is required when size is given")
        count = coerce_count(raw_count, "stockBySize")
    elif stock is not None:
        size = None
        count = coerce_count(stock, "stock")
    else:
        raise ValidationError("Provide either stock, or size with stockBySize")

    def _op() -> Product:
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise NotFoundError("Product not found")

        if size is None:
            set_total_stock(product, count)
        else:
            set_size_stocks(product, {size: count})

        db.session.commit()
        return product

    try:
        return run_with_retry(_op)
    except NotFoundError:
        db.session.rollback()
        raise
