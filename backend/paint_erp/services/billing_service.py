"""
Billing Service - invoice creation from a cart

WHY: An invoice and the stock it consumes must agree. The whole cart is
validated, priced, decremented and written in one database transaction; if
any line fails, every decrement made for earlier lines is rolled back with it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Invoice, InvoiceItem, Product
from ..money import ZERO, quantize_money, quantize_rate, to_decimal
from ..validation import (
    InsufficientStockError,
    NotFoundError,
    ValidationError,
    coerce_amount,
    coerce_count,
    coerce_int,
    coerce_money,
    coerce_size,
)
from paint_erp.time_utils import epoch_millis
from . import stock_service
from .concurrency import lock_for_update, run_with_retry

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
MAX_TAX_RATE = Decimal("100")


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: int
    size: str | None = None
    price: Decimal | None = None


def parse_cart(items) -> list[CartLine]:
    """
    Validate raw cart items ({productId, quantity, size?, price?}).

    Raises ValidationError for an empty cart or a malformed item.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("Invoice must have at least one item")

    lines = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"Item {index} must be an object")
        if item.get("productId") in (None, ""):
            raise ValidationError(f"Item {index}: productId is required")

        product_id = coerce_int(item.get("productId"), f"items[{index}].productId", minimum=1)
        quantity = coerce_count(item.get("quantity"), f"items[{index}].quantity", minimum=1)

        size = item.get("size")
        size = coerce_size(size, f"items[{index}].size") if size not in (None, "") else None

        price = item.get("price")
        price = coerce_money(price, f"items[{index}].price") if price not in (None, "") else None

        lines.append(CartLine(product_id=product_id, quantity=quantity, size=size, price=price))
    return lines


def parse_tax_rate(value) -> Decimal:
    if value is None or value == "":
        return quantize_rate(to_decimal(current_app.config.get("DEFAULT_TAX_RATE", 18)))
    return quantize_rate(coerce_amount(value, "taxRate", maximum=MAX_TAX_RATE))


def next_invoice_number() -> str:
    """
    INV-<epoch ms>-<invoice count + 1>.

    Not a true sequence: two invoices created in the same millisecond with the
    same count collide and the unique constraint rejects the second one.
    """
    count = db.session.query(func.count(Invoice.id)).scalar() or 0
    return f"INV-{epoch_millis()}-{count + 1}"


def _unit_price(product: Product, line: CartLine) -> Decimal:
    # Sized products are priced at the counter; catalog prices may be 0.
    if line.size is None:
        return quantize_money(to_decimal(product.price))
    if line.price is not None:
        return line.price
    row = product.size_row(line.size)
    if row is not None and to_decimal(row.price) > 0:
        return quantize_money(to_decimal(row.price))
    return quantize_money(to_decimal(product.price))


def _create_invoice_locked(user_id: int, lines: list[CartLine], tax_rate: Decimal) -> Invoice:
    subtotal = ZERO
    invoice_items = []

    for position, line in enumerate(lines, start=1):
        product = lock_for_update(db.session.query(Product).filter_by(id=line.product_id)).first()
        if product is None or not product.is_active:
            raise NotFoundError(f"Product with ID {line.product_id} not found")

        # Checks availability and decrements in one conditional UPDATE
        stock_service.decrement_stock(product, line.quantity, size=line.size)

        unit_price = _unit_price(product, line)
        line_total = unit_price * line.quantity
        subtotal += line_total

        invoice_items.append(InvoiceItem(
            position=position,
            product_id=product.id,
            product_name=product.name,
            size=line.size,
            quantity=line.quantity,
            price=unit_price,
            line_total=line_total,
        ))

    tax = subtotal * tax_rate / Decimal(100)
    total = subtotal + tax

    invoice = Invoice(
        invoice_no=next_invoice_number(),
        user_id=user_id,
        items=invoice_items,
        subtotal=subtotal,
        tax=tax,
        tax_rate=tax_rate,
        total=total,
        status="completed",
    )
    db.session.add(invoice)
    db.session.flush()
    return invoice


def create_invoice(*, user_id: int, items, tax_rate=None) -> Invoice:
    """
    Create a completed invoice from cart items and take the stock out.

    Lines are processed in cart order. Pricing: legacy lines (no size) use the
    catalog price; sized lines use the price sent with the line, falling back
    to the stored size price.

    Raises:
        ValidationError: empty cart, malformed item or tax rate
        NotFoundError: a product is missing or inactive
        InsufficientStockError: a line asks for more than is on hand
    Nothing is persisted when any of these is raised.
    """
    lines = parse_cart(items)
    rate = parse_tax_rate(tax_rate)

    def _op() -> Invoice:
        try:
            invoice = _create_invoice_locked(user_id, lines, rate)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return invoice

    try:
        invoice = run_with_retry(_op)
    except (NotFoundError, InsufficientStockError) as e:
        current_app.logger.warning("Invoice for user %s rolled back: %s", user_id, e)
        raise

    current_app.logger.info(
        "Invoice %s created for user %s: %s lines, total %s",
        invoice.invoice_no, user_id, len(lines), invoice.total,
    )
    return invoice


def list_invoices(*, user_id: int, page=1, limit=DEFAULT_PAGE_SIZE) -> dict:
    """
    Owner-scoped invoice listing, newest first.

    Returns:
        Dict with 'items' (Invoice objects) and 'pagination'
        {page, limit, total, pages}.
    """
    page = max(page or 1, 1)
    limit = min(max(limit or DEFAULT_PAGE_SIZE, 1), MAX_PAGE_SIZE)

    base_query = db.session.query(Invoice).filter(Invoice.user_id == user_id)
    total = base_query.count()

    invoices = (
        base_query
        .order_by(Invoice.created_at.desc(), Invoice.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "items": invoices,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit),
        },
    }


def get_invoice(*, user_id: int, invoice_id: int) -> Invoice:
    """Fetch one invoice owned by user_id; other users' invoices are NotFound."""
    invoice = (
        db.session.query(Invoice)
        .filter(Invoice.id == invoice_id, Invoice.user_id == user_id)
        .first()
    )
    if invoice is None:
        raise NotFoundError("Invoice not found")
    return invoice
