# Overview: Flask API routes for billing operations; parses input and returns JSON responses.

# backend/paint_erp/routes/billing.py
"""
Invoice routes.

SECURITY: All routes require authentication and are scoped to the caller:
users only ever see invoices they created.
"""
from flask import Blueprint, g, request

from ..decorators import require_auth
from ..responses import fail, internal_error, ok
from ..services import billing_service
from ..validation import InsufficientStockError, NotFoundError, ValidationError, coerce_int

billing_bp = Blueprint("billing", __name__, url_prefix="/api/billing")


@billing_bp.post("/invoices")
@require_auth
def create_invoice_route():
    """
    Create an invoice from a cart and decrement stock.

    Body: {items: [{productId, quantity, size?, price?}], taxRate?}
    Nothing is saved if any line fails.
    """
    data = request.get_json(silent=True) or {}
    try:
        invoice = billing_service.create_invoice(
            user_id=g.current_user.id,
            items=data.get("items"),
            tax_rate=data.get("taxRate"),
        )
    except InsufficientStockError as e:
        return fail(str(e), 400, details=e.details)
    except ValidationError as e:
        return fail(str(e), 400)
    except NotFoundError as e:
        return fail(str(e), 404)
    except Exception as e:
        return internal_error(e, "create invoice")

    return ok(invoice.to_dict(), message="Invoice created successfully", status=201)


@billing_bp.get("/invoices")
@require_auth
def list_invoices_route():
    """
    List the caller's invoices, newest first.

    Query params:
    - page: int (default 1)
    - limit: int (default 10, max 100)
    """
    try:
        raw_page = request.args.get("page")
        raw_limit = request.args.get("limit")
        page = coerce_int(raw_page, "page", minimum=1) if raw_page else 1
        limit = coerce_int(raw_limit, "limit", minimum=1) if raw_limit else billing_service.DEFAULT_PAGE_SIZE
    except ValidationError as e:
        return fail(str(e), 400)

    result = billing_service.list_invoices(user_id=g.current_user.id, page=page, limit=limit)
    return ok(
        [invoice.to_dict() for invoice in result["items"]],
        pagination=result["pagination"],
    )


@billing_bp.get("/invoices/<int:invoice_id>")
@require_auth
def get_invoice_route(invoice_id: int):
    try:
        invoice = billing_service.get_invoice(user_id=g.current_user.id, invoice_id=invoice_id)
    except NotFoundError as e:
        return fail(str(e), 404)

    return ok(invoice.to_dict())
