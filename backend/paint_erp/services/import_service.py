# Overview: Service-layer operations for bulk product upload; each entry commits or fails on its own.

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from typing import Any

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import CONTAINER_SIZES, Product
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    coerce_count,
    coerce_stock_by_size,
    coerce_text,
)
from . import catalog_service, stock_service


EXCEL_EXTENSIONS = {"xlsx", "xlsm", "xltx", "xltm"}

# Spreadsheet headers accepted for each entry field (matched case-insensitively).
# When a row carries several aliases, the first one present in this order wins.
COLUMN_ALIASES = {
    "name": ("name", "product name"),
    "productCode": ("productcode", "product code", "code"),
    "colour": ("colour", "color"),
    "lowStockThreshold": ("lowstockthreshold", "low stock threshold"),
    "productImage": ("productimage", "product image", "image"),
    "description": ("description",),
}


class UploadError(ValueError):
    """Raised when an uploaded file cannot be turned into entries."""


@dataclass
class BulkResult:
    success: list[Product] = field(default_factory=list)
    failed: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": [p.to_dict() for p in self.success],
            "failed": self.failed,
        }


def _display_name(name: str, colour: str) -> str:
    return f"{name} - {colour}" if colour else name


def _create_entry(*, brand_id: int, product_type: str, entry: Any) -> Product:
    if not isinstance(entry, dict):
        raise ValidationError("Entry must be an object")

    name = coerce_text(entry.get("name"), "name", max_length=200, required=True)
    product_code = coerce_text(entry.get("productCode"), "productCode", max_length=64, required=True)
    colour = coerce_text(entry.get("colour"), "colour", max_length=50)
    stock_by_size = coerce_stock_by_size(entry.get("stockBySize"))

    raw_threshold = entry.get("lowStockThreshold")
    low_stock_threshold = 5 if raw_threshold in (None, "") else coerce_count(raw_threshold, "lowStockThreshold")

    display_name = _display_name(name, colour)
    catalog_service.ensure_product_unique(brand_id=brand_id, product_code=product_code, name=display_name)

    product = Product(
        brand_id=brand_id,
        name=display_name,
        type=product_type,
        product_code=product_code,
        product_image=coerce_text(entry.get("productImage"), "productImage", max_length=1024),
        description=coerce_text(entry.get("description"), "description"),
        low_stock_threshold=low_stock_threshold,
        price=0,
        stock=0,
        unit="L",
    )
    db.session.add(product)
    db.session.flush()
    stock_service.apply_initial_stock(product, stock=0, stock_by_size=stock_by_size)
    return product


def bulk_create_products(*, brand_id: int, product_type: str, entries: Any) -> BulkResult:
    """
    Create one product per entry under brand_id / product_type.

    Entries are independent: each is validated, checked for a duplicate
    productCode in the brand (including codes created earlier in this same
    upload) and committed on its own. A failing entry is rolled back and
    reported with its reason; processing always continues to the end, so
    len(success) + len(failed) == len(entries).

    Raises (before any entry is attempted):
        NotFoundError: brand missing
        ValidationError: blank product type or empty entry list
    """
    product_type = (product_type or "").strip() if isinstance(product_type, str) else ""
    if not product_type:
        raise ValidationError("productType is required")
    if not isinstance(entries, list) or not entries:
        raise ValidationError("products must be a non-empty list")

    brand = catalog_service.get_brand(brand_id)
    result = BulkResult()

    for index, entry in enumerate(entries):
        raw = entry if isinstance(entry, dict) else {}
        try:
            product = _create_entry(brand_id=brand.id, product_type=product_type, entry=entry)
            db.session.commit()
            result.success.append(product)
        except (ValidationError, ConflictError, NotFoundError) as e:
            db.session.rollback()
            result.failed.append({
                "index": index,
                "name": raw.get("name"),
                "productCode": raw.get("productCode"),
                "reason": str(e),
            })
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.warning("Bulk upload entry %s rejected by the database: %s", index, e)
            result.failed.append({
                "index": index,
                "name": raw.get("name"),
                "productCode": raw.get("productCode"),
                "reason": "Could not save product",
            })

    current_app.logger.info(
        "Bulk upload for brand %s: %s created, %s failed",
        brand.id, len(result.success), len(result.failed),
    )
    return result


def _normalize_header(header: Any) -> str:
    return str(header).strip().lower() if header is not None else ""


def rows_to_entries(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Map spreadsheet rows onto bulk-upload entries.

    Size columns are the container labels themselves (1L, 4L, 10L, 20L).
    Completely blank rows are skipped.
    """
    entries = []
    for row in rows:
        normalized = {_normalize_header(k): v for k, v in row.items()}
        if all(v is None or str(v).strip() == "" for v in normalized.values()):
            continue

        entry: dict[str, Any] = {}
        for key, aliases in COLUMN_ALIASES.items():
            for alias in aliases:
                if alias in normalized and normalized[alias] is not None:
                    value = normalized[alias]
                    entry[key] = value.strip() if isinstance(value, str) else value
                    break

        stock_by_size = {}
        for size in CONTAINER_SIZES:
            value = normalized.get(size.lower())
            if value is not None and str(value).strip() != "":
                stock_by_size[size] = value.strip() if isinstance(value, str) else value
        entry["stockBySize"] = stock_by_size
        entries.append(entry)
    return entries


def parse_upload(file_storage) -> list[dict[str, Any]]:
    """Read a CSV or Excel upload into bulk-upload entries."""
    filename = file_storage.filename or ""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""

    if ext == "csv":
        try:
            stream = io.StringIO(file_storage.stream.read().decode("utf-8-sig"))
        except UnicodeDecodeError:
            raise UploadError("CSV file must be UTF-8 encoded")
        rows = [row for row in csv.DictReader(stream)]
    elif ext in EXCEL_EXTENSIONS:
        from openpyxl import load_workbook
        from openpyxl.utils.exceptions import InvalidFileException
        from zipfile import BadZipFile

        try:
            wb = load_workbook(file_storage.stream, read_only=True, data_only=True)
        except (InvalidFileException, BadZipFile, OSError):
            raise UploadError("Could not read Excel file")
        data = list(wb.active.values)
        if not data:
            rows = []
        else:
            headers = [str(h) if h is not None else "" for h in data[0]]
            rows = [
                {headers[i]: row[i] for i in range(min(len(headers), len(row)))}
                for row in data[1:]
            ]
    else:
        raise UploadError("Unsupported file format. Upload a .csv or .xlsx file")

    return rows_to_entries(rows)
