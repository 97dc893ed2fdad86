# Overview: Row locking and retry helpers shared by the stock and billing services.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Lock the selected product rows for the rest of an invoice transaction.

    Billing locks each product before touching its size rows. SQLite has no
    FOR UPDATE, so there the conditional UPDATE in decrement_stock is what
    keeps two checkouts from selling the same litre.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run an invoice or stock transaction, replaying it when the database
    reports a lock timeout, deadlock or stale row.

    func must do its own commit. Everything it flushed is rolled back before
    the next attempt; the wait doubles each time starting at backoff_base
    seconds. The last error is re-raised once attempts run out.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    delay = backoff_base
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt == attempts:
                current_app.logger.error("Giving up after %s database conflicts: %s", attempts, exc)
                raise
            current_app.logger.warning(
                "Database conflict on attempt %s of %s, retrying in %.2fs: %s", attempt, attempts, delay, exc
            )
            time.sleep(delay)
            delay *= 2
