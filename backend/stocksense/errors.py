# Overview: Error taxonomy shared by the ledger core and the HTTP layer.

"""
StockSense error taxonomy.

Every error that may cross the core boundary carries:
- code: stable machine-readable category (one per error kind)
- http_status: status the HTTP layer answers with
- details: optional structured context (offending items, ids)

StoreError is internal to the ledger store. The transaction manager converts
it into TransactionFailed after rolling back, so storage error text never
reaches a caller.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for errors surfaced by the stock ledger core."""

    code = "error"
    http_status = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(LedgerError, ValueError):
    """400-level input problem, rejected before any store interaction."""

    code = "validation_error"
    http_status = 400


class NotFound(LedgerError):
    """Unknown product, sale or user id."""

    code = "not_found"
    http_status = 404


class InsufficientStockError(LedgerError):
    """A sale would drive a product's quantity below zero."""

    code = "insufficient_stock"
    http_status = 409


class ConflictError(LedgerError, ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""

    code = "conflict"
    http_status = 409


class Forbidden(LedgerError):
    """Access policy denied the operation for the caller's role."""

    code = "forbidden"
    http_status = 403


class TransactionFailed(LedgerError):
    """Store-level commit/rollback failure or lock timeout."""

    code = "transaction_failed"
    http_status = 503


class StoreError(LedgerError):
    """Raised by the ledger store on constraint or driver failures."""

    code = "store_error"
    http_status = 500
