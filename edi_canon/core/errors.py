"""
Exception hierarchy for the canonicalization engine.
"""


class EdiCanonError(Exception):
    """Base class for all engine errors."""


class DocumentRejected(EdiCanonError):
    """
    Raised when a purchase-order document cannot be canonicalized.

    Rejection is terminal for the source record: no header or line items
    are produced and the record is not retried automatically.
    """

    def __init__(self, reason: str, detail: str = ""):
        self.reason = reason
        self.detail = detail
        message = f"[{reason}] {detail}" if detail else f"[{reason}]"
        super().__init__(message)


class RuleConfigError(EdiCanonError, ValueError):
    """Raised when the partner rule configuration is invalid."""


class CatalogUnavailableError(EdiCanonError):
    """Raised by a product catalog when the lookup backend cannot be reached."""
