"""Settlement error kinds.

Every rejected settlement operation raises a subclass of ``SettlementError``.
The ``kind`` attribute is the stable machine-readable name returned to API
clients; ``status_code`` is the HTTP status the endpoint layer responds with.
"""
from enum import Enum


class ErrorKind(str, Enum):
    VENDOR_UNSETTLED = "VendorUnsettled"
    NOTHING_TO_SETTLE = "NothingToSettle"
    INVALID_AMOUNT = "InvalidAmount"
    OVERPAYMENT = "Overpayment"
    INVALID_TRANSITION = "InvalidTransition"
    NOT_FOUND = "SettlementNotFound"
    CONCURRENT_UPDATE = "ConcurrentUpdate"


class SettlementError(Exception):
    """Base exception for settlement operations."""
    kind: ErrorKind = ErrorKind.NOTHING_TO_SETTLE
    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class VendorUnsettledError(SettlementError):
    """Creditor site has not paid the vendor for some selected material."""
    kind = ErrorKind.VENDOR_UNSETTLED
    status_code = 409

    def __init__(self, message: str, batch_ref_codes=None):
        super().__init__(message)
        self.batch_ref_codes = list(batch_ref_codes or [])


class NothingToSettleError(SettlementError):
    kind = ErrorKind.NOTHING_TO_SETTLE
    status_code = 400


class InvalidAmountError(SettlementError):
    kind = ErrorKind.INVALID_AMOUNT
    status_code = 400


class OverpaymentError(SettlementError):
    kind = ErrorKind.OVERPAYMENT
    status_code = 400


class InvalidTransitionError(SettlementError):
    kind = ErrorKind.INVALID_TRANSITION
    status_code = 409


class SettlementNotFoundError(SettlementError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404


class ConcurrentUpdateError(SettlementError):
    """The stored settlement changed between read and write."""
    kind = ErrorKind.CONCURRENT_UPDATE
    status_code = 409
