import logging
import math
from datetime import datetime, timezone
from typing import Iterable, Optional

from pydantic import BaseModel

from settlement_api.core.errors import InvalidAmountError, InvalidTransitionError, OverpaymentError
from settlement_api.models.base import MONEY_TOLERANCE, round_money
from settlement_api.models.settlement import (
    PaymentMode,
    PaymentState,
    Settlement,
    SettlementPayment,
    SettlementStatus,
)

logger = logging.getLogger(__name__)


class SiteSettlementSummary(BaseModel):
    site_id: str
    owed_to_site: float   # Open amount other sites owe this site
    owed_by_site: float   # Open amount this site owes other sites
    net: float            # owed_to_site - owed_by_site
    open_settlements: int


def payment_state(settlement: Settlement) -> PaymentState:
    return settlement.payment_state


def apply_payment(
    settlement: Settlement,
    amount: float,
    payment_mode: PaymentMode = PaymentMode.CASH,
    reference_number: Optional[str] = None,
    notes: Optional[str] = None,
    payment_date=None,
) -> Settlement:
    """
    Record a payment and return the updated settlement.

    The input settlement is left untouched.
    Raises InvalidAmountError for NaN, infinite or non-positive amounts, and
    OverpaymentError when the payment would exceed the total by more than
    MONEY_TOLERANCE.
    """
    if not math.isfinite(amount) or amount <= 0:
        raise InvalidAmountError(f"Payment amount must be positive, got {amount}")

    if settlement.paid_amount + amount > settlement.total_amount + MONEY_TOLERANCE:
        logger.warning(
            "Rejected overpayment of %.2f on %s (remaining %.2f)",
            amount, settlement.settlement_code, settlement.remaining_amount
        )
        raise OverpaymentError(
            f"Payment {amount:.2f} exceeds remaining {settlement.remaining_amount:.2f}"
        )

    payment_fields = {
        "amount": round_money(amount),
        "payment_mode": payment_mode,
        "reference_number": reference_number,
        "notes": notes,
    }
    if payment_date is not None:
        payment_fields["payment_date"] = payment_date
    payment = SettlementPayment(**payment_fields)

    updated = settlement.model_copy(update={
        "paid_amount": round_money(settlement.paid_amount + amount),
        "payments": [*settlement.payments, payment],
        "updated_at": datetime.now(timezone.utc),
    })
    logger.info(
        "Payment %.2f on %s, state %s",
        amount, settlement.settlement_code, updated.payment_state.value
    )
    return updated


def approve(settlement: Settlement) -> Settlement:
    """pending -> approved. Any other transition is rejected."""
    if settlement.status != SettlementStatus.PENDING:
        raise InvalidTransitionError(
            f"Settlement {settlement.settlement_code} is already {settlement.status.value}"
        )
    return settlement.model_copy(update={
        "status": SettlementStatus.APPROVED,
        "updated_at": datetime.now(timezone.utc),
    })


def summarize_site(site_id: str, settlements: Iterable[Settlement]) -> SiteSettlementSummary:
    """Open (not yet settled) amounts owed to and by a site."""
    owed_to = 0.0
    owed_by = 0.0
    open_count = 0

    for settlement in settlements:
        if settlement.payment_state == PaymentState.SETTLED:
            continue
        if settlement.from_site_id == site_id:
            owed_to += settlement.remaining_amount
        elif settlement.to_site_id == site_id:
            owed_by += settlement.remaining_amount
        else:
            continue
        open_count += 1

    return SiteSettlementSummary(
        site_id=site_id,
        owed_to_site=round_money(owed_to),
        owed_by_site=round_money(owed_by),
        net=round_money(owed_to - owed_by),
        open_settlements=open_count,
    )
