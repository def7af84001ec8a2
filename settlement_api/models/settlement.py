"""
Settlement model - a bill from one site to another for used materials.

Design principles:
- Created from a Balance (optionally a material subset) or a netted ReciprocalPair
- from_site_id is the creditor (payee), to_site_id is the debtor (payer)
- Payments only grow paid_amount: pending -> partially_paid -> settled
- Stored status only tracks approval: pending -> approved
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from settlement_api.models.base import MongoModel, PyObjectId, MONEY_TOLERANCE, round_money


class SettlementStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"


class SettlementKind(str, Enum):
    STANDARD = "standard"
    NET = "net"


class PaymentState(str, Enum):
    PENDING = "pending"
    PARTIALLY_PAID = "partially_paid"
    SETTLED = "settled"


class PaymentMode(str, Enum):
    CASH = "cash"
    UPI = "upi"
    BANK_TRANSFER = "bank_transfer"
    CHEQUE = "cheque"
    ADJUSTMENT = "adjustment"


# Embedded documents don't need MongoModel (no separate _id)
class SettlementPayment(BaseModel):
    amount: float
    payment_mode: PaymentMode = PaymentMode.CASH
    payment_date: date = Field(default_factory=lambda: datetime.now(timezone.utc).date())
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    recorded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Settlement(MongoModel):
    """
    Invariants:
    - 0 <= paid_amount <= total_amount (+ MONEY_TOLERANCE)
    - status only moves pending -> approved
    """
    settlement_code: str
    site_group_id: Optional[str] = None
    from_site_id: str  # Creditor, receives the money
    to_site_id: str    # Debtor, pays the money
    total_amount: float
    paid_amount: float = 0.0
    status: SettlementStatus = SettlementStatus.PENDING
    kind: SettlementKind = SettlementKind.STANDARD
    material_ids: List[str] = []
    debt_ids: List[str] = []
    payments: List[SettlementPayment] = []

    @property
    def remaining_amount(self) -> float:
        return max(round_money(self.total_amount - self.paid_amount), 0.0)

    @property
    def payment_state(self) -> PaymentState:
        if self.paid_amount >= self.total_amount - MONEY_TOLERANCE and self.paid_amount > 0:
            return PaymentState.SETTLED
        if self.paid_amount <= 0:
            return PaymentState.PENDING
        return PaymentState.PARTIALLY_PAID


class SettlementOffset(MongoModel):
    """Audit record that two reciprocal balances were offset against each other."""
    site_group_id: Optional[str] = None
    site_a_id: str
    site_b_id: str
    offset_amount: float
    net_remaining: float
    net_payer_site_id: str
    net_receiver_site_id: str
    material_ids: List[str] = []
    debt_ids: List[str] = []
    settlement_id: Optional[PyObjectId] = None  # Net settlement, None when fully net


class NetSettlement(BaseModel):
    offset: SettlementOffset
    settlement: Optional[Settlement] = None
