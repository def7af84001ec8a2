from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from settlement_api.models.settlement import (
    NetSettlement,
    PaymentMode,
    PaymentState,
    Settlement,
    SettlementKind,
    SettlementOffset,
    SettlementPayment,
    SettlementStatus,
)


class SettlementCreate(BaseModel):
    """Generate a settlement from the debtor -> creditor balance."""
    site_group_id: Optional[str] = None
    debtor_site_id: str
    creditor_site_id: str
    material_ids: Optional[List[str]] = None  # None settles the whole balance
    skip_vendor_check: bool = False


class NetSettlementCreate(BaseModel):
    site_group_id: Optional[str] = None
    site_a_id: str
    site_b_id: str
    skip_vendor_check: bool = False


class PaymentCreate(BaseModel):
    # Sign is checked by apply_payment so it reports InvalidAmount
    amount: float = Field(allow_inf_nan=False)
    payment_mode: PaymentMode = PaymentMode.CASH
    payment_date: Optional[date] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None


class SettlementResponse(BaseModel):
    id: str
    settlement_code: str
    site_group_id: Optional[str] = None
    from_site_id: str
    to_site_id: str
    total_amount: float
    paid_amount: float
    remaining_amount: float
    status: SettlementStatus
    payment_state: PaymentState
    kind: SettlementKind
    material_ids: List[str] = []
    payments: List[SettlementPayment] = []
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, settlement: Settlement) -> "SettlementResponse":
        return cls(
            id=str(settlement.id),
            settlement_code=settlement.settlement_code,
            site_group_id=settlement.site_group_id,
            from_site_id=settlement.from_site_id,
            to_site_id=settlement.to_site_id,
            total_amount=settlement.total_amount,
            paid_amount=settlement.paid_amount,
            remaining_amount=settlement.remaining_amount,
            status=settlement.status,
            payment_state=settlement.payment_state,
            kind=settlement.kind,
            material_ids=settlement.material_ids,
            payments=settlement.payments,
            created_at=settlement.created_at,
            updated_at=settlement.updated_at,
        )


class SettlementOffsetResponse(BaseModel):
    id: str
    site_a_id: str
    site_b_id: str
    offset_amount: float
    net_remaining: float
    net_payer_site_id: str
    net_receiver_site_id: str
    material_ids: List[str] = []
    settlement_id: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_model(cls, offset: SettlementOffset) -> "SettlementOffsetResponse":
        return cls(
            id=str(offset.id),
            site_a_id=offset.site_a_id,
            site_b_id=offset.site_b_id,
            offset_amount=offset.offset_amount,
            net_remaining=offset.net_remaining,
            net_payer_site_id=offset.net_payer_site_id,
            net_receiver_site_id=offset.net_receiver_site_id,
            material_ids=offset.material_ids,
            settlement_id=str(offset.settlement_id) if offset.settlement_id else None,
            created_at=offset.created_at,
        )


class NetSettlementResponse(BaseModel):
    offset: SettlementOffsetResponse
    settlement: Optional[SettlementResponse] = Field(
        default=None, description="Missing when both directions cancel out exactly"
    )

    @classmethod
    def from_model(cls, result: NetSettlement) -> "NetSettlementResponse":
        return cls(
            offset=SettlementOffsetResponse.from_model(result.offset),
            settlement=SettlementResponse.from_model(result.settlement) if result.settlement else None,
        )
