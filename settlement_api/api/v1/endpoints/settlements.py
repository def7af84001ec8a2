from typing import List, Optional
from fastapi import APIRouter, status
from settlement_api.models.settlement import SettlementStatus
from settlement_api.schemas.settlement import (
    NetSettlementCreate,
    NetSettlementResponse,
    PaymentCreate,
    SettlementCreate,
    SettlementResponse,
)
from settlement_api.services.payment_tracker import SiteSettlementSummary
from settlement_api.services.settlement_service import SettlementService

router = APIRouter()

@router.post("/", response_model=SettlementResponse, status_code=status.HTTP_201_CREATED)
async def create_settlement(settlement_in: SettlementCreate):
    """Generate a settlement for the debtor -> creditor balance (or some of its materials)."""
    settlement = await SettlementService.generate(
        site_group_id=settlement_in.site_group_id,
        debtor_site_id=settlement_in.debtor_site_id,
        creditor_site_id=settlement_in.creditor_site_id,
        material_ids=settlement_in.material_ids,
        skip_vendor_check=settlement_in.skip_vendor_check,
    )
    return SettlementResponse.from_model(settlement)

@router.post("/net", response_model=NetSettlementResponse, status_code=status.HTTP_201_CREATED)
async def create_net_settlement(net_in: NetSettlementCreate):
    """Offset two sites' mutual debts so only the difference is billed."""
    result = await SettlementService.net_settle(
        site_group_id=net_in.site_group_id,
        site_a_id=net_in.site_a_id,
        site_b_id=net_in.site_b_id,
        skip_vendor_check=net_in.skip_vendor_check,
    )
    return NetSettlementResponse.from_model(result)

@router.get("/", response_model=List[SettlementResponse])
async def list_settlements(
    site_id: Optional[str] = None,
    status: Optional[SettlementStatus] = None
):
    settlements = await SettlementService.list_for_site(site_id=site_id, status=status)
    return [SettlementResponse.from_model(s) for s in settlements]

@router.get("/summary/{site_id}", response_model=SiteSettlementSummary)
async def get_site_summary(site_id: str):
    """Open amounts owed to and by a site"""
    return await SettlementService.site_summary(site_id)

@router.get("/{settlement_id}", response_model=SettlementResponse)
async def get_settlement(settlement_id: str):
    return SettlementResponse.from_model(await SettlementService.get(settlement_id))

@router.post("/{settlement_id}/payments", response_model=SettlementResponse)
async def record_payment(settlement_id: str, payment_in: PaymentCreate):
    settlement = await SettlementService.record_payment(
        settlement_id,
        payment_in.amount,
        payment_mode=payment_in.payment_mode,
        payment_date=payment_in.payment_date,
        reference_number=payment_in.reference_number,
        notes=payment_in.notes,
    )
    return SettlementResponse.from_model(settlement)

@router.post("/{settlement_id}/approve", response_model=SettlementResponse)
async def approve_settlement(settlement_id: str):
    return SettlementResponse.from_model(await SettlementService.approve(settlement_id))
