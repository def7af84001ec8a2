from fastapi import APIRouter
from settlement_api.models.balance import NettingResult
from settlement_api.services.settlement_service import SettlementService

router = APIRouter()

@router.get("/{site_group_id}", response_model=NettingResult)
async def get_group_balances(site_group_id: str):
    """Unsettled balances in a site group, reciprocal ones paired for netting"""
    return await SettlementService.list_balances(site_group_id)
