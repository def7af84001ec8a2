from fastapi import APIRouter
from settlement_api.api.v1.endpoints import balances, settlements

api_router = APIRouter()

api_router.include_router(balances.router, prefix="/balances", tags=["balances"])
api_router.include_router(settlements.router, prefix="/settlements", tags=["settlements"])
