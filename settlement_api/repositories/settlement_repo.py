"""
SettlementRepository - Stores settlements and netting offsets.

Payments are written with an optimistic check on the previous paid_amount,
so two concurrent payments cannot both apply against the same balance.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from settlement_api.core.errors import ConcurrentUpdateError
from settlement_api.models.settlement import Settlement, SettlementOffset, SettlementStatus


def to_document(settlement: Settlement) -> Dict[str, Any]:
    doc = settlement.model_dump(by_alias=True, exclude={"payments"})
    doc["payments"] = [payment.model_dump(mode="json") for payment in settlement.payments]
    return doc


class SettlementRepository:
    """Repository for inter-site settlements."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db.settlements
        self.offsets = db.settlement_offsets

    async def insert(self, settlement: Settlement, session=None) -> Settlement:
        await self.collection.insert_one(to_document(settlement), session=session)
        return settlement

    async def insert_offset(self, offset: SettlementOffset, session=None) -> SettlementOffset:
        await self.offsets.insert_one(offset.model_dump(by_alias=True), session=session)
        return offset

    async def get(self, settlement_id: str) -> Optional[Settlement]:
        if not ObjectId.is_valid(settlement_id):
            return None

        doc = await self.collection.find_one({"_id": ObjectId(settlement_id)})
        if doc:
            return Settlement(**doc)
        return None

    async def list_for_site(
        self,
        site_id: Optional[str] = None,
        status: Optional[SettlementStatus] = None,
    ) -> List[Settlement]:
        """Settlements where site_id is payer or payee, newest first."""
        query: Dict[str, Any] = {}
        if site_id:
            query["$or"] = [{"from_site_id": site_id}, {"to_site_id": site_id}]
        if status:
            query["status"] = status.value

        docs = await self.collection.find(query).sort("created_at", -1).to_list(None)
        return [Settlement(**doc) for doc in docs]

    async def save_payment(self, before: Settlement, after: Settlement) -> Settlement:
        """
        Persist after.paid_amount and payments.

        Raises ConcurrentUpdateError if the stored paid_amount no longer
        matches before.paid_amount.
        """
        result = await self.collection.find_one_and_update(
            {"_id": before.id, "paid_amount": before.paid_amount},
            {
                "$set": {
                    "paid_amount": after.paid_amount,
                    "payments": [p.model_dump(mode="json") for p in after.payments],
                    "updated_at": datetime.now(timezone.utc)
                }
            },
            return_document=ReturnDocument.AFTER
        )
        if result is None:
            raise ConcurrentUpdateError(
                f"Settlement {before.settlement_code} changed while recording the payment"
            )
        return Settlement(**result)

    async def save_status(self, settlement: Settlement) -> Settlement:
        await self.collection.update_one(
            {"_id": settlement.id},
            {
                "$set": {
                    "status": settlement.status.value,
                    "updated_at": settlement.updated_at
                }
            }
        )
        return settlement
