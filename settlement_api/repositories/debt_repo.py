"""
MaterialDebtRepository - Reads unsettled inter-site material usage.

Documents are parsed into MaterialDebt at this boundary, so invalid rows
(same debtor and creditor, negative amounts) fail here instead of deep
inside the netting code.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from settlement_api.models.debt import DebtSettlementStatus, MaterialDebt

logger = logging.getLogger(__name__)


def _object_ids(ids: List[str]) -> List[Any]:
    return [ObjectId(i) if ObjectId.is_valid(i) else i for i in ids]


class MaterialDebtRepository:
    """Repository for material debts (batch usage between sites)."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db.material_debts

    async def list_unsettled(
        self,
        site_group_id: Optional[str] = None,
        site_ids: Optional[List[str]] = None,
    ) -> List[MaterialDebt]:
        """
        Pending debts, oldest first.

        - site_group_id: restrict to one site group
        - site_ids: restrict to debts where any listed site is debtor or creditor
        """
        query: Dict[str, Any] = {"settlement_status": DebtSettlementStatus.PENDING.value}
        if site_group_id:
            query["site_group_id"] = site_group_id
        if site_ids:
            query["$or"] = [
                {"debtor_site_id": {"$in": site_ids}},
                {"creditor_site_id": {"$in": site_ids}},
            ]

        docs = await self.collection.find(query).sort("_id", 1).to_list(None)

        return [MaterialDebt(**{**doc, "_id": str(doc["_id"])}) for doc in docs]

    async def mark_in_settlement(
        self,
        debt_ids: List[str],
        settlement_id: Optional[Any],
        session=None,
    ) -> int:
        """
        Link pending debts to the settlement that bills them.

        Returns how many were claimed. Debts another settlement already took
        are not counted.
        """
        if not debt_ids:
            return 0

        result = await self.collection.update_many(
            {
                "_id": {"$in": _object_ids(debt_ids)},
                "settlement_status": DebtSettlementStatus.PENDING.value
            },
            {
                "$set": {
                    "settlement_status": DebtSettlementStatus.IN_SETTLEMENT.value,
                    "settlement_id": settlement_id,
                    "updated_at": datetime.now(timezone.utc)
                }
            },
            session=session
        )
        logger.info("Marked %d debt(s) in settlement %s", result.modified_count, settlement_id)
        return result.modified_count

    async def mark_settled(
        self,
        debt_ids: List[str],
        from_status: DebtSettlementStatus = DebtSettlementStatus.IN_SETTLEMENT,
        session=None,
    ) -> int:
        """Close debts whose settlement has been fully paid or offset."""
        if not debt_ids:
            return 0

        result = await self.collection.update_many(
            {
                "_id": {"$in": _object_ids(debt_ids)},
                "settlement_status": from_status.value
            },
            {
                "$set": {
                    "settlement_status": DebtSettlementStatus.SETTLED.value,
                    "updated_at": datetime.now(timezone.utc)
                }
            },
            session=session
        )
        return result.modified_count
