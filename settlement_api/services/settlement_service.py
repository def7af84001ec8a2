import logging
from datetime import date
from typing import List, Optional

from settlement_api.core.errors import (
    ConcurrentUpdateError,
    NothingToSettleError,
    SettlementNotFoundError,
)
from settlement_api.db.session import get_database
from settlement_api.models.balance import NettingResult
from settlement_api.models.debt import DebtSettlementStatus
from settlement_api.models.settlement import (
    NetSettlement,
    PaymentMode,
    PaymentState,
    Settlement,
    SettlementStatus,
)
from settlement_api.repositories.debt_repo import MaterialDebtRepository
from settlement_api.repositories.settlement_repo import SettlementRepository
from settlement_api.services import payment_tracker
from settlement_api.services.balance_aggregator import aggregate
from settlement_api.services.reciprocal_detector import detect_reciprocal_pairs, find_pair
from settlement_api.services.settlement_generator import generate_from_balance, generate_from_pair

logger = logging.getLogger(__name__)


def _ensure_claimed(claimed: int, debt_ids: List[str]) -> None:
    # Raising inside the transaction aborts it
    if claimed != len(debt_ids):
        logger.warning(
            "Claimed %d of %d debt(s); another settlement got there first",
            claimed, len(debt_ids)
        )
        raise ConcurrentUpdateError(
            "Some of these debts were settled concurrently, refresh balances and retry"
        )


class SettlementService:
    @staticmethod
    async def list_balances(site_group_id: str) -> NettingResult:
        """Who owes whom in a site group, with reciprocal balances paired up."""
        db = await get_database()
        debts = await MaterialDebtRepository(db).list_unsettled(site_group_id=site_group_id)
        return detect_reciprocal_pairs(aggregate(debts))

    @staticmethod
    async def generate(
        site_group_id: Optional[str],
        debtor_site_id: str,
        creditor_site_id: str,
        material_ids: Optional[List[str]] = None,
        skip_vendor_check: bool = False,
    ) -> Settlement:
        db = await get_database()
        debt_repo = MaterialDebtRepository(db)

        # Always work from fresh debts, never from a balance the client sent
        debts = await debt_repo.list_unsettled(
            site_group_id=site_group_id,
            site_ids=[debtor_site_id, creditor_site_id]
        )
        balance = next(
            (
                b for b in aggregate(debts)
                if b.debtor_site_id == debtor_site_id and b.creditor_site_id == creditor_site_id
            ),
            None
        )
        if balance is None:
            raise NothingToSettleError(
                f"No unsettled transactions found from {debtor_site_id} to {creditor_site_id}"
            )

        settlement = generate_from_balance(balance, material_ids, skip_vendor_check)

        async with await db.client.start_session() as session:
            async with session.start_transaction():
                claimed = await debt_repo.mark_in_settlement(
                    settlement.debt_ids, settlement.id, session=session
                )
                _ensure_claimed(claimed, settlement.debt_ids)
                await SettlementRepository(db).insert(settlement, session=session)

        return settlement

    @staticmethod
    async def net_settle(
        site_group_id: Optional[str],
        site_a_id: str,
        site_b_id: str,
        skip_vendor_check: bool = False,
    ) -> NetSettlement:
        db = await get_database()
        debt_repo = MaterialDebtRepository(db)
        settlement_repo = SettlementRepository(db)

        debts = await debt_repo.list_unsettled(
            site_group_id=site_group_id,
            site_ids=[site_a_id, site_b_id]
        )
        pair = find_pair(aggregate(debts), site_a_id, site_b_id)
        if pair is None:
            raise NothingToSettleError(
                f"Sites {site_a_id} and {site_b_id} do not owe each other"
            )

        result = generate_from_pair(pair, skip_vendor_check)
        debt_ids = result.offset.debt_ids

        async with await db.client.start_session() as session:
            async with session.start_transaction():
                if result.settlement is not None:
                    claimed = await debt_repo.mark_in_settlement(
                        debt_ids, result.settlement.id, session=session
                    )
                    _ensure_claimed(claimed, debt_ids)
                    await settlement_repo.insert(result.settlement, session=session)
                else:
                    # Fully offset, nothing left to pay
                    claimed = await debt_repo.mark_settled(
                        debt_ids, from_status=DebtSettlementStatus.PENDING, session=session
                    )
                    _ensure_claimed(claimed, debt_ids)

                await settlement_repo.insert_offset(result.offset, session=session)

        return result

    @staticmethod
    async def get(settlement_id: str) -> Settlement:
        db = await get_database()
        settlement = await SettlementRepository(db).get(settlement_id)
        if settlement is None:
            raise SettlementNotFoundError(f"Settlement {settlement_id} not found")
        return settlement

    @staticmethod
    async def list_for_site(
        site_id: Optional[str] = None,
        status: Optional[SettlementStatus] = None,
    ) -> List[Settlement]:
        db = await get_database()
        return await SettlementRepository(db).list_for_site(site_id=site_id, status=status)

    @staticmethod
    async def record_payment(
        settlement_id: str,
        amount: float,
        payment_mode: PaymentMode = PaymentMode.CASH,
        payment_date: Optional[date] = None,
        reference_number: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Settlement:
        db = await get_database()
        settlement_repo = SettlementRepository(db)

        settlement = await settlement_repo.get(settlement_id)
        if settlement is None:
            raise SettlementNotFoundError(f"Settlement {settlement_id} not found")

        updated = payment_tracker.apply_payment(
            settlement,
            amount,
            payment_mode=payment_mode,
            reference_number=reference_number,
            notes=notes,
            payment_date=payment_date,
        )
        saved = await settlement_repo.save_payment(settlement, updated)

        if saved.payment_state == PaymentState.SETTLED:
            await MaterialDebtRepository(db).mark_settled(saved.debt_ids)
            logger.info("Settlement %s fully paid", saved.settlement_code)

        return saved

    @staticmethod
    async def approve(settlement_id: str) -> Settlement:
        db = await get_database()
        settlement_repo = SettlementRepository(db)

        settlement = await settlement_repo.get(settlement_id)
        if settlement is None:
            raise SettlementNotFoundError(f"Settlement {settlement_id} not found")

        return await settlement_repo.save_status(payment_tracker.approve(settlement))

    @staticmethod
    async def site_summary(site_id: str) -> payment_tracker.SiteSettlementSummary:
        settlements = await SettlementService.list_for_site(site_id=site_id)
        return payment_tracker.summarize_site(site_id, settlements)
