"""
Settlement generation from balances and reciprocal pairs.

Records are returned unsaved; SettlementService persists them.
"""

import logging
import string
import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from settlement_api.core.config import settings
from settlement_api.core.errors import NothingToSettleError, VendorUnsettledError
from settlement_api.models.balance import Balance, ReciprocalPair
from settlement_api.models.base import round_money
from settlement_api.models.debt import MaterialDebt
from settlement_api.models.settlement import (
    NetSettlement,
    Settlement,
    SettlementKind,
    SettlementOffset,
)

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def make_settlement_code(prefix: str, now: Optional[datetime] = None) -> str:
    """e.g. SET-2026-W42-mgx3k1a0-4f9c2e"""
    now = now or datetime.now(timezone.utc)
    year, week, _ = now.isocalendar()
    timestamp = _to_base36(int(now.timestamp() * 1000))
    return f"{prefix}-{year}-W{week}-{timestamp}-{uuid.uuid4().hex[:6]}"


def _select_debts(balance: Balance, material_ids: Optional[Iterable[str]]) -> List[MaterialDebt]:
    if material_ids is None:
        return list(balance.material_breakdown)
    wanted = set(material_ids)
    return [debt for debt in balance.material_breakdown if debt.material_id in wanted]


def _check_vendor_paid(debts: List[MaterialDebt], debtor_id: str, creditor_id: str) -> None:
    unpaid = [debt for debt in debts if debt.vendor_unpaid]
    if not unpaid:
        return

    batch_codes = sorted({debt.batch_ref_code for debt in unpaid if debt.batch_ref_code})
    logger.warning(
        "Blocked settlement %s -> %s: %d debt(s) with unpaid vendor",
        debtor_id, creditor_id, len(unpaid)
    )
    raise VendorUnsettledError(
        f"Site {creditor_id} has not settled with the vendor for "
        f"{', '.join(sorted({d.material_name or d.material_id for d in unpaid}))}",
        batch_ref_codes=batch_codes,
    )


def _unique(values: Iterable[str]) -> List[str]:
    result: List[str] = []
    for value in values:
        if value and value not in result:
            result.append(value)
    return result


def generate_from_balance(
    balance: Balance,
    material_ids: Optional[Iterable[str]] = None,
    skip_vendor_check: bool = False,
) -> Settlement:
    """
    Bill the debtor of a balance for all of it, or only for material_ids.

    Raises NothingToSettleError when the selection is empty or sums to zero,
    and VendorUnsettledError when a selected debt is still owed to a vendor.
    """
    selected = _select_debts(balance, material_ids)
    total = round_money(sum(debt.total_amount for debt in selected))

    if not selected or total <= 0:
        raise NothingToSettleError(
            f"No unsettled amount between {balance.debtor_site_id} and {balance.creditor_site_id}"
        )

    if not skip_vendor_check:
        _check_vendor_paid(selected, balance.debtor_site_id, balance.creditor_site_id)

    settlement = Settlement(
        settlement_code=make_settlement_code(settings.SETTLEMENT_CODE_PREFIX),
        site_group_id=selected[0].site_group_id,
        from_site_id=balance.creditor_site_id,
        to_site_id=balance.debtor_site_id,
        total_amount=total,
        material_ids=_unique(debt.material_id for debt in selected),
        debt_ids=_unique(debt.id for debt in selected),
    )
    logger.info(
        "Generated settlement %s: %s owes %s %.2f",
        settlement.settlement_code, settlement.to_site_id, settlement.from_site_id, total
    )
    return settlement


def generate_from_pair(pair: ReciprocalPair, skip_vendor_check: bool = False) -> NetSettlement:
    """
    Offset a reciprocal pair.

    The offset is always recorded. A net settlement for net_remaining from
    the net payer to the net receiver is only produced when net_remaining > 0.

    Netting closes the debts on both sides, including the offset part that no
    settlement will bill later. So the vendor check covers both balances here,
    the same as generate_from_balance; skip_vendor_check lifts it for both.
    """
    debts = pair.balance_a.material_breakdown + pair.balance_b.material_breakdown

    if not skip_vendor_check:
        for balance in (pair.balance_a, pair.balance_b):
            _check_vendor_paid(
                balance.material_breakdown, balance.debtor_site_id, balance.creditor_site_id
            )

    material_ids = _unique(debt.material_id for debt in debts)
    debt_ids = _unique(debt.id for debt in debts)
    site_group_id = debts[0].site_group_id if debts else None

    settlement = None
    if pair.net_remaining > 0:
        settlement = Settlement(
            settlement_code=make_settlement_code(settings.NET_SETTLEMENT_CODE_PREFIX),
            site_group_id=site_group_id,
            from_site_id=pair.net_receiver_site_id,
            to_site_id=pair.net_payer_site_id,
            total_amount=pair.net_remaining,
            kind=SettlementKind.NET,
            material_ids=material_ids,
            debt_ids=debt_ids,
        )

    offset = SettlementOffset(
        site_group_id=site_group_id,
        site_a_id=pair.balance_a.debtor_site_id,
        site_b_id=pair.balance_a.creditor_site_id,
        offset_amount=pair.offset_amount,
        net_remaining=pair.net_remaining,
        net_payer_site_id=pair.net_payer_site_id,
        net_receiver_site_id=pair.net_receiver_site_id,
        material_ids=material_ids,
        debt_ids=debt_ids,
        settlement_id=settlement.id if settlement else None,
    )
    logger.info(
        "Netted %s <-> %s: offset %.2f, %s owes %s %.2f",
        offset.site_a_id, offset.site_b_id, pair.offset_amount,
        pair.net_payer_site_id, pair.net_receiver_site_id, pair.net_remaining
    )
    return NetSettlement(offset=offset, settlement=settlement)
