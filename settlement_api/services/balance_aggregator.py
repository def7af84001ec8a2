from typing import Dict, List, Tuple

from settlement_api.models.balance import Balance
from settlement_api.models.base import round_money
from settlement_api.models.debt import MaterialDebt


def aggregate(debts: List[MaterialDebt]) -> List[Balance]:
    """
    Group material debts into one Balance per (debtor, creditor) pair.

    Direction matters: A owes B and B owes A are separate balances.
    Groups keep first-seen order, as does each breakdown. Groups that
    sum to zero are dropped.
    """
    groups: Dict[Tuple[str, str], List[MaterialDebt]] = {}
    for debt in debts:
        key = (debt.debtor_site_id, debt.creditor_site_id)
        groups.setdefault(key, []).append(debt)

    balances: List[Balance] = []
    for (debtor_id, creditor_id), group in groups.items():
        raw_total = sum(debt.total_amount for debt in group)
        if raw_total == 0:
            continue

        balances.append(
            Balance(
                debtor_site_id=debtor_id,
                creditor_site_id=creditor_id,
                total_amount_owed=round_money(raw_total),
                material_breakdown=list(group),
                has_unpaid_vendor=any(debt.vendor_unpaid for debt in group),
            )
        )

    return balances
