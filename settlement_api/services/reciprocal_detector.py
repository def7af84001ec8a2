"""
Reciprocal pair detection.

Core algorithm:
1. Scan balances with i < j in input order
2. First j whose balance runs opposite to i forms a pair
3. Paired indices are consumed, so no balance is matched twice
4. Unpaired balances are returned in input order
"""

from typing import List, Tuple

from settlement_api.models.balance import Balance, NettingResult, ReciprocalPair
from settlement_api.models.base import round_money


def build_pair(balance_a: Balance, balance_b: Balance) -> ReciprocalPair:
    """
    Net two opposite balances.

    The debtor of the larger balance pays the difference. When both sides
    are equal nothing moves, and the lexicographically smaller site id is
    reported as the payer so the result does not depend on argument order.
    """
    if not balance_a.is_reverse_of(balance_b):
        raise ValueError("Balances are not reciprocal")

    amount_a = balance_a.total_amount_owed
    amount_b = balance_b.total_amount_owed
    net_remaining = round_money(abs(amount_a - amount_b))

    if net_remaining == 0:
        payer, receiver = sorted((balance_a.debtor_site_id, balance_a.creditor_site_id))
    elif amount_a > amount_b:
        payer, receiver = balance_a.debtor_site_id, balance_a.creditor_site_id
    else:
        payer, receiver = balance_b.debtor_site_id, balance_b.creditor_site_id

    return ReciprocalPair(
        balance_a=balance_a,
        balance_b=balance_b,
        offset_amount=min(amount_a, amount_b),
        net_remaining=net_remaining,
        net_payer_site_id=payer,
        net_receiver_site_id=receiver,
    )


def _pair_indices(balances: List[Balance]) -> List[Tuple[int, int]]:
    consumed = set()
    indices: List[Tuple[int, int]] = []

    for i in range(len(balances)):
        if i in consumed:
            continue
        for j in range(i + 1, len(balances)):
            if j in consumed:
                continue
            if balances[i].is_reverse_of(balances[j]):
                consumed.update((i, j))
                indices.append((i, j))
                break

    return indices


def detect_reciprocal_pairs(balances: List[Balance]) -> NettingResult:
    """Split balances into reciprocal pairs and the non-reciprocal remainder."""
    indices = _pair_indices(balances)
    paired = {index for pair in indices for index in pair}

    return NettingResult(
        pairs=[build_pair(balances[i], balances[j]) for i, j in indices],
        remainder=[b for index, b in enumerate(balances) if index not in paired],
    )


def find_pair(balances: List[Balance], site_a_id: str, site_b_id: str) -> ReciprocalPair | None:
    """Return the reciprocal pair between two sites, if the balances contain one."""
    sites = {site_a_id, site_b_id}
    for pair in detect_reciprocal_pairs(balances).pairs:
        if {pair.balance_a.debtor_site_id, pair.balance_a.creditor_site_id} == sites:
            return pair
    return None
