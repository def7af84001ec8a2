"""Tests for reciprocal pair detection and netting."""

import pytest

from settlement_api.models.balance import Balance
from settlement_api.services.balance_aggregator import aggregate
from settlement_api.services.reciprocal_detector import (
    build_pair,
    detect_reciprocal_pairs,
    find_pair,
)


def _balance(debtor, creditor, amount):
    return Balance(debtor_site_id=debtor, creditor_site_id=creditor, total_amount_owed=amount)


def test_reciprocal_pair_nets_difference():
    balances = [_balance("A", "B", 100.0), _balance("B", "A", 40.0)]

    result = detect_reciprocal_pairs(balances)

    assert len(result.pairs) == 1
    assert result.remainder == []
    pair = result.pairs[0]
    assert pair.offset_amount == 40.0
    assert pair.net_remaining == 60.0
    assert pair.net_payer_site_id == "A"
    assert pair.net_receiver_site_id == "B"
    assert pair.is_fully_net is False


def test_reciprocal_pair_larger_second_side():
    pair = build_pair(_balance("A", "B", 30.0), _balance("B", "A", 75.25))

    assert pair.offset_amount == 30.0
    assert pair.net_remaining == 45.25
    assert pair.net_payer_site_id == "B"
    assert pair.net_receiver_site_id == "A"


def test_equal_amounts_fully_net():
    pair = build_pair(_balance("B", "A", 50.0), _balance("A", "B", 50.0))

    assert pair.net_remaining == 0
    assert pair.offset_amount == 50.0
    assert pair.is_fully_net is True
    # Tie-break: lexicographically smaller site pays
    assert pair.net_payer_site_id == "A"
    assert pair.net_receiver_site_id == "B"


def test_net_remaining_rounded():
    pair = build_pair(_balance("A", "B", 0.3), _balance("B", "A", 0.1))

    assert pair.net_remaining == 0.2


def test_build_pair_rejects_non_reciprocal():
    with pytest.raises(ValueError):
        build_pair(_balance("A", "B", 10.0), _balance("A", "C", 5.0))


def test_no_double_pairing():
    """A->B can pair with only one of the two B->A balances."""
    balances = [
        _balance("A", "B", 10.0),
        _balance("B", "A", 4.0),
        _balance("B", "A", 6.0),
        _balance("C", "D", 1.0),
    ]

    result = detect_reciprocal_pairs(balances)

    assert len(result.pairs) == 1
    assert result.pairs[0].balance_b.total_amount_owed == 4.0
    assert [b.total_amount_owed for b in result.remainder] == [6.0, 1.0]
    assert len(result.pairs) * 2 + len(result.remainder) == len(balances)


def test_greedy_first_match_order():
    balances = [
        _balance("A", "B", 10.0),
        _balance("C", "A", 3.0),
        _balance("B", "A", 7.0),
        _balance("A", "C", 2.0),
        _balance("D", "E", 9.0),
    ]

    result = detect_reciprocal_pairs(balances)

    assert [(p.balance_a.debtor_site_id, p.balance_b.debtor_site_id) for p in result.pairs] == [
        ("A", "B"),
        ("C", "A"),
    ]
    assert [(b.debtor_site_id, b.creditor_site_id) for b in result.remainder] == [("D", "E")]


def test_detect_does_not_mutate_input():
    balances = [_balance("A", "B", 10.0), _balance("B", "A", 4.0)]
    snapshot = [b.model_copy() for b in balances]

    detect_reciprocal_pairs(balances)

    assert balances == snapshot


def test_site_scenario_with_remainder(make_debt):
    debts = [
        make_debt("A", "B", "cement", 1000.0),
        make_debt("B", "A", "steel", 1000.0),
        make_debt("A", "C", "sand", 200.0),
    ]

    balances = aggregate(debts)
    assert [(b.debtor_site_id, b.creditor_site_id, b.total_amount_owed) for b in balances] == [
        ("A", "B", 1000.0),
        ("B", "A", 1000.0),
        ("A", "C", 200.0),
    ]

    result = detect_reciprocal_pairs(balances)

    assert len(result.pairs) == 1
    assert result.pairs[0].net_remaining == 0
    assert len(result.remainder) == 1
    assert result.remainder[0].creditor_site_id == "C"
    assert result.remainder[0].total_amount_owed == 200.0


def test_find_pair_either_order():
    balances = [_balance("A", "C", 5.0), _balance("A", "B", 10.0), _balance("B", "A", 4.0)]

    assert find_pair(balances, "B", "A").offset_amount == 4.0
    assert find_pair(balances, "A", "C") is None
