"""
Balance views - computed on demand from live material debts, never persisted.

A Balance is everything one site owes one other site. A ReciprocalPair is two
balances running in opposite directions between the same two sites.
"""

from typing import List

from pydantic import BaseModel, Field, computed_field

from settlement_api.models.debt import MaterialDebt


class Balance(BaseModel):
    """
    Total owed from debtor_site_id to creditor_site_id.

    Invariants:
    - total_amount_owed == sum(material_breakdown[].total_amount) within 0.01
    - every breakdown entry has the same debtor/creditor pair
    """
    debtor_site_id: str
    creditor_site_id: str
    total_amount_owed: float
    material_breakdown: List[MaterialDebt] = Field(default_factory=list)
    has_unpaid_vendor: bool = False

    @computed_field
    @property
    def transaction_count(self) -> int:
        return len(self.material_breakdown)

    @computed_field
    @property
    def total_quantity(self) -> float:
        return sum(debt.quantity for debt in self.material_breakdown)

    @computed_field
    @property
    def material_ids(self) -> List[str]:
        seen: List[str] = []
        for debt in self.material_breakdown:
            if debt.material_id not in seen:
                seen.append(debt.material_id)
        return seen

    def is_reverse_of(self, other: "Balance") -> bool:
        """True when other runs between the same sites in the opposite direction."""
        return (
            self.debtor_site_id == other.creditor_site_id
            and self.creditor_site_id == other.debtor_site_id
        )


class ReciprocalPair(BaseModel):
    """Two opposite balances that can be offset against each other."""
    balance_a: Balance
    balance_b: Balance
    offset_amount: float
    net_remaining: float
    net_payer_site_id: str
    net_receiver_site_id: str

    @computed_field
    @property
    def is_fully_net(self) -> bool:
        return self.net_remaining == 0


class NettingResult(BaseModel):
    pairs: List[ReciprocalPair] = Field(default_factory=list)
    remainder: List[Balance] = Field(default_factory=list)
