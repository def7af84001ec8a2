"""
Material debt model - one site's unsettled usage of material paid for by another site.

Design principles:
- Input fact, produced by the debt source (batch usage records)
- The creditor paid the vendor, the debtor used the material
- vendor_unpaid blocks settlement until the creditor pays its vendor
"""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DebtSettlementStatus(str, Enum):
    PENDING = "pending"
    IN_SETTLEMENT = "in_settlement"
    SETTLED = "settled"


class MaterialDebt(BaseModel):
    """
    Debtor site owes creditor site total_amount for quantity of a material.

    Invariants:
    - debtor_site_id != creditor_site_id
    - total_amount >= 0
    """
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(default=None, validation_alias="_id", serialization_alias="id")

    debtor_site_id: str    # Site that used the material
    creditor_site_id: str  # Site that paid the vendor

    material_id: str
    material_name: str = ""
    unit: str = ""
    quantity: float = Field(default=0.0, ge=0)
    total_amount: float = Field(ge=0)

    vendor_unpaid: bool = False

    site_group_id: Optional[str] = None
    batch_ref_code: Optional[str] = None
    usage_date: Optional[date] = None

    @model_validator(mode="after")
    def _distinct_sites(self) -> "MaterialDebt":
        if self.debtor_site_id == self.creditor_site_id:
            raise ValueError("debtor_site_id and creditor_site_id must differ")
        return self
