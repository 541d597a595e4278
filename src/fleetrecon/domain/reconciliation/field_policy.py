"""Per-field emptiness policy used when diffing registry rows against candidates.

The table is the single place that decides which stored values count as
"empty" and may therefore be overwritten from an import. Treating a stored
``0`` as empty is a product decision for currency/term columns whose store
default is zero; it must not leak to fields where zero is meaningful.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from fleetrecon.domain.model import FinancingType

if TYPE_CHECKING:
    from fleetrecon.domain.model import Scalar


@dataclass(frozen=True, slots=True, kw_only=True)
class FieldPolicy:
    field: str
    label: str
    zero_is_empty: bool = False
    never_empty_values: frozenset[str] = frozenset()

    def is_empty(self, value: Scalar) -> bool:
        if value is None:
            return True
        if isinstance(value, str):
            stripped = value.strip()
            if stripped in self.never_empty_values:
                return False
            return not stripped
        return self.zero_is_empty and value == 0


FIELD_POLICIES: Final[tuple[FieldPolicy, ...]] = (
    FieldPolicy(field="serial_vin", label="Serial/VIN"),
    FieldPolicy(field="purchase_date", label="Purchase Date"),
    FieldPolicy(field="purchase_price", label="Purchase Price", zero_is_empty=True),
    FieldPolicy(field="sales_tax", label="Sales Tax", zero_is_empty=True),
    FieldPolicy(field="freight_setup", label="Freight/Setup", zero_is_empty=True),
    FieldPolicy(
        field="financing_type",
        label="Financing Type",
        never_empty_values=frozenset({FinancingType.OWNED.value}),
    ),
    FieldPolicy(field="deposit_amount", label="Deposit", zero_is_empty=True),
    FieldPolicy(field="financed_amount", label="Financed Amount", zero_is_empty=True),
    FieldPolicy(field="monthly_payment", label="Monthly Payment", zero_is_empty=True),
    FieldPolicy(field="term_months", label="Term (Months)", zero_is_empty=True),
    FieldPolicy(field="buyout_amount", label="Buyout Amount", zero_is_empty=True),
    FieldPolicy(field="purchase_condition", label="Purchase Condition"),
)

POLICY_BY_FIELD: Final[dict[str, FieldPolicy]] = {policy.field: policy for policy in FIELD_POLICIES}
BACKFILL_FIELDS: Final[tuple[str, ...]] = tuple(policy.field for policy in FIELD_POLICIES)
MATCH_FIELDS: Final[frozenset[str]] = frozenset(
    {"make", "model", "year", "serial_vin", "purchase_date", "purchase_price"}
)
