# sales_tracker/commission/calculator.py
"""
Tiered Commission Calculator

The whole validated-sales count is paid at the rate of the single tier
that contains it (not a marginal scheme):

    12 sales -> tier 1 -> 12 x 5 000 = 60 000
    40 sales -> tier 6 -> 40 x 10 000 = 400 000

Counts below the first tier earn nothing. Counts above every bounded
tier fall into the last tier.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from numbers import Integral
from typing import Optional, Sequence, Tuple

import pandas as pd

from .constants import CURRENCY, TABLE_COLUMNS, THOUSANDS_SEPARATOR, TIER_DEFINITIONS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommissionTier:
    tier: int
    min_sales: int
    max_sales: Optional[int]
    rate: int
    label: str

    def contains(self, sales: int) -> bool:
        if sales < self.min_sales:
            return False
        return self.max_sales is None or sales <= self.max_sales


@dataclass(frozen=True)
class CommissionResult:
    validated_sales: int
    amount: int
    tier: Optional[CommissionTier]

    @property
    def tier_number(self) -> Optional[int]:
        return self.tier.tier if self.tier else None


def validate_tiers(tiers: Sequence[CommissionTier]) -> Tuple[CommissionTier, ...]:
    """
    Check the table is ordered, contiguous and non-overlapping.

    Only the last tier may be open-ended. Returns the tiers as a tuple.
    Raises ValueError on the first violation.
    """
    tiers = tuple(tiers)
    if not tiers:
        raise ValueError("Commission table is empty")

    for index, tier in enumerate(tiers):
        if tier.min_sales < 0 or tier.rate < 0:
            raise ValueError(f"Tier {tier.tier}: negative bound or rate")
        is_last = index == len(tiers) - 1
        if tier.max_sales is None:
            if not is_last:
                raise ValueError(f"Tier {tier.tier}: only the last tier may be open-ended")
        elif tier.max_sales < tier.min_sales:
            raise ValueError(f"Tier {tier.tier}: max below min")
        if index and tier.min_sales != tiers[index - 1].max_sales + 1:
            raise ValueError(f"Tier {tier.tier}: not contiguous with tier {tiers[index - 1].tier}")

    return tiers


COMMISSION_TIERS: Tuple[CommissionTier, ...] = validate_tiers(
    CommissionTier(*definition) for definition in TIER_DEFINITIONS
)


def _check_sales(validated_sales) -> int:
    if isinstance(validated_sales, bool) or not isinstance(validated_sales, Integral):
        raise TypeError(f"validated_sales must be an integer, got {type(validated_sales).__name__}")
    if validated_sales < 0:
        raise ValueError("validated_sales cannot be negative")
    return int(validated_sales)


def find_tier(validated_sales: int,
              tiers: Sequence[CommissionTier] = COMMISSION_TIERS) -> Optional[CommissionTier]:
    if not tiers:
        raise ValueError("Commission table is empty")
    if validated_sales < tiers[0].min_sales:
        return None
    for tier in tiers:
        if tier.contains(validated_sales):
            return tier
    return tiers[-1]


@lru_cache(maxsize=512)
def _calculate(validated_sales: int, tiers: Tuple[CommissionTier, ...]) -> CommissionResult:
    tier = find_tier(validated_sales, tiers)
    amount = validated_sales * tier.rate if tier else 0
    return CommissionResult(validated_sales=validated_sales, amount=amount, tier=tier)


def calculate_commission(validated_sales: int,
                         tiers: Sequence[CommissionTier] = COMMISSION_TIERS) -> CommissionResult:
    """
    Bonus for a period's validated sales.

    Args:
        validated_sales: non-negative integer count
        tiers: tier table, defaults to COMMISSION_TIERS

    Raises:
        TypeError: non-integer input (bools included)
        ValueError: negative input or an invalid tier table
    """
    sales = _check_sales(validated_sales)
    if tiers is not COMMISSION_TIERS:
        tiers = validate_tiers(tiers)
    return _calculate(sales, tuple(tiers))


# ==================== TABULAR HELPERS ====================

def commission_table(tiers: Sequence[CommissionTier] = COMMISSION_TIERS) -> pd.DataFrame:
    """Tier table for display"""
    rows = [
        [t.tier, t.label, t.min_sales, t.max_sales, t.rate]
        for t in tiers
    ]
    df = pd.DataFrame(rows, columns=TABLE_COLUMNS)
    df["Max sales"] = df["Max sales"].astype("Int64")
    return df


def apply_commissions(df: pd.DataFrame, sales_col: str = "validated_sales",
                      tiers: Sequence[CommissionTier] = COMMISSION_TIERS) -> pd.DataFrame:
    """
    Add commission columns to a telemarketer DataFrame.

    Adds: commission_tier, commission_label, commission_amount.
    Missing or negative counts are treated as zero sales.
    """
    result = df.copy()
    if sales_col not in result.columns:
        logger.warning(f"Column '{sales_col}' not found in DataFrame")
        result["commission_tier"] = pd.array([pd.NA] * len(result), dtype="Int64")
        result["commission_label"] = None
        result["commission_amount"] = 0
        return result

    sales = pd.to_numeric(result[sales_col], errors="coerce").fillna(0).clip(lower=0).astype(int)
    outcomes = [calculate_commission(int(count), tiers) for count in sales]

    result["commission_tier"] = pd.array([o.tier_number for o in outcomes], dtype="Int64")
    result["commission_label"] = [o.tier.label if o.tier else None for o in outcomes]
    result["commission_amount"] = [o.amount for o in outcomes]
    return result


def format_currency(amount: int, currency: str = CURRENCY) -> str:
    """60000 -> '60 000 XOF'"""
    return f"{int(amount):,}".replace(",", THOUSANDS_SEPARATOR) + f" {currency}"


__all__ = [
    'CommissionTier',
    'CommissionResult',
    'COMMISSION_TIERS',
    'validate_tiers',
    'find_tier',
    'calculate_commission',
    'commission_table',
    'apply_commissions',
    'format_currency',
]
