# sales_tracker/commission/__init__.py
"""
Commission Module

Tiered bonus calculation for telemarketers.

Components:
- calculator: tier lookup, bonus amount, DataFrame helpers
- constants: tier table and display settings

Usage:
    from sales_tracker.commission import calculate_commission

    result = calculate_commission(18)
    result.amount        # 108000
    result.tier.label    # 'Confirmé'
"""

from .calculator import (
    COMMISSION_TIERS,
    CommissionResult,
    CommissionTier,
    apply_commissions,
    calculate_commission,
    commission_table,
    find_tier,
    format_currency,
    validate_tiers,
)
from .constants import CURRENCY, TIER_COLORS, TIER_DEFINITIONS

__all__ = [
    # Classes
    'CommissionTier',
    'CommissionResult',

    # Functions
    'calculate_commission',
    'find_tier',
    'validate_tiers',
    'commission_table',
    'apply_commissions',
    'format_currency',

    # Constants
    'COMMISSION_TIERS',
    'TIER_DEFINITIONS',
    'TIER_COLORS',
    'CURRENCY',
]

__version__ = '1.0.0'
