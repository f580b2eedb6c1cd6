"""
Commission calculator tests.

Verifies:
- Tier boundaries and amounts for the default table
- Input validation (negative, non-integer)
- Tier table validation
- DataFrame helpers and currency formatting
"""

import pandas as pd
import pytest

from sales_tracker.commission import (
    COMMISSION_TIERS,
    CommissionTier,
    apply_commissions,
    calculate_commission,
    commission_table,
    find_tier,
    format_currency,
    validate_tiers,
)


# =============================================================================
# DEFAULT TABLE
# =============================================================================


class TestCalculateCommission:

    @pytest.mark.parametrize("sales,amount,tier", [
        (0, 0, None),
        (11, 0, None),
        (12, 60000, 1),
        (15, 75000, 1),
        (16, 96000, 2),
        (20, 120000, 2),
        (21, 147000, 3),
        (30, 240000, 4),
        (31, 279000, 5),
        (39, 351000, 5),
        (40, 400000, 6),
        (100, 1000000, 6),
    ])
    def test_amount_and_tier(self, sales, amount, tier):
        result = calculate_commission(sales)
        assert result.validated_sales == sales
        assert result.amount == amount
        assert result.tier_number == tier

    def test_whole_count_paid_at_single_rate(self):
        # 20 sales: all at tier 2, not 15 at tier 1 plus 5 at tier 2
        assert calculate_commission(20).amount == 20 * 6000

    def test_monotonic(self):
        amounts = [calculate_commission(n).amount for n in range(0, 60)]
        assert amounts == sorted(amounts)

    def test_same_input_same_result(self):
        assert calculate_commission(18) is calculate_commission(18)

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            calculate_commission(-1)

    @pytest.mark.parametrize("value", [12.0, "12", None, True])
    def test_non_integer_rejected(self, value):
        with pytest.raises(TypeError):
            calculate_commission(value)

    def test_label(self):
        assert calculate_commission(18).tier.label == "Confirmé"


# =============================================================================
# TIER TABLES
# =============================================================================


class TestTiers:

    def test_default_table_is_contiguous(self):
        assert validate_tiers(COMMISSION_TIERS) == COMMISSION_TIERS
        assert COMMISSION_TIERS[-1].max_sales is None

    def test_custom_table(self):
        tiers = (
            CommissionTier(1, 1, 9, 100, "Low"),
            CommissionTier(2, 10, None, 200, "High"),
        )
        validate_tiers(tiers)
        assert calculate_commission(0, tiers).amount == 0
        assert calculate_commission(9, tiers).amount == 900
        assert calculate_commission(10, tiers).amount == 2000
        assert find_tier(500, tiers).tier == 2

    def test_empty(self):
        with pytest.raises(ValueError):
            validate_tiers([])

    def test_empty_custom_table_rejected_by_calculator(self):
        with pytest.raises(ValueError, match="empty"):
            calculate_commission(5, [])
        with pytest.raises(ValueError, match="empty"):
            find_tier(5, ())

    def test_invalid_custom_table_rejected_by_calculator(self):
        with pytest.raises(ValueError, match="not contiguous"):
            calculate_commission(5, [
                CommissionTier(1, 1, 5, 10, "A"),
                CommissionTier(2, 7, None, 20, "B"),
            ])

    def test_gap(self):
        with pytest.raises(ValueError, match="not contiguous"):
            validate_tiers([
                CommissionTier(1, 1, 5, 10, "A"),
                CommissionTier(2, 7, None, 20, "B"),
            ])

    def test_open_ended_in_middle(self):
        with pytest.raises(ValueError, match="open-ended"):
            validate_tiers([
                CommissionTier(1, 1, None, 10, "A"),
                CommissionTier(2, 7, None, 20, "B"),
            ])

    def test_max_below_min(self):
        with pytest.raises(ValueError, match="max below min"):
            validate_tiers([CommissionTier(1, 10, 5, 10, "A")])

    def test_negative_rate(self):
        with pytest.raises(ValueError):
            validate_tiers([CommissionTier(1, 1, None, -10, "A")])


# =============================================================================
# TABULAR HELPERS
# =============================================================================


class TestTabularHelpers:

    def test_commission_table(self):
        df = commission_table()
        assert list(df.columns) == ["Tier", "Label", "Min sales", "Max sales", "Bonus per sale"]
        assert len(df) == 6
        assert df["Min sales"].tolist() == [12, 16, 21, 26, 31, 40]
        assert pd.isna(df["Max sales"].iloc[-1])

    def test_apply_commissions(self):
        df = pd.DataFrame({
            "agent": ["a", "b", "c", "d", "e"],
            "validated_sales": [5, 12, 40, None, -3],
        })
        result = apply_commissions(df)

        assert result["commission_amount"].tolist() == [0, 60000, 400000, 0, 0]
        assert result["commission_tier"].isna().tolist() == [True, False, False, True, True]
        assert result["commission_tier"].dropna().tolist() == [1, 6]
        assert result["commission_label"].isna().tolist() == [True, False, False, True, True]
        assert result["commission_label"].dropna().tolist() == ["Débutant", "Champion"]
        assert "commission_amount" not in df.columns

    def test_apply_commissions_missing_column(self):
        df = pd.DataFrame({"agent": ["a", "b"]})
        result = apply_commissions(df)
        assert result["commission_amount"].tolist() == [0, 0]
        assert result["commission_tier"].isna().all()


class TestFormatCurrency:

    @pytest.mark.parametrize("amount,expected", [
        (0, "0 XOF"),
        (5000, "5 000 XOF"),
        (60000, "60 000 XOF"),
        (1000000, "1 000 000 XOF"),
    ])
    def test_format(self, amount, expected):
        assert format_currency(amount) == expected
