# sales_tracker/commission/constants.py
"""
Constants for the Commission Module

Centralized configuration for:
- Bonus tier table
- Currency display
- Tier color scheme
"""

# =====================================================================
# TIER TABLE
# =====================================================================

# (tier, min sales, max sales, bonus per sale, label); max None = no ceiling
TIER_DEFINITIONS = [
    (1, 12, 15, 5000, "Débutant"),
    (2, 16, 20, 6000, "Confirmé"),
    (3, 21, 25, 7000, "Senior"),
    (4, 26, 30, 8000, "Expert"),
    (5, 31, 39, 9000, "Elite"),
    (6, 40, None, 10000, "Champion"),
]

# =====================================================================
# DISPLAY
# =====================================================================

CURRENCY = "XOF"
THOUSANDS_SEPARATOR = " "

TIER_COLORS = {
    1: "#1f77b4",   # Blue
    2: "#2ca02c",   # Green
    3: "#ff7f0e",   # Orange
    4: "#9467bd",   # Purple
    5: "#d62728",   # Red
    6: "#FFD700",   # Gold
}

TABLE_COLUMNS = ["Tier", "Label", "Min sales", "Max sales", "Bonus per sale"]
