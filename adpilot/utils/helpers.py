"""
Helper utilities
"""


def calculate_roas(revenue: float, spend: float) -> float:
    """ROAS as a percentage (revenue / spend * 100), 0 when nothing was spent"""
    if spend <= 0:
        return 0.0
    return revenue / spend * 100


def calculate_percentage_change(current: float, previous: float) -> float:
    """
    Percentage change relative to the magnitude of the previous value.

    A zero baseline reports 100 for any rise and 0 otherwise.
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return ((current - previous) / abs(previous)) * 100
