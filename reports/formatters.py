"""
Display formatters for ranking output.
Deterministic string formatting for percentages, prices and ratios.
"""

from typing import Optional


class FormatterError(Exception):
    """Raised when formatter input validation fails."""
    pass


def format_percentage(value: Optional[float], decimal_places: int = 2) -> str:
    """
    Format a value that is already a percentage.

    Args:
        value: Percentage value (8.45 = 8.45%)
        decimal_places: Number of decimal places (default: 2)

    Returns:
        Formatted percentage string (e.g., "8.45%")
    """
    if value is None:
        return "Not available"

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise FormatterError(f"Percentage value must be numeric, got {type(value)}")

    return f"{value:.{decimal_places}f}%"


def format_price(value: Optional[float]) -> str:
    """
    Format a closing price in dollars.

    Returns:
        Formatted price string (e.g., "$1,234.50")
    """
    if value is None:
        return "Not available"

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise FormatterError(f"Price value must be numeric, got {type(value)}")

    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_ratio(value: Optional[float]) -> str:
    """Format the return/volatility ratio with two decimals."""
    if value is None:
        return "Not available"

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise FormatterError(f"Ratio value must be numeric, got {type(value)}")

    return f"{value:.2f}"
