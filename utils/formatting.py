"""
Formatting utilities.
"""


def format_percent(value: float, decimals: int = 1) -> str:
    """
    Format a number as a percentage.

    Args:
        value: The percentage value.
        decimals: Number of decimal places.

    Returns:
        Formatted percentage string.
    """
    return f"{value:.{decimals}f}%"


def humanize_key(key: str) -> str:
    """Turn a snake_case field or state key into a display label."""
    words = key.replace("-", "_").split("_")
    return " ".join(w for w in words if w).capitalize()
