"""Number formatting helpers for simulation summaries."""

_SUFFIXES = (
    (1e9, "B"),
    (1e6, "M"),
    (1e3, "K"),
)


def format_number(value: float, decimals: int = 2) -> str:
    """Format with a K/M/B suffix, e.g. 1234567 -> "1.23M"."""
    for threshold, suffix in _SUFFIXES:
        if abs(value) >= threshold:
            return f"{value / threshold:.{decimals}f}{suffix}"
    return f"{value:.{decimals}f}"


def format_percent(value: float, decimals: int = 1) -> str:
    """Format a proportion as a percentage, e.g. 0.125 -> "12.5%"."""
    return f"{value * 100:.{decimals}f}%"
