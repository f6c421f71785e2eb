"""Display formatting for currency amounts."""

from __future__ import annotations


def format_currency(amount: float, *, symbol: str = "Rp") -> str:
    """Format an Indonesian Rupiah amount, e.g. ``Rp50.000`` or ``Rp12.345,5``."""

    negative = amount < 0
    rounded = round(abs(amount), 2)
    whole = int(rounded)
    fraction = round(rounded - whole, 2)
    text = f"{whole:,}".replace(",", ".")
    if fraction:
        text += "," + f"{fraction:.2f}"[2:].rstrip("0")
    return f"{'-' if negative else ''}{symbol}{text}"
