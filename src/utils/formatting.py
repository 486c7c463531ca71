from __future__ import annotations

from decimal import Decimal


def format_decimal(value: Decimal) -> str:
    quantized = value.normalize()
    # Avoid scientific notation for integers.
    if quantized == quantized.to_integral():
        return f"{quantized:.0f}"
    return format(quantized, "f")


def format_currency(value: Decimal) -> str:
    cents = value.quantize(Decimal("0.01"))
    return f"{cents:.2f}"


def format_percent(value: Decimal) -> str:
    return f"{format_currency(value)}%"


def format_signed_currency(value: Decimal) -> str:
    text = format_currency(value)
    return text if value < 0 else f"+{text}"


__all__ = ["format_currency", "format_decimal", "format_percent", "format_signed_currency"]
