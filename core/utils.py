"""
Shared helpers for money and percentages
"""
from decimal import Decimal, ROUND_HALF_UP

TWO_PLACES = Decimal('0.01')


def to_decimal(value):
    if value is None:
        return Decimal('0')
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value):
    """Round to 2 decimal places, half up"""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def calculate_percentage(part, total):
    """Calculate percentage; a zero total yields 0"""
    total = to_decimal(total)
    if total == 0:
        return Decimal('0.00')
    return round_money(to_decimal(part) / total * 100)
