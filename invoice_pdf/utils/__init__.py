"""Utilities Package"""
from invoice_pdf.utils.formatting import (
    format_currency,
    format_date,
    format_percent,
    format_quantity,
    round_money,
    to_decimal,
)
from invoice_pdf.utils.validators import Validators

__all__ = [
    "format_currency",
    "format_date",
    "format_percent",
    "format_quantity",
    "round_money",
    "to_decimal",
    "Validators",
]
