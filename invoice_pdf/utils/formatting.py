"""
Formatierung von Beträgen, Datumsangaben und Prozentsätzen (de-DE)

Alle Geldbeträge werden als Decimal verarbeitet und kaufmännisch auf
Cent gerundet: 1234.5 -> "1.234,50 €".
"""
import re
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional, Union

CENT = Decimal("0.01")

Number = Union[Decimal, float, int, str]


def to_decimal(value: Optional[Number]) -> Decimal:
    """
    Wandelt einen Wert in Decimal um (None -> 0).

    Floats werden über ihre String-Darstellung konvertiert, damit
    1234.5 nicht zu 1234.4999... wird.
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).replace(",", ".").strip())
    except InvalidOperation:
        raise ValueError(f"Ungültiger Betrag: {value!r}")


def round_money(value: Optional[Number]) -> Decimal:
    """Rundet kaufmännisch auf zwei Nachkommastellen"""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _german_number(value: Decimal, decimals: int) -> str:
    # 1234567.5 -> "1.234.567,50"
    formatted = f"{abs(value):,.{decimals}f}"
    formatted = formatted.replace(",", "X").replace(".", ",").replace("X", ".")
    return f"-{formatted}" if value < 0 else formatted


def format_currency(amount: Optional[Number], symbol: str = "€") -> str:
    """
    Formatiert einen Betrag im deutschen Format.

    Args:
        amount: Betrag (None wird als 0 dargestellt)
        symbol: Währungssymbol

    Returns:
        z.B. "1.234,50 €"
    """
    return f"{_german_number(round_money(amount), 2)} {symbol}"


def _plain_number(value: Optional[Number]) -> str:
    number = to_decimal(value)
    if number == number.to_integral_value():
        return str(int(number))
    text = format(number.normalize(), "f")
    return text.replace(".", ",")


def format_percent(rate: Optional[Number]) -> str:
    """Steuersatz ohne Nachberechnung: 19 -> "19", 7.5 -> "7,5" """
    return _plain_number(rate)


def format_quantity(quantity: Optional[Number]) -> str:
    """Menge: ganze Zahlen ohne Nachkommastellen, sonst mit Komma"""
    return _plain_number(quantity)


def format_date(value: Union[date, datetime, str, None]) -> str:
    """
    Formatiert ein Datum als TT.MM.JJJJ.

    Akzeptiert date, datetime oder ISO-Strings ("2025-03-01", "2025-03-01T10:00:00").
    Leere Werte ergeben einen Leerstring.
    """
    if not value:
        return ""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            raise ValueError(f"Ungültiges Datum: {value!r}")
    return value.strftime("%d.%m.%Y")


def sanitize_filename_part(text: Optional[str]) -> str:
    """Ersetzt alle Zeichen außer a-z, A-Z, 0-9 durch Unterstriche"""
    return re.sub(r'[^a-zA-Z0-9]', '_', text or "")
