"""Zahlungsdaten für den EPC QR-Code (nur während der Erzeugung)"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class PaymentEncoding:
    """
    Eingabe für den SEPA QR-Code

    Wird pro Rechnung neu aufgebaut und nie gespeichert.
    """
    recipient_name: Optional[str]
    iban: Optional[str]
    amount: Optional[Decimal] = None
    currency: str = "EUR"
    bic: Optional[str] = None
    purpose: Optional[str] = None
    reference: Optional[str] = None
    unstructured_text: Optional[str] = None
