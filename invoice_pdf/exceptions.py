"""Fehlerklassen der Dokumenterzeugung"""
from typing import List, Optional


class InvoiceDocumentError(Exception):
    """Basisklasse für alle Fehler der Rechnungs-/Angebotserzeugung"""


class ContractViolationError(InvoiceDocumentError, ValueError):
    """
    Pflichtdaten fehlen (Kundenname, Positionen, Gesamtbetrag).

    Bricht die Erzeugung des Dokuments ab.
    """


class ResourceUnavailableError(InvoiceDocumentError):
    """Externe Ressource (z.B. Logo) konnte nicht geladen werden"""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class EncodingValidationError(InvoiceDocumentError, ValueError):
    """Zahlungsdaten sind für den EPC QR-Code ungültig"""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Ungültige Zahlungsdaten: " + ", ".join(self.errors))
