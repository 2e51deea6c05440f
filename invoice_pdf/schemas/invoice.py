"""Pydantic Schemas für Rechnungen und Angebote"""
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

from invoice_pdf.utils.formatting import round_money


class DocumentKind(str, Enum):
    """Art des Dokuments"""
    QUOTE = "quote"
    INVOICE = "invoice"


class LineItem(BaseModel):
    """Eine Position der Rechnung. line_total wird vom Aufrufer geliefert und nicht nachgerechnet."""
    description: str = Field(..., max_length=1000)
    quantity: Decimal = Field(..., ge=0)
    unit_price: Decimal = Field(..., ge=0)
    line_total: Decimal


class InvoiceRecord(BaseModel):
    """
    Vollständig erfasste Rechnung bzw. Angebot

    Kleinunternehmer (§19 UStG): Steuersatz und Steuerbetrag sind 0,
    der Gesamtbetrag entspricht dem Nettobetrag.
    """
    kind: DocumentKind = DocumentKind.INVOICE
    number: str = Field(..., min_length=1, max_length=100)
    issue_date: date
    due_date: Optional[date] = None
    valid_until: Optional[date] = None
    items: List[LineItem] = Field(default_factory=list)
    subtotal: Decimal = Field(..., ge=0)
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    tax_amount: Decimal = Field(default=Decimal("0"), ge=0)
    total_amount: Decimal = Field(..., ge=0)
    is_small_business_exempt: bool = False
    customer_name: str = Field(..., max_length=200)
    customer_address: Optional[str] = None
    payment_terms_days: Optional[int] = Field(None, ge=0, le=365)

    @field_validator('customer_name', 'number')
    @classmethod
    def strip_text(cls, v: str) -> str:
        """Entfernt Leerzeichen am Anfang/Ende"""
        return v.strip()

    @model_validator(mode='after')
    def validate_totals(self) -> 'InvoiceRecord':
        """Prüft die Konsistenz von Netto, Steuer und Gesamtbetrag"""
        if self.is_small_business_exempt:
            # Kleinunternehmer: Steuersatz wird immer auf 0 gesetzt
            self.tax_rate = Decimal("0")
            if round_money(self.tax_amount) != 0:
                raise ValueError("Kleinunternehmer-Rechnungen dürfen keine Umsatzsteuer enthalten")
            if round_money(self.total_amount) != round_money(self.subtotal):
                raise ValueError("Gesamtbetrag muss bei Kleinunternehmern dem Nettobetrag entsprechen")
            return self

        expected_tax, expected_total = self.calculate_totals(
            self.subtotal, self.tax_rate, self.is_small_business_exempt
        )
        if round_money(self.tax_amount) != expected_tax:
            raise ValueError(
                f"Steuerbetrag {self.tax_amount} passt nicht zu {self.tax_rate}% von {self.subtotal}"
            )
        if round_money(self.total_amount) != expected_total:
            raise ValueError("Gesamtbetrag muss Nettobetrag plus Steuerbetrag entsprechen")
        return self

    @staticmethod
    def calculate_totals(
        subtotal: Decimal,
        tax_rate: Decimal,
        is_small_business_exempt: bool = False
    ) -> Tuple[Decimal, Decimal]:
        """
        Berechnet Steuer- und Gesamtbetrag aus dem Nettobetrag

        Returns:
            (tax_amount, total_amount), jeweils auf Cent gerundet
        """
        net = round_money(subtotal)
        if is_small_business_exempt:
            return Decimal("0.00"), net
        tax = round_money(net * Decimal(tax_rate) / Decimal(100))
        return tax, net + tax

    @property
    def is_quote(self) -> bool:
        return self.kind == DocumentKind.QUOTE

    @property
    def title(self) -> str:
        """Dokumenttitel für Kopfzeile und Metadaten"""
        return "Angebot" if self.is_quote else "Rechnung"
