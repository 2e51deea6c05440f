"""Pydantic Schema für das Unternehmensprofil (Rechnungssteller)"""
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from invoice_pdf.utils.validators import Validators


class BusinessProfile(BaseModel):
    """Stammdaten des Rechnungsstellers inkl. Bankverbindung"""
    business_name: Optional[str] = Field(None, max_length=200)
    full_name: Optional[str] = Field(None, max_length=200)
    address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=200)
    tax_number: Optional[str] = Field(None, max_length=50)
    vat_id: Optional[str] = Field(None, max_length=50)
    logo_url: Optional[str] = None
    iban: Optional[str] = Field(None, max_length=50)
    bic: Optional[str] = Field(None, max_length=20)
    bank_name: Optional[str] = Field(None, max_length=200)

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        """Validiert die E-Mail-Adresse"""
        return Validators.validate_email(v)

    @field_validator('iban', 'bic')
    @classmethod
    def normalize_bank_code(cls, v: Optional[str]) -> Optional[str]:
        """
        Entfernt Leerzeichen, wandelt in Großbuchstaben um.

        Die eigentliche Prüfung erfolgt erst beim Erstellen des QR-Codes,
        damit ein fehlerhaftes Profil das Dokument nicht verhindert.
        """
        return Validators.normalize_account_code(v)

    @field_validator('business_name', 'full_name', 'logo_url', 'bank_name')
    @classmethod
    def empty_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @property
    def display_name(self) -> Optional[str]:
        """Firmenname, ersatzweise der vollständige Name"""
        return self.business_name or self.full_name
