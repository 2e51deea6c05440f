"""Pydantic Schemas für Rechnungen, Profile und Zahlungsdaten"""
from invoice_pdf.schemas.invoice import DocumentKind, LineItem, InvoiceRecord
from invoice_pdf.schemas.profile import BusinessProfile
from invoice_pdf.schemas.payment import PaymentEncoding

__all__ = [
    "DocumentKind",
    "LineItem",
    "InvoiceRecord",
    "BusinessProfile",
    "PaymentEncoding",
]
