"""Erzeugung von Rechnungs- und Angebots-PDFs mit SEPA QR-Code"""
from invoice_pdf.version import __version__

__all__ = ["__version__"]
