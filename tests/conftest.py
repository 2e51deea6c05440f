"""Pytest Fixtures und Test-Konfiguration"""
from datetime import date
from decimal import Decimal
from io import BytesIO
from typing import Optional

import pytest
from PIL import Image

from invoice_pdf.config import Settings
from invoice_pdf.schemas import BusinessProfile, DocumentKind, InvoiceRecord, LineItem
from invoice_pdf.services.image_fetcher import LogoFetchResult
from invoice_pdf.services.invoice_generator import InvoiceGenerator


class StubImageFetcher:
    """Ersetzt den HTTP-Abruf; merkt sich die angefragten URLs"""

    def __init__(self, result: LogoFetchResult):
        self.result = result
        self.requested = []

    def fetch(self, url: Optional[str]) -> LogoFetchResult:
        self.requested.append(url)
        return self.result


def make_png(width: int = 60, height: int = 30) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (width, height), color=(30, 64, 175)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    """Kleines gültiges PNG"""
    return make_png()


@pytest.fixture
def test_settings() -> Settings:
    """Einstellungen ohne Seitenkompression, damit Text im PDF lesbar bleibt"""
    return Settings(page_compression=False, logo_fetch_timeout=2.0)


@pytest.fixture
def sample_items() -> list:
    return [
        LineItem(
            description="Fliesen verlegen Badezimmer",
            quantity=Decimal("10"),
            unit_price=Decimal("80.00"),
            line_total=Decimal("800.00"),
        ),
        LineItem(
            description="Material (Kleber, Fugenmasse)",
            quantity=Decimal("1"),
            unit_price=Decimal("200.00"),
            line_total=Decimal("200.00"),
        ),
    ]


@pytest.fixture
def sample_invoice(sample_items) -> InvoiceRecord:
    """Rechnung mit 19% MwSt"""
    return InvoiceRecord(
        kind=DocumentKind.INVOICE,
        number="RE-2025-0001",
        issue_date=date(2025, 3, 1),
        due_date=date(2025, 3, 15),
        items=sample_items,
        subtotal=Decimal("1000.00"),
        tax_rate=Decimal("19"),
        tax_amount=Decimal("190.00"),
        total_amount=Decimal("1190.00"),
        customer_name="Erika Musterfrau",
        customer_address="Hauptstraße 5\n80331 München",
        payment_terms_days=14,
    )


@pytest.fixture
def exempt_invoice(sample_items) -> InvoiceRecord:
    """Kleinunternehmer-Rechnung nach §19 UStG"""
    return InvoiceRecord(
        kind=DocumentKind.INVOICE,
        number="RE-2025-0002",
        issue_date=date(2025, 3, 1),
        due_date=date(2025, 3, 15),
        items=sample_items,
        subtotal=Decimal("1000.00"),
        total_amount=Decimal("1000.00"),
        is_small_business_exempt=True,
        customer_name="Erika Musterfrau",
        customer_address="Hauptstraße 5\n80331 München",
        payment_terms_days=14,
    )


@pytest.fixture
def sample_quote(sample_items) -> InvoiceRecord:
    """Angebot mit 19% MwSt"""
    return InvoiceRecord(
        kind=DocumentKind.QUOTE,
        number="AN-2025-0001",
        issue_date=date(2025, 3, 1),
        valid_until=date(2025, 3, 31),
        items=sample_items,
        subtotal=Decimal("1000.00"),
        tax_rate=Decimal("19"),
        tax_amount=Decimal("190.00"),
        total_amount=Decimal("1190.00"),
        customer_name="Erika Musterfrau",
    )


@pytest.fixture
def sample_profile() -> BusinessProfile:
    """Vollständiges Profil inkl. Bankverbindung"""
    return BusinessProfile(
        business_name="Fliesen Mustermann",
        full_name="Max Mustermann",
        address="Werkstattweg 1",
        city="12345 Musterstadt",
        phone="0123 456789",
        email="info@fliesen-mustermann.de",
        tax_number="123/456/78901",
        vat_id="DE123456789",
        logo_url="https://example.com/logo.png",
        iban="DE89 3704 0044 0532 0130 00",
        bic="COBADEFFXXX",
        bank_name="Commerzbank",
    )


@pytest.fixture
def failing_fetcher() -> StubImageFetcher:
    return StubImageFetcher(LogoFetchResult.failure("Zeitüberschreitung nach 2 Sekunden"))


@pytest.fixture
def logo_fetcher(png_bytes) -> StubImageFetcher:
    return StubImageFetcher(LogoFetchResult.success(png_bytes))


@pytest.fixture
def generator(test_settings, logo_fetcher) -> InvoiceGenerator:
    """Generator mit erfolgreichem Logo-Abruf"""
    return InvoiceGenerator(config=test_settings, image_fetcher=logo_fetcher)
