"""Tests für die Erzeugung von Rechnungs- und Angebots-PDFs"""
import time
from decimal import Decimal
from io import BytesIO

import httpx
import pytest
from PIL import Image

from invoice_pdf.exceptions import ContractViolationError
from invoice_pdf.schemas import BusinessProfile, InvoiceRecord, LineItem
from invoice_pdf.services.image_fetcher import ImageFetcher
from invoice_pdf.services.invoice_generator import (
    EXEMPTION_NOTE,
    LOGO_HEIGHT,
    LOGO_WIDTH,
    LOGO_X,
    LOGO_Y,
    QR_CAPTION,
    InvoiceGenerator,
    build_document_filename,
)


def all_texts(renderer) -> list:
    return [t.text for t in renderer.drawn_text]


def image_labels(renderer) -> list:
    return [i.label for i in renderer.drawn_images]


@pytest.mark.integration
class TestInvoiceDocument:
    """Vollständige Rechnung mit MwSt"""

    def test_generate_returns_pdf(self, generator, sample_invoice, sample_profile):
        pdf = generator.generate(sample_invoice, sample_profile)
        assert pdf.startswith(b"%PDF")
        assert b"RECHNUNG" in pdf

    def test_sections_present(self, generator, sample_invoice, sample_profile):
        texts = all_texts(generator.render(sample_invoice, sample_profile))
        assert "RECHNUNG" in texts
        assert "Nr. RE-2025-0001" in texts
        assert "Rechnungsdatum:" in texts
        assert "01.03.2025" in texts
        assert "Fälligkeitsdatum:" in texts
        assert "15.03.2025" in texts
        assert "Gültig bis:" not in texts
        assert texts.count("Erika Musterfrau") == 2  # Adressblock und Kundenzeile
        assert "Steuernummer: 123/456/78901" in texts
        assert "USt-IdNr: DE123456789" in texts

    def test_items_table(self, generator, sample_invoice, sample_profile):
        texts = all_texts(generator.render(sample_invoice, sample_profile))
        for header in ["Pos.", "Beschreibung", "Menge", "Einzelpreis", "Gesamtpreis"]:
            assert header in texts
        assert "Fliesen verlegen Badezimmer" in texts
        assert "800,00 €" in texts
        assert "80,00 €" in texts

    def test_vat_totals(self, generator, sample_invoice, sample_profile):
        assert sample_invoice.total_amount == sample_invoice.subtotal + sample_invoice.tax_amount

        texts = all_texts(generator.render(sample_invoice, sample_profile))
        assert "Nettobetrag:" in texts
        assert "1.000,00 €" in texts
        assert "zzgl. MwSt (19%):" in texts
        assert "190,00 €" in texts
        assert "Gesamtbetrag:" in texts
        assert "1.190,00 €" in texts
        assert EXEMPTION_NOTE not in texts

    def test_payment_section_with_qr(self, generator, sample_invoice, sample_profile):
        renderer = generator.render(sample_invoice, sample_profile)
        texts = all_texts(renderer)
        assert "Zahlungsinformationen" in texts
        assert "DE89370400440532013000" in texts
        assert "COBADEFFXXX" in texts
        assert "Commerzbank" in texts
        assert "14 Tage" in texts
        assert "qr" in image_labels(renderer)
        assert QR_CAPTION in texts

    def test_qr_placed_beside_payment_details(self, generator, sample_invoice, sample_profile):
        renderer = generator.render(sample_invoice, sample_profile)
        qr = next(i for i in renderer.drawn_images if i.label == "qr")
        iban_label = next(t for t in renderer.drawn_text if t.text == "IBAN:")
        assert qr.x > iban_label.x
        assert qr.y == iban_label.y

    def test_legal_footer(self, generator, sample_invoice, sample_profile, test_settings):
        texts = all_texts(generator.render(sample_invoice, sample_profile))
        assert (
            "Fliesen Mustermann | info@fliesen-mustermann.de | 0123 456789 | Steuernr: 123/456/78901"
            in texts
        )
        assert test_settings.platform_attribution in texts

    def test_logo_drawn(self, generator, logo_fetcher, sample_invoice, sample_profile):
        renderer = generator.render(sample_invoice, sample_profile)
        logo = next(i for i in renderer.drawn_images if i.label == "logo")
        assert (logo.x, logo.y) == (LOGO_X, LOGO_Y)
        assert logo_fetcher.requested == ["https://example.com/logo.png"]
        assert "LOGO" not in all_texts(renderer)

    def test_filename(self, sample_invoice, sample_quote):
        assert build_document_filename(sample_invoice) == "Rechnung_RE_2025_0001_Erika_Musterfrau.pdf"
        assert build_document_filename(sample_quote) == "Angebot_AN_2025_0001_Erika_Musterfrau.pdf"

    def test_filename_without_number(self, sample_invoice):
        draft = sample_invoice.model_copy(update={"number": ""})
        assert build_document_filename(draft) == "Rechnung_DRAFT_Erika_Musterfrau.pdf"


@pytest.mark.integration
class TestSmallBusiness:
    """Kleinunternehmer nach §19 UStG"""

    def test_no_vat_line(self, generator, exempt_invoice, sample_profile):
        assert exempt_invoice.tax_amount == 0

        texts = all_texts(generator.render(exempt_invoice, sample_profile))
        assert not any(t.startswith("zzgl. MwSt") for t in texts)
        assert "Nettobetrag:" not in texts
        assert "Gesamtbetrag:" in texts
        assert EXEMPTION_NOTE in texts

    def test_exemption_note_is_italic(self, generator, exempt_invoice, sample_profile):
        renderer = generator.render(exempt_invoice, sample_profile)
        note = next(t for t in renderer.drawn_text if t.text == EXEMPTION_NOTE)
        assert note.font == renderer.fonts.italic


@pytest.mark.integration
class TestQuoteDocument:
    """Angebote haben keinen Zahlungsteil"""

    def test_quote_layout(self, generator, sample_quote, sample_profile):
        texts = all_texts(generator.render(sample_quote, sample_profile))
        assert "ANGEBOT" in texts
        assert "Angebotsdatum:" in texts
        assert "Gültig bis:" in texts
        assert "31.03.2025" in texts
        assert "Fälligkeitsdatum:" not in texts

    def test_quote_without_payment_section(self, generator, sample_quote, sample_profile):
        # Profil mit vollständiger Bankverbindung
        assert sample_profile.iban and sample_profile.bic

        renderer = generator.render(sample_quote, sample_profile)
        texts = all_texts(renderer)
        assert "Zahlungsinformationen" not in texts
        assert QR_CAPTION not in texts
        assert "qr" not in image_labels(renderer)

    def test_gate_rejects_quote(self, sample_quote, sample_profile):
        assert InvoiceGenerator.qr_gate_reason(sample_quote, sample_profile) is not None


@pytest.mark.integration
class TestDegradedPayment:
    """Zahlungsteil ohne QR-Code"""

    def test_missing_iban(self, generator, sample_invoice, sample_profile):
        profile = sample_profile.model_copy(update={"iban": None})

        renderer = generator.render(sample_invoice, profile)
        pdf = renderer.finalize()
        texts = all_texts(renderer)

        assert len(pdf) > 0
        assert "Zahlungsinformationen" in texts
        assert "Zahlungsziel:" in texts
        assert "qr" not in image_labels(renderer)
        assert any("Keine IBAN" in t for t in texts)

    def test_invalid_iban_falls_back_to_text(self, generator, sample_invoice, sample_profile):
        profile = sample_profile.model_copy(update={"iban": "123456"})

        renderer = generator.render(sample_invoice, profile)
        texts = all_texts(renderer)

        assert "qr" not in image_labels(renderer)
        assert "123456" in texts
        assert any(t.startswith("QR-Code konnte nicht erstellt werden") for t in texts)

    def test_zero_amount(self, generator, sample_profile):
        invoice = InvoiceRecord(
            number="RE-0",
            issue_date="2025-01-01",
            items=[LineItem(description="Kulanz", quantity=1, unit_price=0, line_total=0)],
            subtotal=0,
            tax_rate=19,
            tax_amount=0,
            total_amount=0,
            customer_name="Kunde",
        )
        renderer = generator.render(invoice, sample_profile)
        assert "qr" not in image_labels(renderer)
        assert any("Rechnungsbetrag ist 0" in t for t in all_texts(renderer))

    def test_missing_recipient_name(self, generator, sample_invoice):
        profile = BusinessProfile(iban="DE89370400440532013000")
        assert InvoiceGenerator.qr_gate_reason(sample_invoice, profile) is not None
        renderer = generator.render(sample_invoice, profile)
        assert "qr" not in image_labels(renderer)


@pytest.mark.integration
class TestLogoFallback:
    """Logo-Platzhalter bei fehlendem oder nicht erreichbarem Logo"""

    def _assert_placeholder(self, renderer):
        assert "logo" not in image_labels(renderer)
        label = next(t for t in renderer.drawn_text if t.text == "LOGO")
        assert LOGO_X <= label.x <= LOGO_X + LOGO_WIDTH
        assert LOGO_Y <= label.y <= LOGO_Y + LOGO_HEIGHT

    def test_failed_fetch(self, test_settings, failing_fetcher, sample_invoice, sample_profile):
        generator = InvoiceGenerator(config=test_settings, image_fetcher=failing_fetcher)
        renderer = generator.render(sample_invoice, sample_profile)
        self._assert_placeholder(renderer)
        # Der Rest des Dokuments bleibt vollständig
        assert "qr" in image_labels(renderer)

    def test_no_logo_url(self, test_settings, sample_invoice, sample_profile):
        generator = InvoiceGenerator(config=test_settings)
        profile = sample_profile.model_copy(update={"logo_url": None})
        self._assert_placeholder(generator.render(sample_invoice, profile))

    def test_layout_unchanged_by_logo_failure(
        self, test_settings, failing_fetcher, generator, sample_invoice, sample_profile
    ):
        with_logo = generator.render(sample_invoice, sample_profile)
        without_logo = InvoiceGenerator(config=test_settings, image_fetcher=failing_fetcher).render(
            sample_invoice, sample_profile
        )
        title_with = next(t for t in with_logo.drawn_text if t.text == "RECHNUNG")
        title_without = next(t for t in without_logo.drawn_text if t.text == "RECHNUNG")
        assert title_with.y == title_without.y

    def test_unreachable_logo_still_renders(self, test_settings, sample_invoice, sample_profile):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        fetcher = ImageFetcher(timeout=0.5, transport=httpx.MockTransport(handler))
        generator = InvoiceGenerator(config=test_settings, image_fetcher=fetcher)

        pdf = generator.generate(sample_invoice, sample_profile)
        assert pdf.startswith(b"%PDF")

    def test_oversized_logo_dimensions(self, test_settings, sample_invoice, sample_profile):
        """Test: Ein Logo mit 20000x10000 Pixeln führt zum Platzhalter, nicht zum Abbruch"""
        buffer = BytesIO()
        Image.new("1", (20000, 10000)).save(buffer, format="PNG")
        bomb = buffer.getvalue()

        fetcher = ImageFetcher(
            timeout=2.0,
            transport=httpx.MockTransport(lambda request: httpx.Response(200, content=bomb)),
        )
        generator = InvoiceGenerator(config=test_settings, image_fetcher=fetcher)

        renderer = generator.render(sample_invoice, sample_profile)
        self._assert_placeholder(renderer)
        assert renderer.finalize().startswith(b"%PDF")

    def test_slow_logo_bounded_by_timeout(self, test_settings, sample_invoice, sample_profile):
        def drip():
            for _ in range(100):
                time.sleep(0.05)
                yield b"x"

        fetcher = ImageFetcher(
            timeout=0.5,
            transport=httpx.MockTransport(lambda request: httpx.Response(200, content=drip())),
        )
        generator = InvoiceGenerator(config=test_settings, image_fetcher=fetcher)

        started = time.monotonic()
        renderer = generator.render(sample_invoice, sample_profile)
        elapsed = time.monotonic() - started

        self._assert_placeholder(renderer)
        assert elapsed < 0.5 + 1.5


@pytest.mark.unit
class TestContract:
    """Pflichtangaben"""

    def test_blank_customer_name(self, generator, sample_invoice, sample_profile):
        invoice = sample_invoice.model_copy(update={"customer_name": "  "})
        with pytest.raises(ContractViolationError, match="Kundenname"):
            generator.generate(invoice, sample_profile)

    def test_no_items(self, generator, sample_invoice, sample_profile):
        invoice = sample_invoice.model_copy(update={"items": []})
        with pytest.raises(ContractViolationError, match="Positionen"):
            generator.generate(invoice, sample_profile)

    def test_missing_total(self, generator, sample_invoice, sample_profile):
        invoice = sample_invoice.model_copy(update={"total_amount": None})
        with pytest.raises(ContractViolationError, match="Gesamtbetrag"):
            generator.generate(invoice, sample_profile)

    def test_contract_violation_before_logo_fetch(self, generator, logo_fetcher, sample_invoice, sample_profile):
        invoice = sample_invoice.model_copy(update={"items": []})
        with pytest.raises(ContractViolationError):
            generator.generate(invoice, sample_profile)
        assert logo_fetcher.requested == []


@pytest.mark.integration
class TestPagination:
    """Seitenumbruch bei vielen Positionen"""

    def test_many_items_break_pages(self, generator, sample_invoice, sample_profile):
        items = [
            LineItem(
                description=f"Position {i}",
                quantity=Decimal("1"),
                unit_price=Decimal("10.00"),
                line_total=Decimal("10.00"),
            )
            for i in range(1, 61)
        ]
        invoice = sample_invoice.model_copy(update={"items": items})

        renderer = generator.render(invoice, sample_profile)

        assert renderer.page_number > 1
        page_two = renderer.texts_on_page(2)
        assert "RECHNUNG Nr. RE-2025-0001 (Fortsetzung)" in page_two
        assert "Beschreibung" in page_two  # Tabellenkopf wiederholt
        # Alle Positionen vorhanden, keine über dem Fußbereich
        descriptions = [t for t in renderer.drawn_text if t.text.startswith("Position ")]
        assert len(descriptions) == 60
        assert all(t.y <= renderer.layout.content_bottom for t in descriptions)
        # Fußzeile auf jeder Seite
        for page in range(1, renderer.page_number + 1):
            assert any(t.startswith("Fliesen Mustermann | ") for t in renderer.texts_on_page(page))

    def test_single_page_for_small_invoice(self, generator, sample_invoice, sample_profile):
        assert generator.render(sample_invoice, sample_profile).page_number == 1

    def test_description_longer_than_page_is_split(self, generator, sample_invoice, sample_profile):
        description = "\n".join(f"Schritt {i}" for i in range(1, 61))
        items = [
            LineItem(
                description=description,
                quantity=Decimal("1"),
                unit_price=Decimal("1000.00"),
                line_total=Decimal("1000.00"),
            )
        ]
        invoice = sample_invoice.model_copy(update={"items": items})

        renderer = generator.render(invoice, sample_profile)

        steps = [t for t in renderer.drawn_text if t.text.startswith("Schritt ")]
        assert [t.text for t in steps] == [f"Schritt {i}" for i in range(1, 61)]
        assert all(t.y + t.size <= renderer.layout.content_bottom for t in steps)
        assert len({t.page for t in steps}) > 1
        # Positionsnummer und Preise nur einmal
        assert all_texts(renderer).count("1.000,00 €") == 3  # Einzelpreis, Gesamtpreis, Nettobetrag


@pytest.mark.unit
def test_generator_is_stateless(generator, sample_invoice, sample_quote, sample_profile):
    """Test: Aufeinanderfolgende Erzeugungen beeinflussen sich nicht"""
    first = generator.render(sample_invoice, sample_profile)
    generator.render(sample_quote, sample_profile)
    again = generator.render(sample_invoice, sample_profile)
    assert all_texts(first) == all_texts(again)
