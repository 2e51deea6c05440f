"""Invoice (Rechnung/Angebot) Generator Service"""
import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from invoice_pdf.config import Settings, settings
from invoice_pdf.exceptions import ContractViolationError, EncodingValidationError
from invoice_pdf.schemas import BusinessProfile, InvoiceRecord
from invoice_pdf.services.image_fetcher import ImageFetcher
from invoice_pdf.services.pdf_renderer import FontConfig, PdfRenderer
from invoice_pdf.services.qrcode_service import QRCodeService
from invoice_pdf.utils.formatting import (
    format_currency,
    format_date,
    format_percent,
    format_quantity,
    sanitize_filename_part,
)
from invoice_pdf.utils.validators import Validators

logger = logging.getLogger(__name__)

MARGIN_LEFT = 50
CONTENT_RIGHT = 550
GRAY = "#666666"

# Kopfbereich
LOGO_X, LOGO_Y, LOGO_WIDTH, LOGO_HEIGHT = 50, 50, 150, 70
BUSINESS_X = 320

# Mindestpositionen (Fensterumschlag)
CUSTOMER_MIN_Y = 120
TITLE_MIN_Y = 200
DETAIL_VALUE_X = 170

# Positions-Tabelle
COL_POS = 50
COL_DESCRIPTION = 90
DESCRIPTION_WIDTH = 250
COL_QUANTITY = 350
COL_UNIT_PRICE_RIGHT = 470
COL_TOTAL_RIGHT = 550
ROW_HEIGHT = 20
ROW_PADDING = 8

# Summen
TOTALS_X = 350
TOTALS_BLOCK_HEIGHT = 70
EXEMPTION_NOTE = "Gemäß § 19 UStG wird keine Umsatzsteuer berechnet."

# Zahlungsinformationen
PAYMENT_VALUE_X = 130
QR_X = 400
QR_SIZE = 120
QR_CAPTION = "SEPA QR-Code – mit Banking-App scannen"
PAYMENT_BLOCK_HEIGHT = 190

# Fußzeile
FOOTER_Y = 750
ATTRIBUTION_Y = 762
FOOTER_WIDTH = 500


def build_document_filename(invoice: InvoiceRecord) -> str:
    """
    Dateiname für Download und E-Mail-Anhang

    Beispiel: Rechnung_RE_2025_0001_Max_Mustermann.pdf
    """
    number = sanitize_filename_part(invoice.number) or "DRAFT"
    customer = sanitize_filename_part(invoice.customer_name)
    return f"{invoice.title}_{number}_{customer}.pdf"


class InvoiceGenerator:
    """
    Service für die Generierung von PDF-Rechnungen und -Angeboten

    Hält nur Konfiguration; alle Zustände einer Erzeugung (Cursor,
    Renderer, Puffer) leben innerhalb eines render()-Aufrufs.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        image_fetcher: Optional[ImageFetcher] = None,
        fonts: Optional[FontConfig] = None
    ):
        self.config = config or settings
        self.image_fetcher = image_fetcher or ImageFetcher(
            timeout=self.config.logo_fetch_timeout,
            max_bytes=self.config.logo_max_bytes,
        )
        self.fonts = fonts or FontConfig()

    def generate(self, invoice: InvoiceRecord, profile: BusinessProfile) -> bytes:
        """
        Erzeugt das PDF für eine Rechnung oder ein Angebot

        Args:
            invoice: Rechnungs-/Angebotsdaten
            profile: Unternehmensprofil des Rechnungsstellers

        Returns:
            PDF als bytes

        Raises:
            ContractViolationError: Kundenname, Positionen oder Gesamtbetrag fehlen
        """
        return self.render(invoice, profile).finalize()

    def render(self, invoice: InvoiceRecord, profile: BusinessProfile) -> PdfRenderer:
        """Wie generate(), gibt aber den abgeschlossenen Renderer zurück"""
        self._check_contract(invoice)

        renderer = PdfRenderer(
            fonts=self.fonts,
            title=f"{invoice.title} {invoice.number}",
            author=profile.display_name,
            creator=self.config.platform_name,
            page_compression=self.config.page_compression,
        )

        y = self._add_business_header(renderer, profile)
        y = self._add_customer_address(renderer, invoice, y)
        y = self._add_invoice_title(renderer, invoice, y)
        y = self._add_invoice_details(renderer, invoice, y)
        y = self._add_items_table(renderer, invoice, profile, y)
        y = self._add_totals_section(renderer, invoice, profile, y)
        if not invoice.is_quote:
            self._add_payment_info(renderer, invoice, profile, y)
        self._add_legal_footer(renderer, profile)

        pdf = renderer.finalize()
        logger.info(
            f"{invoice.title} {invoice.number} erstellt "
            f"({renderer.page_number} Seite(n), {len(pdf)} Bytes)"
        )
        return renderer

    @staticmethod
    def _check_contract(invoice: InvoiceRecord) -> None:
        missing = []
        if Validators.is_blank(getattr(invoice, "customer_name", None)):
            missing.append("Kundenname")
        if not getattr(invoice, "items", None):
            missing.append("Positionen")
        if getattr(invoice, "total_amount", None) is None:
            missing.append("Gesamtbetrag")

        if missing:
            raise ContractViolationError("Pflichtangaben fehlen: " + ", ".join(missing))

    def _ensure_space(
        self,
        renderer: PdfRenderer,
        invoice: InvoiceRecord,
        profile: BusinessProfile,
        y: float,
        height: float
    ) -> float:
        """Beginnt eine neue Seite (mit Fußzeile), wenn der Block nicht mehr passt"""
        if renderer.fits(y, height):
            return y

        self._add_legal_footer(renderer, profile)
        y = renderer.new_page()
        renderer.text(
            MARGIN_LEFT, y,
            f"{invoice.title.upper()} Nr. {invoice.number} (Fortsetzung)",
            size=9, style="italic", color=GRAY
        )
        return y + 25

    def _add_logo(self, renderer: PdfRenderer, profile: BusinessProfile) -> float:
        result = self.image_fetcher.fetch(profile.logo_url)

        if result.ok:
            renderer.image(result.content, LOGO_X, LOGO_Y, LOGO_WIDTH, LOGO_HEIGHT, label="logo")
        else:
            if profile.logo_url:
                logger.warning(f"Logo-Platzhalter verwendet: {result.reason}")
            else:
                logger.debug("Kein Logo hinterlegt, Platzhalter wird gezeichnet")
            renderer.rect(LOGO_X, LOGO_Y, LOGO_WIDTH, LOGO_HEIGHT)
            renderer.text(
                LOGO_X, LOGO_Y + LOGO_HEIGHT / 2 - 5, "LOGO",
                size=9, align="center", width=LOGO_WIDTH, color=GRAY
            )

        return LOGO_Y + LOGO_HEIGHT

    def _add_business_header(self, renderer: PdfRenderer, profile: BusinessProfile) -> float:
        logo_bottom = self._add_logo(renderer, profile)

        y = 50
        renderer.text(BUSINESS_X, y, profile.display_name or "", size=12, style="bold")
        y += 15

        lines: List[str] = []
        if profile.address:
            lines.extend(profile.address.splitlines())
        if profile.city:
            lines.append(profile.city)
        if profile.phone:
            lines.append(f"Tel: {profile.phone}")
        for line in lines:
            renderer.text(BUSINESS_X, y, line)
            y += 12

        if profile.email:
            renderer.text(BUSINESS_X, y, profile.email)
            y += 12
        y += 8

        if profile.tax_number:
            renderer.text(BUSINESS_X, y, f"Steuernummer: {profile.tax_number}")
            y += 12
        if profile.vat_id:
            renderer.text(BUSINESS_X, y, f"USt-IdNr: {profile.vat_id}")
            y += 12

        return max(logo_bottom, y) + 20

    def _add_customer_address(self, renderer: PdfRenderer, invoice: InvoiceRecord, y: float) -> float:
        y = max(CUSTOMER_MIN_Y, y)

        renderer.text(MARGIN_LEFT, y, invoice.customer_name, size=11, style="bold")
        y += 15

        if invoice.customer_address:
            for line in invoice.customer_address.splitlines():
                if line.strip():
                    renderer.text(MARGIN_LEFT, y, line.strip())
                    y += 12

        return y + 30

    def _add_invoice_title(self, renderer: PdfRenderer, invoice: InvoiceRecord, y: float) -> float:
        y = max(TITLE_MIN_Y, y)

        renderer.text(MARGIN_LEFT, y, invoice.title.upper(), size=16, style="bold")
        renderer.text(MARGIN_LEFT, y + 20, f"Nr. {invoice.number}", size=12)

        return y + 50

    def _add_invoice_details(self, renderer: PdfRenderer, invoice: InvoiceRecord, y: float) -> float:
        rows: List[Tuple[str, str]] = []
        if invoice.is_quote:
            rows.append(("Angebotsdatum:", format_date(invoice.issue_date)))
            if invoice.valid_until:
                rows.append(("Gültig bis:", format_date(invoice.valid_until)))
        else:
            rows.append(("Rechnungsdatum:", format_date(invoice.issue_date)))
            if invoice.due_date:
                rows.append(("Fälligkeitsdatum:", format_date(invoice.due_date)))
        # Kundenname wiederholt, damit er im Sichtfenster und beim Scannen lesbar ist
        rows.append(("Kunde:", invoice.customer_name))

        for label, value in rows:
            renderer.text(MARGIN_LEFT, y, label)
            renderer.text(DETAIL_VALUE_X, y, value)
            y += 15

        return y + 10

    def _add_table_header(self, renderer: PdfRenderer, y: float) -> float:
        renderer.text(COL_POS, y, "Pos.", style="bold")
        renderer.text(COL_DESCRIPTION, y, "Beschreibung", style="bold")
        renderer.text(COL_QUANTITY, y, "Menge", style="bold")
        renderer.text(COL_UNIT_PRICE_RIGHT, y, "Einzelpreis", style="bold", align="right")
        renderer.text(COL_TOTAL_RIGHT, y, "Gesamtpreis", style="bold", align="right")
        y += 15
        renderer.line(MARGIN_LEFT, y, CONTENT_RIGHT, y)
        return y + 10

    def _continue_table(
        self,
        renderer: PdfRenderer,
        invoice: InvoiceRecord,
        profile: BusinessProfile,
        y: float,
        height: float
    ) -> float:
        y = self._ensure_space(renderer, invoice, profile, y, height)
        return self._add_table_header(renderer, y)

    @staticmethod
    def _take_lines(renderer: PdfRenderer, lines: List[str], y: float) -> Tuple[List[str], List[str]]:
        """Teilt Beschreibungszeilen in den Teil, der ab y noch auf die Seite passt, und den Rest"""
        room = renderer.layout.content_bottom - y - ROW_PADDING
        count = max(0, int(room // renderer.leading()))
        return lines[:count], lines[count:]

    def _add_items_table(
        self,
        renderer: PdfRenderer,
        invoice: InvoiceRecord,
        profile: BusinessProfile,
        y: float
    ) -> float:
        symbol = self.config.currency_symbol
        y = self._continue_table(renderer, invoice, profile, y, 25 + ROW_HEIGHT)

        # Höhe, die eine Folgeseite unter Fortsetzungszeile und Tabellenkopf bietet
        page_room = renderer.layout.content_bottom - renderer.layout.top_margin - 50

        for index, item in enumerate(invoice.items, 1):
            lines = renderer.wrap(item.description, width=DESCRIPTION_WIDTH)
            row_height = max(ROW_HEIGHT, len(lines) * renderer.leading() + ROW_PADDING)

            # Zeilen zusammenhalten, solange sie auf eine Seite passen
            if not renderer.fits(y, row_height) and row_height <= page_room:
                y = self._continue_table(renderer, invoice, profile, y, row_height)

            chunk, lines = self._take_lines(renderer, lines, y)
            if not chunk:
                y = self._continue_table(renderer, invoice, profile, y, row_height)
                chunk, lines = self._take_lines(renderer, lines, y)

            renderer.text(COL_POS, y, str(index))
            renderer.text_lines(COL_DESCRIPTION, y, chunk)
            renderer.text(COL_QUANTITY, y, format_quantity(item.quantity))
            renderer.text(COL_UNIT_PRICE_RIGHT, y, format_currency(item.unit_price, symbol), align="right")
            renderer.text(COL_TOTAL_RIGHT, y, format_currency(item.line_total, symbol), align="right")
            y += max(ROW_HEIGHT, len(chunk) * renderer.leading() + ROW_PADDING)

            # Überlange Beschreibung auf den Folgeseiten fortsetzen
            while lines:
                y = self._continue_table(renderer, invoice, profile, y, page_room)
                chunk, lines = self._take_lines(renderer, lines, y)
                renderer.text_lines(COL_DESCRIPTION, y, chunk)
                y += len(chunk) * renderer.leading() + ROW_PADDING

        renderer.line(MARGIN_LEFT, y, CONTENT_RIGHT, y)
        return y + 15

    def _add_totals_section(
        self,
        renderer: PdfRenderer,
        invoice: InvoiceRecord,
        profile: BusinessProfile,
        y: float
    ) -> float:
        symbol = self.config.currency_symbol
        y = self._ensure_space(renderer, invoice, profile, y, TOTALS_BLOCK_HEIGHT)

        if invoice.is_small_business_exempt:
            renderer.text(TOTALS_X, y, "Gesamtbetrag:", style="bold")
            renderer.text(CONTENT_RIGHT, y, format_currency(invoice.total_amount, symbol), style="bold", align="right")
            y += 25
            renderer.text(TOTALS_X - 100, y, EXEMPTION_NOTE, size=9, style="italic", width=300)
            y += 20
        else:
            renderer.text(TOTALS_X, y, "Nettobetrag:")
            renderer.text(CONTENT_RIGHT, y, format_currency(invoice.subtotal, symbol), align="right")
            y += 15

            renderer.text(TOTALS_X, y, f"zzgl. MwSt ({format_percent(invoice.tax_rate)}%):")
            renderer.text(CONTENT_RIGHT, y, format_currency(invoice.tax_amount, symbol), align="right")
            y += 15

            renderer.line(TOTALS_X, y, CONTENT_RIGHT, y)
            y += 5
            renderer.text(TOTALS_X, y, "Gesamtbetrag:", style="bold")
            renderer.text(CONTENT_RIGHT, y, format_currency(invoice.total_amount, symbol), style="bold", align="right")
            y += 15

        return y + 20

    @staticmethod
    def qr_gate_reason(invoice: InvoiceRecord, profile: BusinessProfile) -> Optional[str]:
        """
        Prüft, ob ein SEPA QR-Code erzeugt werden soll

        Returns:
            None wenn ja, sonst ein kurzer Hinweistext für das Dokument
        """
        if invoice.is_quote:
            return "Angebote enthalten keinen SEPA QR-Code."
        if not profile.iban:
            return "Kein SEPA QR-Code: Keine IBAN im Profil hinterlegt."
        if Decimal(invoice.total_amount) <= 0:
            return "Kein SEPA QR-Code: Der Rechnungsbetrag ist 0."
        if not profile.display_name:
            return "Kein SEPA QR-Code: Kein Empfängername im Profil hinterlegt."
        return None

    def _add_payment_info(
        self,
        renderer: PdfRenderer,
        invoice: InvoiceRecord,
        profile: BusinessProfile,
        y: float
    ) -> float:
        y = self._ensure_space(renderer, invoice, profile, y + 20, PAYMENT_BLOCK_HEIGHT)

        renderer.text(MARGIN_LEFT, y, "Zahlungsinformationen", size=11, style="bold")
        y += 20
        section_top = y

        rows: List[Tuple[str, str]] = []
        if profile.iban:
            rows.append(("IBAN:", profile.iban))
        if profile.bic:
            rows.append(("BIC:", profile.bic))
        if profile.bank_name:
            rows.append(("Bank:", profile.bank_name))
        if invoice.payment_terms_days is not None:
            rows.append(("Zahlungsziel:", f"{invoice.payment_terms_days} Tage"))
        rows.append(("Betrag:", format_currency(invoice.total_amount, self.config.currency_symbol)))

        for label, value in rows:
            renderer.text(MARGIN_LEFT, y, label)
            renderer.text(PAYMENT_VALUE_X, y, value)
            y += 15

        qr_bottom = section_top
        note = self.qr_gate_reason(invoice, profile)
        if note is None:
            try:
                qr_png = QRCodeService.generate_for_invoice(
                    invoice,
                    profile,
                    currency=self.config.currency,
                    target_px=self.config.qr_target_px,
                )
            except EncodingValidationError as e:
                logger.warning(f"QR-Code für {invoice.number} nicht möglich: {e}")
                note = "QR-Code konnte nicht erstellt werden: " + ", ".join(e.errors) + "."
            else:
                renderer.image(qr_png, QR_X, section_top, QR_SIZE, QR_SIZE, label="qr")
                renderer.text(
                    QR_X, section_top + QR_SIZE + 4, QR_CAPTION,
                    size=7, align="center", width=QR_SIZE, color=GRAY
                )
                qr_bottom = section_top + QR_SIZE + 15
        else:
            logger.info(f"Rechnung {invoice.number}: {note}")

        if note:
            y += 5
            y += renderer.text(MARGIN_LEFT, y, note, size=8, style="italic", width=330, color=GRAY)

        return max(y, qr_bottom) + 20

    def _add_legal_footer(self, renderer: PdfRenderer, profile: BusinessProfile) -> None:
        footer_text = " | ".join([
            profile.display_name or "",
            profile.email or "",
            profile.phone or "",
            f"Steuernr: {profile.tax_number or 'N/A'}",
        ])
        renderer.text(MARGIN_LEFT, FOOTER_Y, footer_text, size=8, align="center", width=FOOTER_WIDTH, color=GRAY)

        if self.config.platform_attribution:
            renderer.text(
                MARGIN_LEFT, ATTRIBUTION_Y, self.config.platform_attribution,
                size=7, align="center", width=FOOTER_WIDTH, color=GRAY
            )
