"""QR-Code Service für SEPA-Überweisungen (EPC QR-Code)"""
import logging
from decimal import Decimal
from io import BytesIO
from typing import List, Optional

import qrcode
from qrcode.exceptions import DataOverflowError

from invoice_pdf.exceptions import EncodingValidationError
from invoice_pdf.schemas import BusinessProfile, InvoiceRecord, PaymentEncoding
from invoice_pdf.utils.formatting import round_money
from invoice_pdf.utils.validators import Validators

logger = logging.getLogger(__name__)

MAX_AMOUNT = Decimal("999999999.99")

# Feldlängen nach EPC069-12
BIC_MAX_LENGTH = 11
NAME_MAX_LENGTH = 70
PURPOSE_MAX_LENGTH = 4
REFERENCE_MAX_LENGTH = 35
TEXT_MAX_LENGTH = 140

# Zeichensatz-Kennung 2, Nutzdaten als UTF-8
EPC_CHARSET_ENCODING = "utf-8"


def truncate(text: Optional[str], max_length: int) -> str:
    """Kürzt einen Text auf max_length Zeichen (None -> "")"""
    if not text:
        return ""
    return text[:max_length]


class QRCodeService:
    """Service für die Generierung von EPC QR-Codes für Zahlungen"""

    @staticmethod
    def clean_iban(iban: Optional[str]) -> str:
        """IBAN ohne Leerzeichen, in Großbuchstaben"""
        return Validators.normalize_account_code(iban) or ""

    @staticmethod
    def validate_iban(iban: Optional[str]) -> bool:
        """Syntaktische IBAN-Prüfung (Ländercode, Prüfziffern, Länge 15-34)"""
        return Validators.is_valid_iban(QRCodeService.clean_iban(iban))

    @staticmethod
    def validate_payment_data(payment: PaymentEncoding) -> List[str]:
        """
        Prüft alle Zahlungsdaten und sammelt sämtliche Fehler

        Returns:
            Liste der Fehlermeldungen (leer = gültig)
        """
        errors = []

        if Validators.is_blank(payment.recipient_name):
            errors.append("Empfängername fehlt")

        if Validators.is_blank(payment.iban):
            errors.append("IBAN fehlt")
        elif not QRCodeService.validate_iban(payment.iban):
            errors.append("Ungültiges IBAN-Format")

        if payment.amount is not None:
            amount = Decimal(payment.amount)
            if amount <= 0:
                errors.append("Betrag muss positiv sein")
            elif amount > MAX_AMOUNT:
                errors.append("Betrag zu hoch (max: 999.999.999,99)")

        return errors

    @staticmethod
    def format_amount(payment: PaymentEncoding) -> str:
        """Betragsfeld, z.B. "EUR1234.50"; leer wenn kein Betrag angegeben ist"""
        if payment.amount is None:
            return ""
        currency = (payment.currency or "EUR").upper()
        return f"{currency}{round_money(payment.amount):.2f}"

    @staticmethod
    def build_epc_string(payment: PaymentEncoding) -> str:
        """
        Baut den Text-Block des EPC QR-Codes (Version 002)

        Raises:
            EncodingValidationError: Bei fehlenden oder ungültigen Zahlungsdaten

        EPC QR-Code Format:
        Zeile  1: BCD (Service Tag)
        Zeile  2: 002 (Version)
        Zeile  3: 2 (Character Set)
        Zeile  4: SCT (Identification - SEPA Credit Transfer)
        Zeile  5: BIC (optional, max 11 Zeichen)
        Zeile  6: Empfängername (max 70 Zeichen)
        Zeile  7: IBAN
        Zeile  8: Währung + Betrag (z.B. EUR123.45)
        Zeile  9: Purpose Code (max 4 Zeichen)
        Zeile 10: Structured Reference (max 35 Zeichen)
        Zeile 11: Unstructured Remittance (max 140 Zeichen)
        """
        errors = QRCodeService.validate_payment_data(payment)
        if errors:
            raise EncodingValidationError(errors)

        epc_data = [
            "BCD",
            "002",
            "2",
            "SCT",
            truncate(Validators.normalize_account_code(payment.bic), BIC_MAX_LENGTH),
            truncate(payment.recipient_name.strip(), NAME_MAX_LENGTH),
            QRCodeService.clean_iban(payment.iban),
            QRCodeService.format_amount(payment),
            truncate(payment.purpose, PURPOSE_MAX_LENGTH),
            truncate(payment.reference, REFERENCE_MAX_LENGTH),
            truncate(payment.unstructured_text, TEXT_MAX_LENGTH),
        ]

        return "\n".join(epc_data)

    @staticmethod
    def generate_epc_qr_code(payment: PaymentEncoding, target_px: int = 200) -> bytes:
        """
        Generiert einen EPC QR-Code für SEPA-Überweisungen

        Der QR-Code kann von Banking-Apps gescannt werden, um eine
        Überweisung automatisch auszufüllen.

        Args:
            payment: Zahlungsdaten
            target_px: Ungefähre Kantenlänge des Bildes in Pixeln

        Returns:
            QR-Code als PNG-Bilddaten (bytes)

        Raises:
            EncodingValidationError: Bei ungültigen Zahlungsdaten
        """
        epc_string = QRCodeService.build_epc_string(payment)
        logger.debug("EPC QR-String: %s", epc_string.replace("\n", "\\n"))

        # Fehlerkorrektur M ist durch die EPC-Richtlinie vorgegeben
        qr = qrcode.QRCode(
            version=None,  # Automatische Größenanpassung
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=1,
            border=1,
        )
        qr.add_data(epc_string.encode(EPC_CHARSET_ENCODING))
        try:
            qr.make(fit=True)
        except DataOverflowError as e:
            raise EncodingValidationError([f"Zahlungsdaten zu lang für QR-Code: {e}"]) from e

        # Modulgröße so wählen, dass das Bild etwa target_px groß wird
        qr.box_size = max(1, target_px // (qr.modules_count + 2 * qr.border))

        img = qr.make_image(fill_color="black", back_color="white")

        buffer = BytesIO()
        img.save(buffer, format='PNG')
        buffer.seek(0)

        png = buffer.getvalue()
        logger.info(f"EPC QR-Code erstellt ({len(png)} Bytes)")
        return png

    @staticmethod
    def payment_for_invoice(
        invoice: InvoiceRecord,
        profile: BusinessProfile,
        currency: str = "EUR"
    ) -> PaymentEncoding:
        """Stellt die Zahlungsdaten einer Rechnung zusammen"""
        return PaymentEncoding(
            recipient_name=profile.display_name,
            iban=profile.iban,
            bic=profile.bic,
            amount=invoice.total_amount,
            currency=currency,
            reference=invoice.number,
            unstructured_text=f"Rechnung {invoice.number} - {invoice.customer_name}",
        )

    @staticmethod
    def generate_for_invoice(
        invoice: InvoiceRecord,
        profile: BusinessProfile,
        currency: str = "EUR",
        target_px: int = 200
    ) -> bytes:
        """
        Generiert den QR-Code für eine Rechnung

        Raises:
            ValueError: Für Angebote werden keine QR-Codes erzeugt
            EncodingValidationError: Bei ungültigen Zahlungsdaten
        """
        if invoice.is_quote:
            raise ValueError("QR-Codes werden nur für Rechnungen erzeugt, nicht für Angebote")

        payment = QRCodeService.payment_for_invoice(invoice, profile, currency)
        logger.info(
            f"Erzeuge SEPA QR-Code für Rechnung {invoice.number} "
            f"(Betrag: {payment.amount}, IBAN: {'vorhanden' if payment.iban else 'fehlt'})"
        )
        return QRCodeService.generate_epc_qr_code(payment, target_px=target_px)
