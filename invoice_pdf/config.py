"""Konfiguration für die Rechnungs- und Angebotserstellung"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
import logging

from invoice_pdf.version import __version__

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Einstellungen für die Dokumenterzeugung mit Validierung

    Alle Einstellungen können via Umgebungsvariablen (Präfix INVOICE_PDF_)
    oder eine .env Datei überschrieben werden.
    """

    # App-Grundeinstellungen
    app_name: str = Field(
        default="invoice-pdf",
        description="Name der Anwendung"
    )
    app_version: str = Field(
        default=__version__,
        description="Version der Anwendung"
    )
    debug: bool = Field(
        default=False,
        description="Debug-Modus (ausführliches Logging)"
    )
    log_file: str = Field(
        default="invoice_pdf.log",
        description="Pfad zur Log-Datei"
    )

    # Logo-Abruf
    logo_fetch_timeout: float = Field(
        default=10.0,
        gt=0,
        le=60,
        description="Maximale Wartezeit in Sekunden für den Logo-Abruf"
    )
    logo_max_bytes: int = Field(
        default=5 * 1024 * 1024,
        gt=0,
        description="Maximale Größe eines Logos in Bytes"
    )

    # Zahlungen
    currency: str = Field(
        default="EUR",
        description="ISO-4217 Währungscode für den EPC QR-Code"
    )
    currency_symbol: str = Field(
        default="€",
        description="Währungssymbol für die Betragsanzeige"
    )
    qr_target_px: int = Field(
        default=200,
        ge=50,
        le=1000,
        description="Zielgröße des QR-Code Rasters in Pixeln"
    )

    # Dokument
    platform_name: str = Field(
        default="Pro-Meister.de Platform",
        description="Ersteller-Angabe in den PDF-Metadaten"
    )
    platform_attribution: str = Field(
        default="Erstellt mit Pro-Meister.de",
        description="Hinweiszeile unter der Fußzeile"
    )
    page_compression: bool = Field(
        default=True,
        description="Seiteninhalte im PDF komprimieren"
    )

    model_config = SettingsConfigDict(
        env_prefix="INVOICE_PDF_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignoriere unbekannte Env-Vars
    )

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Validiert den Währungscode"""
        v = v.strip().upper()
        if len(v) != 3 or not v.isalpha():
            raise ValueError("CURRENCY muss ein dreistelliger ISO-Code sein (z.B. EUR)")
        return v

    @field_validator("platform_attribution")
    @classmethod
    def validate_attribution(cls, v: str) -> str:
        """Kürzt überflüssige Leerzeichen"""
        return v.strip()


settings = Settings()
