"""Zentrale Versionsverwaltung für invoice-pdf

Die Version wird aus der version.txt Datei im Root-Verzeichnis gelesen.
Fehlt die Datei (z.B. bei installiertem Paket), greift die Paket-Metadaten-Version.
"""
from importlib import metadata
from pathlib import Path
import logging

logger = logging.getLogger(__name__)

# Pfad zur version.txt im Root-Verzeichnis
VERSION_FILE = Path(__file__).parent.parent / "version.txt"

FALLBACK_VERSION = "0.0.0"


def get_version() -> str:
    """
    Liest die Version aus der version.txt Datei.

    Returns:
        str: Die Version als String (z.B. "1.0.0")

    Fallback:
        Installierte Paket-Version, danach "0.0.0".
    """
    try:
        if VERSION_FILE.exists():
            version = VERSION_FILE.read_text().strip()
            if version:
                return version
            logger.warning("version.txt ist leer, verwende Paket-Metadaten")
    except OSError as e:
        logger.error(f"Fehler beim Lesen der version.txt: {e}")

    try:
        return metadata.version("invoice-pdf")
    except metadata.PackageNotFoundError:
        logger.warning(f"Keine Version gefunden, verwende Fallback '{FALLBACK_VERSION}'")
        return FALLBACK_VERSION


# Version wird beim Import einmal ausgelesen
__version__ = get_version()
