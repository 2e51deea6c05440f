"""Logging-Konfiguration für Anwendungen, die invoice_pdf einbinden

Das Paket selbst schreibt nur über Modul-Logger (logging.getLogger(__name__)).
Die einbindende Anwendung ruft beim Start einmal setup_logging() auf:

    from invoice_pdf.logging_config import setup_logging
    setup_logging()  # liest debug und log_file aus den Settings
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from invoice_pdf.config import Settings, settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Bibliotheken, die auf INFO/DEBUG zu gesprächig sind (Requests, PNG-Chunks)
NOISY_LOGGERS = ("httpx", "httpcore", "PIL")


def setup_logging(config: Optional[Settings] = None) -> logging.Logger:
    """
    Richtet Console- und (optional) rotierendes Datei-Logging ein.

    Args:
        config: Einstellungen; debug bestimmt das Level, log_file die
            Log-Datei (leer = nur Console). Standard: globale Settings.

    Returns:
        Der konfigurierte Root-Logger
    """
    config = config or settings
    level = logging.DEBUG if config.debug else logging.INFO
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers = [logging.StreamHandler(sys.stdout)]
    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            filename=log_path,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding='utf-8'
        ))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    # Mehrfacher Aufruf ersetzt die Handler statt sie zu verdoppeln
    root_logger.handlers.clear()
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info(
        f"{config.app_name} {config.app_version}: Logging aktiv "
        f"(Level: {logging.getLevelName(level)}, Datei: {config.log_file or '-'})"
    )
    return root_logger
