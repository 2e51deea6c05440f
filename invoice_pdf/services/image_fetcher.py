"""Abruf des Firmenlogos über HTTP mit fester Zeitbegrenzung"""
import logging
import time
from dataclasses import dataclass
from io import BytesIO
from typing import Optional

import httpx
from PIL import Image, UnidentifiedImageError

from invoice_pdf.exceptions import ResourceUnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogoFetchResult:
    """Ergebnis eines Logo-Abrufs: entweder Bilddaten oder ein Fehlergrund"""
    content: Optional[bytes] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.content is not None

    @classmethod
    def success(cls, content: bytes) -> "LogoFetchResult":
        return cls(content=content)

    @classmethod
    def failure(cls, reason: str) -> "LogoFetchResult":
        return cls(reason=reason)


class ImageFetcher:
    """
    Lädt Bilder (Logos) von einer URL

    Es gibt keine Wiederholungsversuche: schlägt der Abruf fehl, wird
    ein Fehlschlag zurückgegeben und der Aufrufer zeichnet einen Platzhalter.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        max_bytes: int = 5 * 1024 * 1024,
        transport: Optional[httpx.BaseTransport] = None
    ):
        self.timeout = timeout
        self.max_bytes = max_bytes
        self.transport = transport

    def fetch(self, url: Optional[str]) -> LogoFetchResult:
        """
        Ruft ein Bild ab

        Args:
            url: Adresse des Bildes

        Returns:
            LogoFetchResult mit Bilddaten oder Fehlergrund (wirft nie)
        """
        if not url or not url.strip():
            return LogoFetchResult.failure("Keine Logo-URL hinterlegt")

        try:
            content = self._download(url.strip())
        except ResourceUnavailableError as e:
            logger.warning(f"Logo konnte nicht geladen werden ({url}): {e}")
            return LogoFetchResult.failure(str(e))

        logger.debug(f"Logo geladen: {url} ({len(content)} Bytes)")
        return LogoFetchResult.success(content)

    def _download(self, url: str) -> bytes:
        # Gesamtfrist für den Abruf; httpx begrenzt nur die einzelnen Schritte
        deadline = time.monotonic() + self.timeout
        try:
            with httpx.Client(
                timeout=self.timeout,
                transport=self.transport,
                follow_redirects=True
            ) as client:
                with client.stream("GET", url) as response:
                    response.raise_for_status()
                    content = self._read_body(response, url, deadline)
        except httpx.TimeoutException as e:
            raise ResourceUnavailableError(
                f"Zeitüberschreitung nach {self.timeout:g} Sekunden", url
            ) from e
        except httpx.HTTPStatusError as e:
            raise ResourceUnavailableError(
                f"HTTP-Status {e.response.status_code}", url
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ResourceUnavailableError(f"Abruf fehlgeschlagen: {e}", url) from e

        if not content:
            raise ResourceUnavailableError("Leere Antwort", url)

        self._verify_image(content, url)
        return content

    def _read_body(self, response: httpx.Response, url: str, deadline: float) -> bytes:
        """Liest den Body stückweise und bricht bei Fristablauf oder Übergröße ab"""
        buffer = BytesIO()
        for chunk in response.iter_bytes():
            if time.monotonic() > deadline:
                raise ResourceUnavailableError(
                    f"Zeitüberschreitung nach {self.timeout:g} Sekunden", url
                )
            buffer.write(chunk)
            if buffer.tell() > self.max_bytes:
                raise ResourceUnavailableError(
                    f"Logo zu groß (mehr als {self.max_bytes} Bytes)", url
                )
        return buffer.getvalue()

    @staticmethod
    def _verify_image(content: bytes, url: str) -> None:
        """Stellt sicher, dass Pillow die Daten als Bild erkennt"""
        try:
            with Image.open(BytesIO(content)) as img:
                img.verify()
        except Image.DecompressionBombError as e:
            raise ResourceUnavailableError("Logo hat zu große Abmessungen", url) from e
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
            raise ResourceUnavailableError("Antwort ist kein gültiges Bild", url) from e
