"""Zeichenfläche für PDF-Dokumente auf Basis von reportlab"""
import logging
from dataclasses import dataclass
from io import BytesIO
from typing import List, Optional, Tuple

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FontConfig:
    """Schriften je Stil, pro Dokument übergeben"""
    regular: str = "Helvetica"
    bold: str = "Helvetica-Bold"
    italic: str = "Helvetica-Oblique"

    def resolve(self, style: str) -> str:
        try:
            return {"regular": self.regular, "bold": self.bold, "italic": self.italic}[style]
        except KeyError:
            raise ValueError(f"Unbekannter Schriftstil: {style}")


@dataclass(frozen=True)
class DrawnText:
    page: int
    x: float
    y: float
    text: str
    font: str
    size: float


@dataclass(frozen=True)
class DrawnImage:
    page: int
    x: float
    y: float
    width: float
    height: float
    label: str


@dataclass
class PageLayout:
    """Seitenmaße in Punkten; y wächst von oben nach unten"""
    pagesize: Tuple[float, float] = A4
    top_margin: float = 50.0
    content_bottom: float = 735.0
    line_spacing: float = 1.2


class PdfRenderer:
    """
    Dünne Schicht über reportlab.pdfgen.canvas

    Koordinaten werden wie auf dem Papier von oben links angegeben und
    intern in das reportlab-Koordinatensystem (unten links) umgerechnet.
    Jeder Aufruf von InvoiceGenerator.render erzeugt einen eigenen Renderer.
    """

    def __init__(
        self,
        fonts: Optional[FontConfig] = None,
        layout: Optional[PageLayout] = None,
        title: Optional[str] = None,
        author: Optional[str] = None,
        creator: Optional[str] = None,
        page_compression: bool = True
    ):
        self.fonts = fonts or FontConfig()
        self.layout = layout or PageLayout()
        self.width, self.height = self.layout.pagesize
        self.page_number = 1
        self.drawn_text: List[DrawnText] = []
        self.drawn_images: List[DrawnImage] = []
        self._pdf: Optional[bytes] = None

        self.buffer = BytesIO()
        self.canvas = canvas.Canvas(
            self.buffer,
            pagesize=self.layout.pagesize,
            pageCompression=1 if page_compression else 0,
        )
        if title:
            self.canvas.setTitle(title)
        if author:
            self.canvas.setAuthor(author)
        if creator:
            self.canvas.setCreator(creator)

    def _baseline(self, y: float, size: float) -> float:
        return self.height - y - size

    def leading(self, size: float = 10) -> float:
        return size * self.layout.line_spacing

    def wrap(self, value: str, size: float = 10, style: str = "regular", width: Optional[float] = None) -> List[str]:
        """Bricht Text auf width um (auch an Zeilenumbrüchen); ohne width eine Zeile"""
        if width is None:
            return [value]
        return simpleSplit(value, self.fonts.resolve(style), size, width) or [""]

    def text(
        self,
        x: float,
        y: float,
        value: str,
        size: float = 10,
        style: str = "regular",
        align: str = "left",
        width: Optional[float] = None,
        color: Optional[str] = None
    ) -> float:
        """
        Setzt Text an (x, y); mit width wird umbrochen bzw. ausgerichtet.

        Returns:
            Verbrauchte Höhe in Punkten
        """
        lines = self.wrap(value, size, style, width)
        return self.text_lines(x, y, lines, size, style, align, width, color)

    def text_lines(
        self,
        x: float,
        y: float,
        lines: List[str],
        size: float = 10,
        style: str = "regular",
        align: str = "left",
        width: Optional[float] = None,
        color: Optional[str] = None
    ) -> float:
        """Setzt bereits umbrochene Zeilen untereinander"""
        font = self.fonts.resolve(style)
        self.canvas.setFont(font, size)
        self.canvas.setFillColor(colors.HexColor(color) if color else colors.black)

        leading = self.leading(size)
        for index, line in enumerate(lines):
            line_y = y + index * leading
            baseline = self._baseline(line_y, size)
            if align == "center" and width is not None:
                self.canvas.drawCentredString(x + width / 2, baseline, line)
            elif align == "right":
                # Bei rechtsbündigem Text ist x die rechte Kante
                right = x + width if width is not None else x
                self.canvas.drawRightString(right, baseline, line)
            else:
                self.canvas.drawString(x, baseline, line)
            self.drawn_text.append(DrawnText(self.page_number, x, line_y, line, font, size))

        return len(lines) * leading

    def measure(self, value: str, size: float = 10, style: str = "regular", width: Optional[float] = None) -> float:
        """Höhe, die text() für denselben Inhalt verbrauchen würde"""
        return len(self.wrap(value, size, style, width)) * self.leading(size)

    def image(self, data: bytes, x: float, y: float, width: float, height: float, label: str = "image") -> None:
        """Zeichnet ein Bild seitenverhältnistreu in die Box (oben links verankert)"""
        reader = ImageReader(BytesIO(data))
        self.canvas.drawImage(
            reader,
            x,
            self.height - y - height,
            width=width,
            height=height,
            preserveAspectRatio=True,
            anchor="nw",
            mask="auto",
        )
        self.drawn_images.append(DrawnImage(self.page_number, x, y, width, height, label))

    def rect(self, x: float, y: float, width: float, height: float, color: str = "#999999") -> None:
        """Zeichnet einen Rahmen (z.B. Logo-Platzhalter)"""
        self.canvas.setStrokeColor(colors.HexColor(color))
        self.canvas.setLineWidth(0.75)
        self.canvas.rect(x, self.height - y - height, width, height, stroke=1, fill=0)
        self.canvas.setStrokeColor(colors.black)

    def line(self, x1: float, y1: float, x2: float, y2: float, width: float = 0.5) -> None:
        """Zeichnet eine gerade Linie"""
        self.canvas.setLineWidth(width)
        self.canvas.line(x1, self.height - y1, x2, self.height - y2)

    def fits(self, y: float, height: float) -> bool:
        """Prüft, ob ein Block der Höhe height ab y noch auf die Seite passt"""
        return y + height <= self.layout.content_bottom

    def new_page(self) -> float:
        """
        Beginnt eine neue Seite

        Returns:
            Startposition des Cursors auf der neuen Seite
        """
        self.canvas.showPage()
        self.page_number += 1
        logger.debug(f"Neue Seite {self.page_number}")
        return self.layout.top_margin

    def texts_on_page(self, page: int) -> List[str]:
        return [t.text for t in self.drawn_text if t.page == page]

    def finalize(self) -> bytes:
        """Schließt das Dokument ab und gibt die PDF-Bytes zurück"""
        if self._pdf is None:
            self.canvas.showPage()
            self.canvas.save()
            self._pdf = self.buffer.getvalue()
        return self._pdf
