"""Inspection reports rendered as HTML or PDF."""

from __future__ import annotations

import logging
import os
import zlib
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Optional, Union

log = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

# A4 portrait in PDF points
PAGE_WIDTH = 595.276
PAGE_HEIGHT = 841.89
LEFT_MARGIN = 50.0
BOTTOM_MARGIN = 50.0

_STATUS_COLORS = {
    "placed": "#28a745",
    "missing": "#dc3545",
    "defect": "#ffc107",
}
_DEFAULT_STATUS_COLOR = "#6c757d"

_STYLE = """<style>
body { font-family: 'Segoe UI', Arial, sans-serif; margin: 20px; background: #f5f5f5; }
.container { max-width: 960px; margin: 0 auto; background: white; padding: 30px; border-radius: 8px; box-shadow: 0 2px 8px rgba(0,0,0,0.1); }
h1 { color: #2c3e50; border-bottom: 2px solid #3498db; padding-bottom: 10px; }
h2 { color: #34495e; margin-top: 30px; }
.stats { display: grid; grid-template-columns: repeat(4, 1fr); gap: 15px; margin: 20px 0; }
.stat-card { padding: 15px; border-radius: 8px; text-align: center; }
.stat-card h3 { margin: 0; font-size: 28px; }
.stat-card p { margin: 5px 0 0; font-size: 12px; color: #666; }
.placed  { background: #d4edda; color: #155724; }
.missing { background: #f8d7da; color: #721c24; }
.defect  { background: #fff3cd; color: #856404; }
.total   { background: #d1ecf1; color: #0c5460; }
table { width: 100%; border-collapse: collapse; margin-top: 15px; }
th { background: #2c3e50; color: white; padding: 10px; text-align: left; }
td { padding: 8px 10px; border-bottom: 1px solid #eee; }
tr:hover { background: #f8f9fa; }
.status-placed  { color: #28a745; font-weight: bold; }
.status-missing { color: #dc3545; font-weight: bold; }
.status-defect  { color: #ffc107; font-weight: bold; }
.footer { margin-top: 30px; font-size: 11px; color: #999; text-align: center; }
</style>
</head>
<body>
<div class='container'>
"""


class ReportError(Exception):
    """Raised when a report file cannot be written."""


def status_color(status: str) -> str:
    """HTML colour for an inspection status."""
    return _STATUS_COLORS.get(status, _DEFAULT_STATUS_COLOR)


@dataclass
class InspectionResult:
    """Outcome of inspecting one component."""

    reference: str = ""
    value: str = ""
    footprint: str = ""
    status: str = ""  # "placed", "missing" or "defect"
    defect_type: str = ""  # e.g. "bridge", "insufficient", "cold_joint"
    confidence: float = 0.0
    snapshot: Optional[Any] = None


@dataclass
class ReportConfig:
    """What a report contains and how it is titled."""

    title: str = "PCB Inspection Report"
    project_name: str = ""
    board_revision: str = ""
    operator_name: str = ""
    include_snapshots: bool = True
    include_statistics: bool = True
    include_defect_details: bool = True
    include_bom_checklist: bool = True


@dataclass(frozen=True)
class Statistics:
    """Summary counts of an inspection."""

    total: int = 0
    placed: int = 0
    missing: int = 0
    defects: int = 0
    yield_pct: float = 0.0


def _now_text() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M")


def _pdf_number(value: float) -> str:
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    return text or "0"


def _pdf_string(text: str) -> str:
    encoded = text.encode("cp1252", errors="replace").decode("latin-1")
    escaped = encoded.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
    return f"({escaped})"


class _PdfWriter:
    """Minimal PDF document of text lines in the two Helvetica base fonts."""

    FONTS = {"Helvetica": "F1", "Helvetica-Bold": "F2"}

    def __init__(self) -> None:
        self._pages: list[list[str]] = []

    @property
    def page_count(self) -> int:
        return len(self._pages)

    def add_page(self) -> None:
        self._pages.append([])

    def text(self, font: str, size: float, x: float, y: float, text: str) -> None:
        if not self._pages:
            self.add_page()
        self._pages[-1].append(
            f"BT /{self.FONTS[font]} {_pdf_number(size)} Tf "
            f"{_pdf_number(x)} {_pdf_number(y)} Td {_pdf_string(text)} Tj ET"
        )

    def to_bytes(self) -> bytes:
        objects: list[bytes] = []
        page_count = len(self._pages)
        first_page = 5
        kids = " ".join(f"{first_page + 2 * i} 0 R" for i in range(page_count))

        objects.append(b"<< /Type /Catalog /Pages 2 0 R >>")
        objects.append(f"<< /Type /Pages /Kids [{kids}] /Count {page_count} >>".encode())
        for base_font in self.FONTS:
            objects.append(
                f"<< /Type /Font /Subtype /Type1 /BaseFont /{base_font} "
                f"/Encoding /WinAnsiEncoding >>".encode()
            )

        media_box = f"[0 0 {_pdf_number(PAGE_WIDTH)} {_pdf_number(PAGE_HEIGHT)}]"
        for index, operations in enumerate(self._pages):
            content_number = first_page + 2 * index + 1
            objects.append(
                f"<< /Type /Page /Parent 2 0 R /MediaBox {media_box} "
                f"/Resources << /Font << /F1 3 0 R /F2 4 0 R >> >> "
                f"/Contents {content_number} 0 R >>".encode()
            )
            data = zlib.compress("\n".join(operations).encode("latin-1"))
            objects.append(
                f"<< /Length {len(data)} /Filter /FlateDecode >>\nstream\n".encode()
                + data
                + b"\nendstream"
            )

        out = bytearray(b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n")
        offsets = []
        for number, body in enumerate(objects, start=1):
            offsets.append(len(out))
            out += f"{number} 0 obj\n".encode() + body + b"\nendobj\n"

        xref_offset = len(out)
        out += f"xref\n0 {len(objects) + 1}\n".encode()
        out += b"0000000000 65535 f \n"
        for offset in offsets:
            out += f"{offset:010d} 00000 n \n".encode()
        out += (
            f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n"
            f"startxref\n{xref_offset}\n%%EOF\n"
        ).encode()
        return bytes(out)


class ReportGenerator:
    """Builds inspection reports from a list of component results.

    ``on_progress`` may be set to a callable receiving a percentage as the
    report is generated.
    """

    def __init__(
        self,
        config: Optional[ReportConfig] = None,
        results: Optional[Iterable[InspectionResult]] = None,
    ) -> None:
        self.config = config if config is not None else ReportConfig()
        self.results: list[InspectionResult] = list(results or [])
        self.board_image: Optional[Any] = None
        self.on_progress: Optional[Callable[[int], None]] = None

    def _progress(self, percent: int) -> None:
        if self.on_progress is not None:
            self.on_progress(percent)

    def compute_statistics(self) -> Statistics:
        """Count placed, missing and defective components and the yield."""
        total = len(self.results)
        placed = sum(1 for r in self.results if r.status == "placed")
        missing = sum(1 for r in self.results if r.status == "missing")
        defects = sum(1 for r in self.results if r.status == "defect")
        yield_pct = placed * 100.0 / total if total > 0 else 0.0
        return Statistics(total, placed, missing, defects, yield_pct)

    def html_content(self) -> str:
        """The complete HTML report as a string."""
        cfg = self.config
        stats = self.compute_statistics()

        parts = [
            "<!DOCTYPE html>\n<html>\n<head>\n",
            "<meta charset='utf-8'>\n",
            f"<title>{cfg.title}</title>\n",
            _STYLE,
            f"<h1>{cfg.title}</h1>\n",
            "<div style='color:#666; margin-bottom: 20px;'>",
        ]
        if cfg.project_name:
            parts.append(f"Project: <b>{cfg.project_name}</b> &nbsp;|&nbsp; ")
        if cfg.board_revision:
            parts.append(f"Rev: <b>{cfg.board_revision}</b> &nbsp;|&nbsp; ")
        parts.append(f"Date: <b>{_now_text()}</b>")
        if cfg.operator_name:
            parts.append(f" &nbsp;|&nbsp; Operator: <b>{cfg.operator_name}</b>")
        parts.append("</div>\n")

        if cfg.include_statistics:
            parts.append("<h2>Summary</h2>\n<div class='stats'>\n")
            for css, count, label in (
                ("total", stats.total, "Total"),
                ("placed", stats.placed, "Placed"),
                ("missing", stats.missing, "Missing"),
                ("defect", stats.defects, "Defects"),
            ):
                parts.append(
                    f"<div class='stat-card {css}'><h3>{count}</h3><p>{label}</p></div>\n"
                )
            parts.append("</div>\n")
            parts.append(f"<p>Yield: <b>{stats.yield_pct:.1f}%</b></p>\n")

        if cfg.include_defect_details:
            parts.append("<h2>Component Results</h2>\n")
            parts.append(
                "<table>\n<tr><th>Reference</th><th>Value</th><th>Footprint</th>"
                "<th>Status</th><th>Detail</th><th>Confidence</th></tr>\n"
            )
            for r in self.results:
                parts.append(
                    "<tr>"
                    f"<td>{r.reference}</td>"
                    f"<td>{r.value}</td>"
                    f"<td>{r.footprint}</td>"
                    f"<td class='status-{r.status}'>{r.status}</td>"
                    f"<td>{r.defect_type}</td>"
                    f"<td>{r.confidence * 100:.0f}%</td>"
                    "</tr>\n"
                )
            parts.append("</table>\n")

        parts.append(
            "<div class='footer'>Generated by PCB Inspector \u2014 iBOM AI Overlay</div>\n"
        )
        parts.append("</div>\n</body>\n</html>")
        return "".join(parts)

    def generate_html(self, path: PathLike) -> str:
        """Write the HTML report and return the path written."""
        self._progress(0)
        file_path = os.fspath(path)
        content = self.html_content()
        try:
            with open(file_path, "w", encoding="utf-8") as fh:
                fh.write(content)
        except OSError as exc:
            raise ReportError(f"Failed to write HTML report to: {file_path}") from exc
        self._progress(100)
        log.info("ReportGenerator: HTML report saved to '%s'", file_path)
        return file_path

    def _pdf_document(self) -> _PdfWriter:
        cfg = self.config
        pdf = _PdfWriter()
        pdf.add_page()
        pdf.text("Helvetica-Bold", 24, LEFT_MARGIN, PAGE_HEIGHT - 80, cfg.title)

        y = PAGE_HEIGHT - 120
        if cfg.project_name:
            pdf.text("Helvetica", 12, LEFT_MARGIN, y, f"Project: {cfg.project_name}")
            y -= 20
        pdf.text("Helvetica", 12, LEFT_MARGIN, y, f"Date: {_now_text()}")
        y -= 20
        if cfg.operator_name:
            pdf.text("Helvetica", 12, LEFT_MARGIN, y, f"Operator: {cfg.operator_name}")
            y -= 20
        self._progress(20)

        if cfg.include_statistics:
            stats = self.compute_statistics()
            y -= 30
            pdf.text("Helvetica-Bold", 16, LEFT_MARGIN, y, "Inspection Summary")
            y -= 25
            pdf.text(
                "Helvetica",
                12,
                LEFT_MARGIN,
                y,
                f"Total: {stats.total} | Placed: {stats.placed} | "
                f"Missing: {stats.missing} | Defects: {stats.defects} | "
                f"Yield: {stats.yield_pct:.1f}%",
            )
        self._progress(50)

        if cfg.include_defect_details:
            pdf.add_page()
            y = PAGE_HEIGHT - 50
            pdf.text("Helvetica-Bold", 16, LEFT_MARGIN, y, "Detailed Results")
            y -= 30
            for r in self.results:
                if y < BOTTOM_MARGIN:
                    pdf.add_page()
                    y = PAGE_HEIGHT - 50
                line = f"{r.reference} | {r.value} | {r.footprint} | {r.status}"
                if r.defect_type:
                    line += f" ({r.defect_type})"
                pdf.text("Helvetica", 10, LEFT_MARGIN, y, line)
                y -= 15
        self._progress(80)
        return pdf

    def generate_pdf(self, path: PathLike) -> str:
        """Write the PDF report and return the path written."""
        self._progress(0)
        file_path = os.fspath(path)
        data = self._pdf_document().to_bytes()
        try:
            with open(file_path, "wb") as fh:
                fh.write(data)
        except OSError as exc:
            raise ReportError(f"Failed to write PDF report to: {file_path}") from exc
        self._progress(100)
        log.info("ReportGenerator: PDF saved to '%s'", file_path)
        return file_path