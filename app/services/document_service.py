"""
Revi Audit — Document rendering (DOCX / PDF)

Generated reports and Q&A transcripts are Markdown-flavoured text.  This
module parses that text into a flat list of blocks and renders the blocks
either as a Word document (python-docx) or a PDF (reportlab platypus).

Supported Markdown subset (line oriented):

  # / ## / ###        headings
  - item / * item     bullets
  ✓ item              check bullets
  1. item             numbered items
  ---                 horizontal rule
  key metric lines    shaded paragraphs
  **bold** *italic*   inline runs
"""

from __future__ import annotations

import io
import re
from dataclasses import dataclass, field
from datetime import datetime
from xml.sax.saxutils import escape

import structlog
from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Inches, Pt, RGBColor
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import HRFlowable, Paragraph, SimpleDocTemplate, Spacer

logger = structlog.get_logger("audit.document_service")

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PDF_MIME = "application/pdf"

FORMAT_MARKDOWN = "markdown"
FORMAT_PLAIN = "plain"

KEY_METRIC_MARKERS = (
    "Business Readiness Score:",
    "ROI Potential:",
    "Estimated Annual Efficiency Gains:",
)

_HEADING_RE = re.compile(r"^(#{1,3})\s+(.*)$")
_NUMBERED_RE = re.compile(r"^(\d+)\.\s+(.*)$")
_DIVIDER_RE = re.compile(r"^={3,}.*$")
_RULE_RE = re.compile(r"^-{3,}$")
_INLINE_RE = re.compile(r"(\*\*[^*\n]+\*\*|\*[^*\n]+\*)")


@dataclass(frozen=True)
class Run:
    text: str
    bold: bool = False
    italic: bool = False


@dataclass
class Block:
    """One rendered line.

    ``kind`` is one of ``heading``, ``bullet``, ``check``, ``numbered``,
    ``metric``, ``rule``, ``paragraph`` or ``blank``.
    """

    kind: str
    runs: list[Run] = field(default_factory=list)
    level: int = 0
    marker: str = ""

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)


# ──────────────────────────────────────────────────────────────────────────────
# Parsing
# ──────────────────────────────────────────────────────────────────────────────


def preprocess_markdown(text: str) -> str:
    """Drop ``===`` dividers, stray asterisk runs and repeated blank lines."""
    lines = []
    for raw in text.replace("\r\n", "\n").split("\n"):
        line = raw.strip()
        if _DIVIDER_RE.match(line):
            line = ""
        lines.append(re.sub(r"\*{3,}", "", line))
    cleaned = "\n".join(lines)
    return re.sub(r"\n{3,}", "\n\n", cleaned).strip("\n")


def parse_inline(text: str) -> list[Run]:
    runs: list[Run] = []
    for part in _INLINE_RE.split(text):
        if not part:
            continue
        if part.startswith("**") and part.endswith("**") and len(part) > 4:
            runs.append(Run(part[2:-2], bold=True))
        elif part.startswith("*") and part.endswith("*") and len(part) > 2:
            runs.append(Run(part[1:-1], italic=True))
        else:
            runs.append(Run(part))
    return runs or [Run(text)]


def parse_markdown(text: str) -> list[Block]:
    blocks: list[Block] = []
    for line in preprocess_markdown(text).split("\n"):
        if not line:
            blocks.append(Block("blank"))
            continue

        heading = _HEADING_RE.match(line)
        if heading:
            blocks.append(
                Block("heading", parse_inline(heading.group(2).strip()), level=len(heading.group(1)))
            )
            continue

        if _RULE_RE.match(line):
            blocks.append(Block("rule"))
        elif line.startswith(("- ", "* ")):
            blocks.append(Block("bullet", parse_inline(line[2:].strip()), marker="•"))
        elif line.startswith("✓ "):
            blocks.append(Block("check", parse_inline(line[2:].strip()), marker="✓"))
        elif _NUMBERED_RE.match(line):
            number, body = _NUMBERED_RE.match(line).groups()
            blocks.append(Block("numbered", parse_inline(body), marker=f"{number}."))
        elif any(marker in line for marker in KEY_METRIC_MARKERS):
            blocks.append(Block("metric", parse_inline(line)))
        else:
            blocks.append(Block("paragraph", parse_inline(line)))
    return blocks


def parse_plain(text: str) -> list[Block]:
    return [Block("paragraph", [Run(line)]) for line in text.split("\n") if line.strip()]


def _blocks_for(text: str, fmt: str) -> list[Block]:
    if fmt == FORMAT_PLAIN:
        return parse_plain(text)
    return parse_markdown(text)


def _generated_on() -> str:
    return f"Generated on {datetime.now().strftime('%A, %B %d, %Y')}"


# ──────────────────────────────────────────────────────────────────────────────
# DOCX
# ──────────────────────────────────────────────────────────────────────────────

_TEXT_COLOR = RGBColor(0x2C, 0x3E, 0x50)
_TITLE_COLOR = RGBColor(0x1A, 0x36, 0x5D)
_ACCENT_COLOR = RGBColor(0x4A, 0x55, 0x68)
_CHECK_COLOR = RGBColor(0x38, 0xA1, 0x69)
_HEADING_COLORS = {
    1: RGBColor(0x2D, 0x37, 0x48),
    2: RGBColor(0x4A, 0x55, 0x68),
    3: RGBColor(0x71, 0x80, 0x96),
}
_HEADING_SIZES = {1: Pt(16), 2: Pt(14), 3: Pt(13)}


def _add_runs(paragraph, runs: list[Run]) -> None:
    for run in runs:
        r = paragraph.add_run(run.text)
        r.bold = run.bold
        r.italic = run.italic


def _shade(paragraph, fill: str) -> None:
    shd = OxmlElement("w:shd")
    shd.set(qn("w:val"), "clear")
    shd.set(qn("w:color"), "auto")
    shd.set(qn("w:fill"), fill)
    paragraph._p.get_or_add_pPr().append(shd)


def _bottom_border(paragraph, color: str = "E2E8F0") -> None:
    border = OxmlElement("w:pBdr")
    bottom = OxmlElement("w:bottom")
    bottom.set(qn("w:val"), "single")
    bottom.set(qn("w:sz"), "6")
    bottom.set(qn("w:space"), "1")
    bottom.set(qn("w:color"), color)
    border.append(bottom)
    paragraph._p.get_or_add_pPr().append(border)


def render_docx(text: str, title: str, fmt: str = FORMAT_MARKDOWN) -> bytes:
    """Render Markdown (or plain) text as a styled Word document."""
    doc = Document()
    doc.core_properties.title = title
    doc.core_properties.author = "Revi Audit System"

    normal = doc.styles["Normal"]
    normal.font.name = "Poppins"
    normal.font.size = Pt(11)
    normal.font.color.rgb = _TEXT_COLOR

    with_title = fmt != FORMAT_PLAIN and "report" in title.lower()
    if with_title:
        heading = doc.add_paragraph()
        heading.alignment = WD_ALIGN_PARAGRAPH.CENTER
        run = heading.add_run(title)
        run.bold = True
        run.font.size = Pt(18)
        run.font.color.rgb = _TITLE_COLOR

        subtitle = doc.add_paragraph()
        subtitle.alignment = WD_ALIGN_PARAGRAPH.CENTER
        run = subtitle.add_run(_generated_on())
        run.font.size = Pt(12)
        run.font.color.rgb = _ACCENT_COLOR

    for block in _blocks_for(text, fmt):
        if block.kind == "blank":
            continue
        if with_title and block.kind == "heading" and block.text == title:
            continue

        if block.kind == "heading":
            paragraph = doc.add_heading(level=block.level)
            for run in block.runs:
                r = paragraph.add_run(run.text)
                r.font.size = _HEADING_SIZES[block.level]
                r.font.color.rgb = _HEADING_COLORS[block.level]
            if block.level == 1:
                _bottom_border(paragraph)
        elif block.kind == "rule":
            paragraph = doc.add_paragraph()
            _bottom_border(paragraph, color="CBD5E0")
        elif block.kind in ("bullet", "check", "numbered"):
            paragraph = doc.add_paragraph()
            paragraph.paragraph_format.left_indent = Inches(0.5)
            marker = paragraph.add_run(f"{block.marker} ")
            marker.bold = block.kind != "bullet"
            marker.font.color.rgb = _CHECK_COLOR if block.kind == "check" else _ACCENT_COLOR
            _add_runs(paragraph, block.runs)
        elif block.kind == "metric":
            paragraph = doc.add_paragraph()
            paragraph.paragraph_format.left_indent = Inches(0.25)
            paragraph.paragraph_format.right_indent = Inches(0.25)
            _shade(paragraph, "F8F9FA")
            _add_runs(paragraph, block.runs)
        else:
            paragraph = doc.add_paragraph()
            _add_runs(paragraph, block.runs)

    buf = io.BytesIO()
    doc.save(buf)
    data = buf.getvalue()
    logger.debug("docx_rendered", title=title, bytes=len(data))
    return data


# ──────────────────────────────────────────────────────────────────────────────
# PDF
# ──────────────────────────────────────────────────────────────────────────────


def _markup(runs: list[Run]) -> str:
    parts = []
    for run in runs:
        text = escape(run.text)
        if run.bold:
            text = f"<b>{text}</b>"
        if run.italic:
            text = f"<i>{text}</i>"
        parts.append(text)
    return "".join(parts)


def render_pdf(text: str, title: str = "Report", fmt: str = FORMAT_MARKDOWN) -> bytes:
    """Render Markdown (or plain) text as an A4 PDF."""
    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        title=title,
        leftMargin=20 * mm,
        rightMargin=20 * mm,
        topMargin=20 * mm,
        bottomMargin=20 * mm,
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "AuditTitle",
        parent=styles["Title"],
        textColor=colors.HexColor("#1a365d"),
        spaceAfter=6,
    )
    subtitle_style = ParagraphStyle(
        "AuditSubtitle",
        parent=styles["Normal"],
        alignment=1,
        textColor=colors.HexColor("#4a5568"),
        spaceAfter=18,
    )
    body = ParagraphStyle("AuditBody", parent=styles["BodyText"], leading=15)
    item = ParagraphStyle("AuditItem", parent=body, leftIndent=18, bulletIndent=6)
    metric = ParagraphStyle(
        "AuditMetric",
        parent=body,
        backColor=colors.HexColor("#f8f9fa"),
        borderPadding=6,
        leftIndent=9,
        rightIndent=9,
    )
    headings = {1: styles["Heading1"], 2: styles["Heading2"], 3: styles["Heading3"]}

    elements = [
        Paragraph(escape(title), title_style),
        Paragraph(escape(_generated_on()), subtitle_style),
    ]

    for block in _blocks_for(text, fmt):
        if block.kind == "blank":
            elements.append(Spacer(1, 4))
        elif block.kind == "heading":
            elements.append(Paragraph(_markup(block.runs), headings[block.level]))
        elif block.kind == "rule":
            elements.append(HRFlowable(width="100%", color=colors.HexColor("#cbd5e0")))
        elif block.kind in ("bullet", "check", "numbered"):
            elements.append(Paragraph(_markup(block.runs), item, bulletText=block.marker))
        elif block.kind == "metric":
            elements.append(Paragraph(_markup(block.runs), metric))
        else:
            elements.append(Paragraph(_markup(block.runs), body))

    doc.build(elements)
    data = buf.getvalue()
    logger.debug("pdf_rendered", title=title, bytes=len(data))
    return data
