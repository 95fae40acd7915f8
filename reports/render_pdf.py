#!/usr/bin/env python3
from __future__ import annotations

"""
Convert a Markdown executive report into a branded PDF.
"""

import argparse
import re
import sys
from pathlib import Path
from typing import List
from xml.sax.saxutils import escape

# Resolve to absolute path to handle symlinks and relative paths
_script_dir = Path(__file__).resolve().parent.parent
if str(_script_dir) not in sys.path:
    sys.path.insert(0, str(_script_dir))

from reportlab.lib import colors
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from utils.logging_utils import get_logger


logger = get_logger(__name__)

BRAND_NAVY = colors.HexColor("#0f172a")
BRAND_TEAL = colors.HexColor("#2de1c2")
BRAND_RED = colors.HexColor("#d32f2f")
BANNER_TITLE = "INSPECCIONES PREOPERACIONALES"
BANNER_TAGLINE = "Monitoreo de vehículos y fatiga del conductor"


def _styles():
    styles = getSampleStyleSheet()
    styles.add(
        ParagraphStyle(
            name="Heading1Brand",
            parent=styles["Heading1"],
            fontSize=20,
            leading=24,
            textColor=BRAND_NAVY,
            spaceAfter=12,
        )
    )
    styles.add(
        ParagraphStyle(
            name="Heading2Brand",
            parent=styles["Heading2"],
            fontSize=14,
            leading=18,
            textColor=BRAND_NAVY,
            spaceBefore=12,
            spaceAfter=6,
        )
    )
    styles.add(
        ParagraphStyle(
            name="Heading3Brand",
            parent=styles["Heading3"],
            fontSize=12,
            leading=16,
            textColor=BRAND_NAVY,
            spaceBefore=10,
            spaceAfter=4,
        )
    )
    styles.add(ParagraphStyle(name="BodyBrand", parent=styles["BodyText"], fontSize=11, leading=15))
    styles.add(ParagraphStyle(name="CellBrand", parent=styles["BodyText"], fontSize=9, leading=11))
    styles.add(
        ParagraphStyle(
            name="BulletBrand",
            parent=styles["BodyText"],
            fontSize=11,
            leading=15,
            leftIndent=18,
            bulletIndent=8,
        )
    )
    styles.add(
        ParagraphStyle(
            name="ItalicBrand",
            parent=styles["BodyText"],
            fontSize=10,
            leading=14,
            fontName="Helvetica-Oblique",
            textColor=colors.HexColor("#475569"),
        )
    )
    return styles


def build_pdf(md_path: Path, out_pdf: Path) -> None:
    lines = md_path.read_text(encoding="utf-8").splitlines()

    doc = SimpleDocTemplate(
        str(out_pdf),
        pagesize=LETTER,
        leftMargin=60,
        rightMargin=60,
        topMargin=120,
        bottomMargin=60,
        title=BANNER_TITLE.title(),
    )
    styles = _styles()

    story = []
    bullet_buffer: List[str] = []
    table_buffer: List[str] = []

    def flush_bullets() -> None:
        if not bullet_buffer:
            return
        for item in bullet_buffer:
            story.append(Paragraph(item, styles["BulletBrand"], bulletText="•"))
        story.append(Spacer(1, 8))
        bullet_buffer.clear()

    def flush_table() -> None:
        if not table_buffer:
            return
        data: List[List[Paragraph]] = []
        for idx, raw in enumerate(table_buffer):
            row = parse_table_row(raw)
            if not row:
                continue
            if idx == 1 and _is_alignment_row(row):
                continue
            data.append([Paragraph(convert_inline(cell), styles["CellBrand"]) for cell in row])
        table_buffer.clear()
        if not data:
            return

        table = Table(data, hAlign="LEFT", repeatRows=1)
        table_style = TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), BRAND_NAVY),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.whitesmoke, colors.white]),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.lightgrey),
            ]
        )
        for row_idx, row in enumerate(data[1:], start=1):
            if any(cell.getPlainText().strip() == "No" for cell in row):
                table_style.add("LINEBEFORE", (0, row_idx), (0, row_idx), 2, BRAND_RED)
        table.setStyle(table_style)
        story.append(table)
        story.append(Spacer(1, 12))

    for line in lines:
        stripped = line.strip()
        if stripped.startswith("|") and stripped.endswith("|"):
            flush_bullets()
            table_buffer.append(stripped)
            continue
        flush_table()

        if not stripped:
            flush_bullets()
            story.append(Spacer(1, 6))
            continue

        if stripped.startswith("- "):
            bullet_buffer.append(convert_inline(stripped[2:].strip()))
            continue

        flush_bullets()

        if stripped.startswith("###"):
            story.append(Paragraph(convert_inline(stripped[3:].strip()), styles["Heading3Brand"]))
        elif stripped.startswith("##"):
            story.append(Paragraph(convert_inline(stripped[2:].strip()), styles["Heading2Brand"]))
        elif stripped.startswith("#"):
            story.append(Paragraph(convert_inline(stripped[1:].strip()), styles["Heading1Brand"]))
        elif stripped.startswith("_") and stripped.endswith("_"):
            story.append(Paragraph(convert_inline(stripped.strip("_")), styles["ItalicBrand"]))
        else:
            story.append(Paragraph(convert_inline(stripped), styles["BodyBrand"]))

    flush_bullets()
    flush_table()

    out_pdf.parent.mkdir(parents=True, exist_ok=True)
    doc.build(story, onFirstPage=draw_brand_header, onLaterPages=draw_brand_header)
    logger.info("PDF written to %s", out_pdf)


def parse_table_row(line: str) -> List[str]:
    cells = [c.strip() for c in line.strip().strip("|").split("|")]
    return cells if any(cells) else []


def convert_inline(text: str) -> str:
    text = escape(text)
    text = re.sub(r"\*\*(.+?)\*\*", r"<b>\1</b>", text)
    text = re.sub(r"\*(.+?)\*", r"<i>\1</i>", text)
    return text


def _is_alignment_row(cells: List[str]) -> bool:
    if not cells:
        return False
    for cell in cells:
        if cell.replace("-", "").replace(":", "").strip():
            return False
        if "-" not in cell:
            return False
    return True


def draw_brand_header(canvas, doc) -> None:
    canvas.saveState()
    width, height = LETTER
    banner_height = 72
    canvas.setFillColor(BRAND_NAVY)
    canvas.rect(0, height - banner_height, width, banner_height, stroke=0, fill=1)
    canvas.setFillColor(BRAND_TEAL)
    canvas.rect(0, height - banner_height - 4, width, 4, stroke=0, fill=1)

    canvas.setFont("Helvetica-Bold", 20)
    canvas.setFillColor(colors.white)
    title_width = canvas.stringWidth(BANNER_TITLE, "Helvetica-Bold", 20)
    canvas.drawString((width - title_width) / 2, height - banner_height + 34, BANNER_TITLE)

    canvas.setFont("Helvetica", 11)
    canvas.setFillColor(BRAND_TEAL)
    tagline_width = canvas.stringWidth(BANNER_TAGLINE, "Helvetica", 11)
    canvas.drawString((width - tagline_width) / 2, height - banner_height + 14, BANNER_TAGLINE)

    canvas.setFont("Helvetica", 8)
    canvas.setFillColor(colors.grey)
    canvas.drawRightString(width - 60, 30, f"Página {doc.page}")
    canvas.restoreState()


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Render a Markdown executive report to a branded PDF.")
    parser.add_argument("--report", required=True, help="Path to the Markdown report (e.g., output/ejecutivo.md)")
    parser.add_argument("--pdf", required=True, help="Destination PDF path (e.g., output/ejecutivo.pdf)")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    md_path = Path(args.report)
    if not md_path.exists():
        raise FileNotFoundError(f"Report not found: {md_path}")
    build_pdf(md_path, Path(args.pdf))
    print(f"Rendered PDF saved to {args.pdf}")


if __name__ == "__main__":
    main()
