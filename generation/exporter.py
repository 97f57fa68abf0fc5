"""
Question Set Export - PDF / TXT / MD rendering

Every format is built from the same numbered question blocks:

    <n>. <question text>
    A) <option A>
    B) <option B>
    C) <option C>
    D) <option D>
    Answer: <label>          (only when answers are requested)
    <blank line>

question_block() is the only place that decides whether the answer line
exists, so redaction cannot diverge between formats.

The PDF is a fixed-layout document drawn with a reportlab canvas. A pure
layout pass (layout_pages) places every line on a page; the drawing pass only
replays those placements.
"""

import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Callable, Dict, List, Sequence, Tuple

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from database.models import ANSWER_LABELS
from generation.errors import RenderError
from generation.schemas import ExportFormat, ExportOptions, RenderedDocument

log = logging.getLogger(__name__)

LINE_QUESTION = "question"
LINE_OPTION = "option"
LINE_ANSWER = "answer"

_OPTION_FIELDS = ("option_a", "option_b", "option_c", "option_d")


# ─── Shared block formatting ────────────────────────────────────────────────────

@dataclass(frozen=True)
class BlockLine:
    kind: str
    text: str


def question_block(number: int, question, include_answers: bool) -> List[BlockLine]:
    """
    Lines for one question, numbered from 1 in output order.
    `question` is anything with question/option_a..option_d/correct_answer attributes.
    """
    lines = [BlockLine(LINE_QUESTION, f"{number}. {question.question}")]
    for label, field in zip(ANSWER_LABELS, _OPTION_FIELDS):
        lines.append(BlockLine(LINE_OPTION, f"{label}) {getattr(question, field)}"))
    if include_answers:
        lines.append(BlockLine(LINE_ANSWER, f"Answer: {question.correct_answer}"))
    return lines


def iter_blocks(questions: Sequence, include_answers: bool):
    for number, question in enumerate(questions, 1):
        yield question_block(number, question, include_answers)


# ─── Text / Markdown ────────────────────────────────────────────────────────────

def render_text(questions: Sequence, include_answers: bool) -> bytes:
    """Blocks concatenated in order, each followed by a blank line. UTF-8."""
    parts = []
    for block in iter_blocks(questions, include_answers):
        for line in block:
            parts.append(line.text + "\n")
        parts.append("\n")
    return "".join(parts).encode("utf-8")


# ─── Fixed-layout PDF ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PageLayout:
    """Geometry in PDF points (origin bottom-left)."""
    page_size: Tuple[float, float] = A4
    top_margin: float = 50
    bottom_margin: float = 50
    question_x: float = 50
    option_x: float = 70
    answer_x: float = 50
    question_advance: float = 20
    option_advance: float = 15
    last_option_advance: float = 25
    answer_advance: float = 30
    font_name: str = "Helvetica"
    question_font_size: float = 11
    option_font_size: float = 10

    @property
    def page_height(self) -> float:
        return self.page_size[1]

    @property
    def top(self) -> float:
        return self.page_height - self.top_margin


DEFAULT_LAYOUT = PageLayout()


@dataclass(frozen=True)
class PlacedLine:
    x: float
    y: float
    kind: str
    text: str


def _place(line: BlockLine, is_last_option: bool, layout: PageLayout) -> Tuple[float, float]:
    """(x, downward advance) for one line"""
    if line.kind == LINE_QUESTION:
        return layout.question_x, layout.question_advance
    if line.kind == LINE_OPTION:
        return layout.option_x, layout.last_option_advance if is_last_option else layout.option_advance
    return layout.answer_x, layout.answer_advance


def layout_pages(questions: Sequence, include_answers: bool, layout: PageLayout = DEFAULT_LAYOUT) -> List[List[PlacedLine]]:
    """
    Place every line of every question block on a page.

    Page-break rule: checked once per question, before its first line. If the
    cursor has dropped below the bottom margin a new page starts. Lines inside
    a block are never checked, so a block that starts just above the margin
    finishes below it.
    """
    pages: List[List[PlacedLine]] = [[]]
    y = layout.top

    for block in iter_blocks(questions, include_answers):
        if y < layout.bottom_margin:
            pages.append([])
            y = layout.top

        last_option = max(i for i, line in enumerate(block) if line.kind == LINE_OPTION)
        for i, line in enumerate(block):
            x, advance = _place(line, i == last_option, layout)
            pages[-1].append(PlacedLine(x=x, y=y, kind=line.kind, text=line.text))
            y -= advance

    return pages


def _pdf_text(text: str) -> str:
    # drawString has no line breaking; keep each logical line on one baseline
    return " ".join(text.split())


def render_pdf(questions: Sequence, include_answers: bool, layout: PageLayout = DEFAULT_LAYOUT) -> bytes:
    """
    Draw the laid-out pages. Any failure aborts the whole document.
    Returns the complete PDF bytes.
    """
    pages = layout_pages(questions, include_answers, layout)
    with BytesIO() as buffer:
        try:
            pdf = canvas.Canvas(buffer, pagesize=layout.page_size)
            pdf.setTitle("Questions")
            for placed in pages:
                for line in placed:
                    size = layout.question_font_size if line.kind == LINE_QUESTION else layout.option_font_size
                    pdf.setFont(layout.font_name, size)
                    pdf.drawString(line.x, line.y, _pdf_text(line.text))
                pdf.showPage()
            pdf.save()
        except Exception as e:
            log.exception("[EXPORT] PDF build failed")
            raise RenderError() from e
        content = buffer.getvalue()

    log.info(f"[EXPORT] PDF OK — {len(questions)} questions on {len(pages)} page(s)")
    return content


# ─── Dispatch ───────────────────────────────────────────────────────────────────

_RENDERERS: Dict[ExportFormat, Callable[[Sequence, bool], bytes]] = {
    ExportFormat.PDF: render_pdf,
    ExportFormat.TXT: render_text,
    ExportFormat.MD: render_text,
}


def render_questions(questions: Sequence, options: ExportOptions) -> RenderedDocument:
    """Render questions in output order into the requested format."""
    renderer = _RENDERERS[options.format]
    content = renderer(questions, options.include_answers)
    log.info(
        f"[EXPORT] {options.format.value}: {len(questions)} questions, "
        f"answers={'yes' if options.include_answers else 'no'}, {len(content)} bytes"
    )
    return RenderedDocument(content=content, format=options.format)
