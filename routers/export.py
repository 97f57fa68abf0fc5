"""
Export Router — /export

Renders a previously generated question set and returns it as a download:
  application/pdf                questions.pdf
  text/plain; charset=utf-8      questions.txt / questions.md

The document is built completely before the response starts; a render
failure becomes a 500 {"error": "Export failed"}, never a truncated file.
"""

import logging
from io import BytesIO

from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from database import schemas
from generation.errors import CriteriaValidationError
from generation.exporter import render_questions
from generation.schemas import ExportFormat, ExportOptions, RenderedDocument

router = APIRouter(prefix="/export", tags=["export"])

log = logging.getLogger(__name__)


def download_response(document: RenderedDocument) -> StreamingResponse:
    """Stream the finished document as an attachment with format-specific metadata."""
    return StreamingResponse(
        BytesIO(document.content),
        media_type=document.media_type,
        headers={
            "Content-Disposition": f"attachment; filename={document.filename}"
        },
    )


@router.post("")
def export_questions(request: schemas.ExportRequest):
    """
    Export questions as PDF, plain text or Markdown.
    Numbering follows the order of `questions`; answers appear only when includeAnswers is true.
    """
    try:
        export_format = ExportFormat.parse(request.format)
    except ValueError as e:
        raise CriteriaValidationError(str(e))
    if not request.questions:
        raise CriteriaValidationError("No questions to export. Generate questions first.")

    log.info(f"[EXPORT] format={export_format.value}, questions={len(request.questions)}, answers={request.include_answers}")
    document = render_questions(
        request.questions,
        ExportOptions(format=export_format, include_answers=request.include_answers),
    )
    return download_response(document)
