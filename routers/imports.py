"""
Import Router — /import

Accepts a question file upload (csv, sql, md, txt) and stores every valid
record it contains. Invalid records are reported, not stored.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from database import schemas
from database.database import get_db
from ingestion import QuestionFileParser, import_questions

router = APIRouter(prefix="/import", tags=["import"])

log = logging.getLogger(__name__)

# Configuration
MAX_UPLOAD_SIZE = int(os.getenv("MAX_UPLOAD_SIZE", 5242880))  # 5MB


def resolve_format(file: UploadFile, fmt: Optional[str]) -> str:
    """Explicit format wins; otherwise use the file extension"""
    candidate = (fmt or "").strip().lower().lstrip(".")
    if not candidate and file.filename:
        candidate = Path(file.filename.strip()).suffix.lower().lstrip(".")

    if candidate not in QuestionFileParser.SUPPORTED_FORMATS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file type: .{candidate or '?'}. Allowed: {', '.join(QuestionFileParser.SUPPORTED_FORMATS)}"
        )
    return candidate


@router.post("", response_model=schemas.ImportResult)
async def import_file(
    file: UploadFile = File(...),
    format: Optional[str] = Form(None),
    unit: Optional[str] = Form(None, description="Unit for records that do not name one"),
    topic: Optional[str] = Form(None, description="Topic for records that do not name one"),
    bloomsLevel: Optional[str] = Form(None, description="Bloom's level for records that do not name one"),
    db: Session = Depends(get_db),
):
    """
    Import questions from an uploaded file.
    Returns how many questions were stored and why any were skipped.
    """
    fmt = resolve_format(file, format)
    content = await file.read()
    if len(content) > MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds maximum upload size of {MAX_UPLOAD_SIZE} bytes"
        )

    log.info(f"[IMPORT] file={file.filename}, format={fmt}, size={len(content)}")
    defaults = {"unit": unit, "topic": topic, "blooms_level": bloomsLevel}
    return import_questions(db, content, fmt, defaults=defaults)
