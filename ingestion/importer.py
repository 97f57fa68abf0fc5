"""
Question import: uploaded file → validated records → one bulk insert.

Invalid records are skipped and reported; valid ones are stored together.
"""

import logging
from typing import Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import crud, schemas
from generation.errors import StoreError
from ingestion.parser import QuestionFileParser, ParsedRecord, ParseError

log = logging.getLogger(__name__)


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", "invalid"))
    return "; ".join(parts)


def validate_records(
    records: List[ParsedRecord],
    defaults: Optional[Dict[str, str]] = None,
) -> tuple:
    """
    Validate raw records with the same rules as the create endpoint.
    `defaults` fills unit/topic/blooms_level when a record leaves them out.

    Returns (valid QuestionCreate list, error strings)
    """
    defaults = {k: v for k, v in (defaults or {}).items() if v}
    valid: List[schemas.QuestionCreate] = []
    errors: List[str] = []

    for record in records:
        if "_error" in record.fields:
            errors.append(f"{record.location}: {record.fields['_error']}")
            continue
        data = {**defaults, **{k: v for k, v in record.fields.items() if v}}
        try:
            valid.append(schemas.QuestionCreate.model_validate(data))
        except ValidationError as e:
            errors.append(f"{record.location}: {_format_validation_error(e)}")

    return valid, errors


def import_questions(
    db: Session,
    content: bytes,
    fmt: str,
    defaults: Optional[Dict[str, str]] = None,
) -> schemas.ImportResult:
    """
    Parse, validate and store the questions in an uploaded file.

    Raises:
        StoreError: the bulk insert failed (nothing is stored)
    """
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return schemas.ImportResult(success=False, message="File is not valid UTF-8 text", errors=["File is not valid UTF-8 text"])

    try:
        records = QuestionFileParser.parse(text, fmt)
    except ParseError as e:
        log.warning(f"[IMPORT] parse failed ({fmt}): {e}")
        return schemas.ImportResult(success=False, message=f"Import failed: {e}", errors=[str(e)])

    valid, errors = validate_records(records, defaults)
    if not valid:
        message = "No valid questions found in file"
        log.info(f"[IMPORT] {message} ({len(errors)} error(s))")
        return schemas.ImportResult(success=False, message=message, errors=errors)

    try:
        crud.bulk_create_questions(db, valid)
    except SQLAlchemyError as e:
        db.rollback()
        log.exception("[IMPORT] bulk insert failed")
        raise StoreError() from e

    log.info(f"[IMPORT] OK — imported {len(valid)} question(s), skipped {len(errors)}")
    return schemas.ImportResult(
        success=True,
        message=f"Successfully imported {len(valid)} questions",
        imported_count=len(valid),
        errors=errors,
    )
