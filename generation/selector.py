"""
Question Selection Engine

Turns SelectionCriteria into an ordered list of questions:
  1. count the pool matching the filter
  2. refuse if the pool is smaller than the request (never a partial set)
  3. fetch exactly total_questions rows, random order or natural (id) order

Read-only. One count query and one data query per call, on the same session.
"""

import logging
import os
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import crud
from database.models import Question
from generation.errors import CriteriaValidationError, InsufficientPoolError, StoreError
from generation.schemas import SelectionCriteria

log = logging.getLogger(__name__)

MAX_TOTAL_QUESTIONS = int(os.getenv("MAX_TOTAL_QUESTIONS", "100"))


def validate_criteria(criteria: SelectionCriteria, max_questions: int = MAX_TOTAL_QUESTIONS, require_units: bool = True):
    """
    Caller-side checks applied before the engine runs.
    The generate endpoint requires at least one unit and a count in 1..max_questions.
    """
    if not isinstance(criteria.total_questions, int) or isinstance(criteria.total_questions, bool):
        raise CriteriaValidationError("totalQuestions must be an integer")
    if not 1 <= criteria.total_questions <= max_questions:
        raise CriteriaValidationError(f"totalQuestions must be between 1 and {max_questions}")
    if require_units and not criteria.units:
        raise CriteriaValidationError("Please select at least one unit to generate questions from.")
    try:
        crud.normalize_bloom_levels(criteria.bloom_levels)
    except ValueError as e:
        raise CriteriaValidationError(str(e))


def select_questions(db: Session, criteria: SelectionCriteria) -> List[Question]:
    """
    Pick exactly criteria.total_questions questions matching every non-empty filter.

    Raises:
        CriteriaValidationError: total_questions <= 0 or an unknown Bloom's level
        InsufficientPoolError: fewer matching questions than requested
        StoreError: the database query failed
    """
    requested = criteria.total_questions
    if requested <= 0:
        raise CriteriaValidationError("totalQuestions must be a positive integer")

    filters = dict(units=criteria.units, topics=criteria.topics, bloom_levels=criteria.bloom_levels)
    try:
        crud.normalize_bloom_levels(criteria.bloom_levels)
    except ValueError as e:
        raise CriteriaValidationError(str(e))

    try:
        available = crud.count_questions(db, **filters)
        if available < requested:
            log.info(f"[GENERATE] pool too small: available={available}, requested={requested}")
            raise InsufficientPoolError(available=available, requested=requested)

        order = crud.ORDER_RANDOM if criteria.randomize else crud.ORDER_NATURAL
        questions = crud.query_questions(db, order=order, limit=requested, **filters)
    except SQLAlchemyError as e:
        log.exception("[GENERATE] store query failed")
        raise StoreError() from e

    # The pool can shrink between count and fetch; a short set is never returned.
    if len(questions) < requested:
        log.warning(f"[GENERATE] pool shrank during selection: fetched={len(questions)}, requested={requested}")
        raise InsufficientPoolError(available=len(questions), requested=requested)

    log.info(f"[GENERATE] OK — selected {len(questions)} of {available} (randomize={criteria.randomize})")
    return questions
