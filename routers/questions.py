"""
Question bank router.
Browse/filter the bank, manage single questions, read aggregate statistics,
and assemble a question set from selection criteria.
"""

import logging
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from database import crud, schemas
from database.database import get_db
from generation.errors import CriteriaValidationError
from generation.schemas import SelectionCriteria
from generation.selector import select_questions, validate_criteria

router = APIRouter(prefix="/questions", tags=["questions"])

log = logging.getLogger(__name__)


@router.get("", response_model=schemas.QuestionListResponse)
def list_questions(
    unit: Optional[str] = None,
    topic: Optional[str] = None,
    blooms_level: Optional[str] = Query(None, alias="bloomsLevel"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """List questions, optionally filtered by unit, topic and Bloom's level."""
    try:
        return crud.list_questions(db, unit=unit, topic=topic, blooms_level=blooms_level, page=page, limit=limit)
    except ValueError as e:
        raise CriteriaValidationError(str(e))


@router.get("/stats", response_model=schemas.QuestionStats)
def question_stats(db: Session = Depends(get_db)):
    """Totals plus per-unit and per-Bloom's-level breakdowns."""
    return crud.get_question_stats(db)


@router.post("/generate", response_model=List[schemas.QuestionResponse])
def generate_questions(request: schemas.GenerateRequest, db: Session = Depends(get_db)):
    """
    Assemble a question set for preview.
    Fails with 400 and the available count when the filters match too few questions.
    """
    criteria = SelectionCriteria.build(
        total_questions=request.total_questions,
        units=request.selected_units,
        topics=request.selected_topics,
        bloom_levels=request.selected_bloom_levels,
        randomize=request.randomize,
    )
    log.info(
        f"[GENERATE] total={criteria.total_questions}, units={sorted(criteria.units)}, "
        f"topics={sorted(criteria.topics)}, bloom={sorted(criteria.bloom_levels)}, randomize={criteria.randomize}"
    )
    validate_criteria(criteria)
    return select_questions(db, criteria)


@router.get("/{question_id}", response_model=schemas.QuestionResponse)
def get_question(question_id: int, db: Session = Depends(get_db)):
    """Get a single question."""
    question = crud.get_question(db, question_id)
    if not question:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found")
    return question


@router.post("", response_model=schemas.QuestionResponse, status_code=status.HTTP_201_CREATED)
def create_question(question: schemas.QuestionCreate, db: Session = Depends(get_db)):
    """Add a question to the bank."""
    return crud.create_question(db, question)


@router.put("/{question_id}", response_model=schemas.QuestionResponse)
def update_question(question_id: int, question_update: schemas.QuestionUpdate, db: Session = Depends(get_db)):
    """
    Update a question
    Only provided fields will be updated
    """
    question = crud.update_question(db, question_id, question_update)
    if not question:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found")
    return question


@router.delete("/{question_id}")
def delete_question(question_id: int, db: Session = Depends(get_db)):
    """Delete a question. Already exported sets are unaffected."""
    if not crud.delete_question(db, question_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found")
    return {"success": True}
