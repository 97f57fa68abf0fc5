"""
Unit API endpoints
Unit → Topic reference data used to build selection filters
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List

from database import schemas, crud
from database.database import get_db

router = APIRouter(prefix="/units", tags=["units"])


@router.get("", response_model=List[schemas.UnitResponse])
def list_units(db: Session = Depends(get_db)):
    """
    List all units with their topics, in creation order
    """
    return crud.get_units_with_topics(db)


@router.post("", response_model=schemas.UnitResponse, status_code=status.HTTP_201_CREATED)
def create_unit(unit: schemas.UnitCreate, db: Session = Depends(get_db)):
    """
    Create a new unit
    """
    if crud.get_unit_by_name(db, unit.name.strip()):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Unit '{unit.name}' already exists"
        )
    db_unit = crud.create_unit(db, unit)
    return {"id": db_unit.id, "name": db_unit.name, "description": db_unit.description, "topics": []}


@router.get("/{unit_id}/topics", response_model=List[schemas.TopicResponse])
def list_topics(unit_id: int, db: Session = Depends(get_db)):
    """
    List the topics of a unit, ordered by order field
    """
    topics = crud.get_topics_by_unit(db, unit_id)
    if topics is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unit with ID {unit_id} not found"
        )
    return topics


@router.post("/{unit_id}/topics", response_model=schemas.TopicResponse, status_code=status.HTTP_201_CREATED)
def create_topic(unit_id: int, topic: schemas.TopicCreate, db: Session = Depends(get_db)):
    """
    Create a topic under a unit
    """
    unit = crud.get_unit(db, unit_id)
    if not unit:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unit with ID {unit_id} not found"
        )
    if any(t.name == topic.name.strip() for t in unit.topics):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Topic '{topic.name}' already exists in unit '{unit.name}'"
        )
    return crud.create_topic(db, unit_id, topic)
