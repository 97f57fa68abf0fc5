"""
CRUD operations for the question store
All database operations go through these functions

Filtered reads take three optional collections (units, topics, bloom levels);
an empty collection leaves that dimension unconstrained.
"""

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Iterable, Dict, Any

from sqlalchemy import func, distinct
from sqlalchemy.orm import Session, Query

from database import models, schemas
from database.redis_client import get_cached, set_cached, invalidate_question_cache, STATS_KEY, UNITS_KEY

ORDER_NATURAL = "natural"
ORDER_RANDOM = "random"


# ==========================================
# FILTERING
# ==========================================

def normalize_bloom_levels(values: Iterable[str]) -> List[str]:
    """Map user spellings ('apply', 'Apply (Level 3)') to stored values. Raises ValueError."""
    return sorted({models.BloomLevel.parse(v).value for v in values or []})


def apply_filters(
    query: Query,
    units: Iterable[str] = (),
    topics: Iterable[str] = (),
    bloom_levels: Iterable[str] = (),
) -> Query:
    """AND together one IN-clause per non-empty dimension"""
    units, topics, bloom_levels = list(units or []), list(topics or []), list(bloom_levels or [])
    if units:
        query = query.filter(models.Question.unit.in_(units))
    if topics:
        query = query.filter(models.Question.topic.in_(topics))
    if bloom_levels:
        query = query.filter(models.Question.blooms_level.in_(normalize_bloom_levels(bloom_levels)))
    return query


def count_questions(
    db: Session,
    units: Iterable[str] = (),
    topics: Iterable[str] = (),
    bloom_levels: Iterable[str] = (),
) -> int:
    """Count questions matching the filter"""
    query = apply_filters(db.query(func.count(models.Question.id)), units, topics, bloom_levels)
    return query.scalar() or 0


def query_questions(
    db: Session,
    units: Iterable[str] = (),
    topics: Iterable[str] = (),
    bloom_levels: Iterable[str] = (),
    order: str = ORDER_NATURAL,
    limit: Optional[int] = None,
    offset: int = 0,
) -> List[models.Question]:
    """Fetch questions matching the filter in natural (id) or random order"""
    query = apply_filters(db.query(models.Question), units, topics, bloom_levels)
    if order == ORDER_RANDOM:
        query = query.order_by(func.random())
    elif order == ORDER_NATURAL:
        query = query.order_by(models.Question.id)
    else:
        raise ValueError(f"Unknown order: {order!r}")
    if offset:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def list_questions(
    db: Session,
    unit: Optional[str] = None,
    topic: Optional[str] = None,
    blooms_level: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
) -> Dict[str, Any]:
    """One page of questions plus paging totals (totalPages = ceil(total / limit))"""
    units = [unit] if unit else []
    topics = [topic] if topic else []
    bloom_levels = [blooms_level] if blooms_level else []

    total = count_questions(db, units, topics, bloom_levels)
    questions = query_questions(
        db, units, topics, bloom_levels,
        limit=limit,
        offset=(page - 1) * limit,
    )
    return {
        "questions": questions,
        "total": total,
        "page": page,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }


# ==========================================
# QUESTION CRUD
# ==========================================

def _question_from_schema(question: schemas.QuestionCreate) -> models.Question:
    return models.Question(
        question=question.question,
        option_a=question.option_a,
        option_b=question.option_b,
        option_c=question.option_c,
        option_d=question.option_d,
        correct_answer=question.correct_answer,
        blooms_level=question.blooms_level,
        topic=question.topic,
        unit=question.unit,
    )


def get_question(db: Session, question_id: int) -> Optional[models.Question]:
    """Get question by ID"""
    return db.query(models.Question).filter(models.Question.id == question_id).first()


def create_question(db: Session, question: schemas.QuestionCreate) -> models.Question:
    """Create a new question and register its unit/topic"""
    db_question = _question_from_schema(question)
    ensure_unit_topic(db, question.unit, question.topic)
    db.add(db_question)
    db.commit()
    db.refresh(db_question)
    invalidate_question_cache()
    return db_question


def bulk_create_questions(db: Session, questions: List[schemas.QuestionCreate]) -> List[models.Question]:
    """Create many questions in one transaction"""
    db_questions = []
    for question in questions:
        ensure_unit_topic(db, question.unit, question.topic)
        db_questions.append(_question_from_schema(question))
    db.add_all(db_questions)
    db.commit()
    for db_question in db_questions:
        db.refresh(db_question)
    invalidate_question_cache()
    return db_questions


def update_question(db: Session, question_id: int, question_update: schemas.QuestionUpdate) -> Optional[models.Question]:
    """Update an existing question"""
    db_question = get_question(db, question_id)
    if not db_question:
        return None

    update_data = question_update.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in update_data.items():
        setattr(db_question, field, value)

    if "unit" in update_data or "topic" in update_data:
        ensure_unit_topic(db, db_question.unit, db_question.topic)

    db.commit()
    db.refresh(db_question)
    invalidate_question_cache()
    return db_question


def delete_question(db: Session, question_id: int) -> bool:
    """Delete a question"""
    db_question = get_question(db, question_id)
    if not db_question:
        return False

    db.delete(db_question)
    db.commit()
    invalidate_question_cache()
    return True


# ==========================================
# UNIT / TOPIC
# ==========================================

def get_unit(db: Session, unit_id: int) -> Optional[models.Unit]:
    """Get unit by ID"""
    return db.query(models.Unit).filter(models.Unit.id == unit_id).first()


def get_unit_by_name(db: Session, name: str) -> Optional[models.Unit]:
    """Get unit by name"""
    return db.query(models.Unit).filter(models.Unit.name == name).first()


def create_unit(db: Session, unit: schemas.UnitCreate) -> models.Unit:
    """Create a new unit"""
    db_unit = models.Unit(name=unit.name.strip(), description=unit.description)
    db.add(db_unit)
    db.commit()
    db.refresh(db_unit)
    invalidate_question_cache()
    return db_unit


def create_topic(db: Session, unit_id: int, topic: schemas.TopicCreate) -> models.Topic:
    """Create a topic under a unit"""
    db_topic = models.Topic(name=topic.name.strip(), order=topic.order, unit_id=unit_id)
    db.add(db_topic)
    db.commit()
    db.refresh(db_topic)
    invalidate_question_cache()
    return db_topic


def ensure_unit_topic(db: Session, unit_name: str, topic_name: str) -> models.Topic:
    """
    Make sure the unit and topic named on a question exist in the hierarchy.
    Flushes but does not commit; the caller owns the transaction.
    """
    db_unit = get_unit_by_name(db, unit_name)
    if db_unit is None:
        db_unit = models.Unit(name=unit_name)
        db.add(db_unit)
        db.flush()

    db_topic = db.query(models.Topic).filter(
        models.Topic.unit_id == db_unit.id,
        models.Topic.name == topic_name,
    ).first()
    if db_topic is None:
        next_order = db.query(func.count(models.Topic.id)).filter(models.Topic.unit_id == db_unit.id).scalar() or 0
        db_topic = models.Topic(name=topic_name, order=next_order, unit_id=db_unit.id)
        db.add(db_topic)
        db.flush()
    return db_topic


def _topic_question_counts(db: Session) -> Dict[tuple, int]:
    rows = db.query(
        models.Question.unit, models.Question.topic, func.count(models.Question.id)
    ).group_by(models.Question.unit, models.Question.topic).all()
    return {(unit, topic): count for unit, topic, count in rows}


def _topic_dict(topic: models.Topic, unit_name: str, counts: Dict[tuple, int]) -> dict:
    return {
        "id": topic.id,
        "name": topic.name,
        "unit_id": topic.unit_id,
        "question_count": counts.get((unit_name, topic.name), 0),
    }


def get_units_with_topics(db: Session) -> List[dict]:
    """All units ordered by id, each with its ordered topics and per-topic question counts"""
    cached = get_cached(UNITS_KEY)
    if cached is not None:
        return cached

    counts = _topic_question_counts(db)
    units = db.query(models.Unit).order_by(models.Unit.id).all()
    result = [
        {
            "id": unit.id,
            "name": unit.name,
            "description": unit.description,
            "topics": [_topic_dict(t, unit.name, counts) for t in unit.topics],
        }
        for unit in units
    ]
    set_cached(UNITS_KEY, result)
    return result


def get_topics_by_unit(db: Session, unit_id: int) -> Optional[List[dict]]:
    """Topics of one unit, or None if the unit does not exist"""
    unit = get_unit(db, unit_id)
    if unit is None:
        return None
    counts = _topic_question_counts(db)
    return [_topic_dict(t, unit.name, counts) for t in unit.topics]


# ==========================================
# STATISTICS
# ==========================================

def _round1(value: float) -> float:
    # half away from zero, like SQL ROUND
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def _iso(value) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat() if hasattr(value, "isoformat") else str(value)


def get_question_stats(db: Session) -> dict:
    """Totals plus per-unit and per-Bloom's-level breakdowns"""
    cached = get_cached(STATS_KEY)
    if cached is not None:
        return cached

    Q = models.Question
    total_questions = db.query(func.count(Q.id)).scalar() or 0
    total_units = db.query(func.count(distinct(Q.unit))).scalar() or 0
    total_topics = db.query(func.count(distinct(Q.topic))).scalar() or 0

    unit_rows = db.query(
        Q.unit,
        func.count(Q.id),
        func.count(distinct(Q.topic)),
        func.max(Q.updated_at),
    ).group_by(Q.unit).order_by(Q.unit).all()

    bloom_rows = db.query(Q.blooms_level, func.count(Q.id)).group_by(Q.blooms_level).all()
    bloom_order = {level.value: level.number for level in models.BloomLevel}
    bloom_rows = sorted(bloom_rows, key=lambda row: (bloom_order.get(row[0], 99), row[0]))

    weighted, graded = 0, 0
    for level, count in bloom_rows:
        if level in bloom_order:
            weighted += bloom_order[level] * count
            graded += count

    stats = {
        "total_questions": total_questions,
        "total_units": total_units,
        "total_topics": total_topics,
        "average_blooms_level": _round1(weighted / graded) if graded else 0.0,
        "unit_stats": [
            {
                "unit_name": unit,
                "question_count": count,
                "topic_count": topic_count,
                "last_updated": _iso(last_updated),
            }
            for unit, count, topic_count, last_updated in unit_rows
        ],
        "blooms_distribution": [
            {
                "level": level,
                "count": count,
                "percentage": _round1(count * 100.0 / total_questions) if total_questions else 0.0,
            }
            for level, count in bloom_rows
        ],
    }
    set_cached(STATS_KEY, stats)
    return stats
