"""
Pydantic schemas for request/response validation
Separate from SQLAlchemy models for clean API contracts

Wire format is camelCase (optionA, correctAnswer, bloomsLevel, createdAt);
Python attributes stay snake_case.
"""

from pydantic import BaseModel, Field, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List
from datetime import datetime

from database.models import BloomLevel, ANSWER_LABELS


class CamelModel(BaseModel):
    """Base for every schema that crosses the HTTP boundary"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _normalize_answer(value: str) -> str:
    label = str(value or "").strip().upper()
    if label not in ANSWER_LABELS:
        raise ValueError(f"correctAnswer must be one of {', '.join(ANSWER_LABELS)}")
    return label


def _normalize_bloom(value: str) -> str:
    return BloomLevel.parse(value).value


def _strip_required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


# ==========================================
# QUESTION SCHEMAS
# ==========================================

class QuestionBase(CamelModel):
    """Base schema for Question - shared fields"""
    question: str = Field(..., min_length=1, description="Question text")
    option_a: str = Field(..., min_length=1)
    option_b: str = Field(..., min_length=1)
    option_c: str = Field(..., min_length=1)
    option_d: str = Field(..., min_length=1)
    correct_answer: str = Field(..., description="Correct option label (A, B, C, D)")
    blooms_level: str = Field(..., description="Bloom's level (Remember .. Create)")
    topic: str = Field(..., min_length=1, max_length=255)
    unit: str = Field(..., min_length=1, max_length=255)

    @field_validator("question", "option_a", "option_b", "option_c", "option_d", "topic", "unit")
    @classmethod
    def _check_required(cls, value: str) -> str:
        return _strip_required(value)

    @field_validator("correct_answer")
    @classmethod
    def _check_answer(cls, value: str) -> str:
        return _normalize_answer(value)

    @field_validator("blooms_level")
    @classmethod
    def _check_bloom(cls, value: str) -> str:
        return _normalize_bloom(value)


class QuestionCreate(QuestionBase):
    """Schema for creating a new Question"""
    pass


class QuestionUpdate(CamelModel):
    """Schema for updating a Question - all fields optional"""
    question: Optional[str] = Field(None, min_length=1)
    option_a: Optional[str] = Field(None, min_length=1)
    option_b: Optional[str] = Field(None, min_length=1)
    option_c: Optional[str] = Field(None, min_length=1)
    option_d: Optional[str] = Field(None, min_length=1)
    correct_answer: Optional[str] = None
    blooms_level: Optional[str] = None
    topic: Optional[str] = Field(None, min_length=1, max_length=255)
    unit: Optional[str] = Field(None, min_length=1, max_length=255)

    @field_validator("question", "option_a", "option_b", "option_c", "option_d", "topic", "unit")
    @classmethod
    def _check_required(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _strip_required(value)

    @field_validator("correct_answer")
    @classmethod
    def _check_answer(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _normalize_answer(value)

    @field_validator("blooms_level")
    @classmethod
    def _check_bloom(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _normalize_bloom(value)


class QuestionResponse(QuestionBase):
    """Schema for Question response"""
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class QuestionPayload(CamelModel):
    """
    A question as sent back by the client for export.
    Only the rendered fields are required; the client may echo the whole record.
    """
    id: Optional[int] = None
    question: str
    option_a: str
    option_b: str
    option_c: str
    option_d: str
    correct_answer: str
    blooms_level: Optional[str] = None
    topic: Optional[str] = None
    unit: Optional[str] = None


class QuestionListResponse(CamelModel):
    """Paged list of questions"""
    questions: List[QuestionResponse]
    total: int
    page: int
    total_pages: int


# ==========================================
# UNIT / TOPIC SCHEMAS
# ==========================================

class TopicCreate(CamelModel):
    """Schema for creating a Topic under a unit"""
    name: str = Field(..., min_length=1, max_length=255)
    order: int = Field(default=0, ge=0, description="Display order within unit")


class TopicResponse(CamelModel):
    """Schema for Topic response"""
    id: int
    name: str
    unit_id: int
    question_count: int = 0

    model_config = ConfigDict(from_attributes=True)


class UnitCreate(CamelModel):
    """Schema for creating a new Unit"""
    name: str = Field(..., min_length=1, max_length=255, description="Unit name")
    description: Optional[str] = Field(None, description="Unit description")


class UnitResponse(CamelModel):
    """Schema for Unit response with nested topics"""
    id: int
    name: str
    description: Optional[str] = None
    topics: List[TopicResponse] = []

    model_config = ConfigDict(from_attributes=True)


# ==========================================
# STATISTICS SCHEMAS
# ==========================================

class UnitStats(CamelModel):
    unit_name: str
    question_count: int
    topic_count: int
    last_updated: Optional[str] = None


class BloomsDistribution(CamelModel):
    level: str
    count: int
    percentage: float


class QuestionStats(CamelModel):
    """Aggregate view of the question bank"""
    total_questions: int
    total_units: int
    total_topics: int
    average_blooms_level: float
    unit_stats: List[UnitStats]
    blooms_distribution: List[BloomsDistribution]


# ==========================================
# GENERATE / EXPORT / IMPORT SCHEMAS
# ==========================================

class GenerateRequest(CamelModel):
    """Selection criteria for assembling a question set"""
    total_questions: int = Field(20, description="Number of questions to select")
    selected_units: List[str] = Field(default_factory=list)
    selected_topics: List[str] = Field(default_factory=list)
    selected_bloom_levels: List[str] = Field(default_factory=list)
    randomize: bool = True


class ExportRequest(CamelModel):
    """Questions to render plus export options"""
    questions: List[QuestionPayload]
    format: str = Field(..., description="pdf | txt | md")
    include_answers: bool = False


class ImportResult(CamelModel):
    """Outcome of importing one uploaded file"""
    success: bool
    message: str
    imported_count: int = 0
    errors: List[str] = Field(default_factory=list)
