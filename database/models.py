"""
SQLAlchemy models for the question store
Unit → Topic hierarchy plus the Question table

Questions carry unit/topic as plain strings (the import formats do too);
the Unit/Topic tables are reference data used for browsing and filtering.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from database.database import Base


class BloomLevel(str, enum.Enum):
    """Bloom's taxonomy levels, in cognitive order"""
    REMEMBER = "Remember"
    UNDERSTAND = "Understand"
    APPLY = "Apply"
    ANALYZE = "Analyze"
    EVALUATE = "Evaluate"
    CREATE = "Create"

    @property
    def number(self) -> int:
        return list(BloomLevel).index(self) + 1

    @classmethod
    def parse(cls, value) -> "BloomLevel":
        """
        Accept 'Apply', 'apply', 'Apply (Level 3)', '3' or 'BT3'.
        Raises ValueError for anything outside the closed set.
        """
        if isinstance(value, cls):
            return value
        text = str(value or "").strip()
        if not text:
            raise ValueError("Bloom's level is required")
        name = text.split("(")[0].strip().lower()
        for level in cls:
            if level.value.lower() == name:
                return level
        digits = name[2:] if name.startswith("bt") else name
        if digits.isdigit() and 1 <= int(digits) <= len(cls):
            return list(cls)[int(digits) - 1]
        raise ValueError(f"Unknown Bloom's level: {text!r}")


ANSWER_LABELS = ("A", "B", "C", "D")


# ==========================================
# STRUCTURE: UNIT → TOPIC
# ==========================================

class Unit(Base):
    """
    Top-level classification unit (e.g., 'Unit 1')
    Owns an ordered list of Topics
    """
    __tablename__ = "units"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    topics = relationship(
        "Topic",
        back_populates="unit",
        cascade="all, delete-orphan",
        order_by="[Topic.order, Topic.id]",
    )

    def __repr__(self):
        return f"<Unit(id={self.id}, name='{self.name}')>"


class Topic(Base):
    """
    Topic within a unit (e.g., 'Sorting Algorithms')
    Belongs to exactly one Unit
    """
    __tablename__ = "topics"
    __table_args__ = (UniqueConstraint("unit_id", "name", name="uq_topic_unit_name"),)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    order = Column(Integer, default=0, nullable=False)  # Display order within unit
    unit_id = Column(Integer, ForeignKey("units.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    unit = relationship("Unit", back_populates="topics")

    def __repr__(self):
        return f"<Topic(id={self.id}, name='{self.name}', unit_id={self.unit_id})>"


# ==========================================
# QUESTIONS
# ==========================================

class Question(Base):
    """
    One multiple-choice question with exactly four options.
    correct_answer is the option label (A, B, C, D).
    """
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    question = Column(Text, nullable=False)
    option_a = Column(Text, nullable=False)
    option_b = Column(Text, nullable=False)
    option_c = Column(Text, nullable=False)
    option_d = Column(Text, nullable=False)
    correct_answer = Column(String(1), nullable=False)
    blooms_level = Column(String(20), nullable=False, index=True)  # Remember .. Create
    topic = Column(String(255), nullable=False, index=True)
    unit = Column(String(255), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Question(id={self.id}, unit='{self.unit}', topic='{self.topic}')>"
