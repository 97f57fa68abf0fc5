"""
Value objects for the selection → render pipeline.

SelectionCriteria   what to pick from the pool
ExportOptions       how to render the picked set
RenderedDocument    bytes + download metadata handed to the transfer layer
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterable


class ExportFormat(str, Enum):
    """Supported download formats (value doubles as the file extension)."""
    PDF = "pdf"
    TXT = "txt"
    MD = "md"

    @property
    def media_type(self) -> str:
        if self is ExportFormat.PDF:
            return "application/pdf"
        return "text/plain; charset=utf-8"

    @property
    def filename(self) -> str:
        return f"questions.{self.value}"

    @classmethod
    def parse(cls, value) -> "ExportFormat":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unsupported export format: {value!r}. Allowed: pdf, txt, md")


def _as_set(values: Iterable[str]) -> FrozenSet[str]:
    return frozenset(v.strip() for v in (values or []) if v and v.strip())


@dataclass(frozen=True)
class SelectionCriteria:
    """Empty sets leave that dimension unconstrained."""
    total_questions: int = 20
    units: FrozenSet[str] = field(default_factory=frozenset)
    topics: FrozenSet[str] = field(default_factory=frozenset)
    bloom_levels: FrozenSet[str] = field(default_factory=frozenset)
    randomize: bool = True

    @classmethod
    def build(cls, total_questions, units=(), topics=(), bloom_levels=(), randomize=True) -> "SelectionCriteria":
        return cls(
            total_questions=total_questions,
            units=_as_set(units),
            topics=_as_set(topics),
            bloom_levels=_as_set(bloom_levels),
            randomize=bool(randomize),
        )


@dataclass(frozen=True)
class ExportOptions:
    format: ExportFormat
    include_answers: bool = False


@dataclass(frozen=True)
class RenderedDocument:
    content: bytes
    format: ExportFormat

    @property
    def media_type(self) -> str:
        return self.format.media_type

    @property
    def filename(self) -> str:
        return self.format.filename
