"""
Question Import Package

1. Parse (csv / sql / md / txt) → raw records
2. Validate (same rules as manual entry) → QuestionCreate + error list
3. Store (one bulk insert) → ImportResult
"""

from .parser import QuestionFileParser, ParsedRecord, ParseError
from .importer import import_questions, validate_records

__all__ = [
    "QuestionFileParser",
    "ParsedRecord",
    "ParseError",
    "import_questions",
    "validate_records",
]
