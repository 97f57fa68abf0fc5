"""
Question File Parser
Extracts raw question records from CSV, SQL, Markdown and plain-text uploads

CONSTRAINTS:
- Deterministic: Same file → same records, in file order
- No validation beyond shape: field checks happen in the importer
- No DB writes: Pure parsing function
"""

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from typing import List, Dict, Optional

log = logging.getLogger(__name__)

# Canonical record keys (match QuestionCreate field names)
RECORD_FIELDS = (
    "question", "option_a", "option_b", "option_c", "option_d",
    "correct_answer", "blooms_level", "topic", "unit",
)

# Column/label spellings → canonical key; lookups use _squash()
_FIELD_ALIASES = {
    "question": "question",
    "questiontext": "question",
    "optiona": "option_a",
    "optionb": "option_b",
    "optionc": "option_c",
    "optiond": "option_d",
    "a": "option_a",
    "b": "option_b",
    "c": "option_c",
    "d": "option_d",
    "correctanswer": "correct_answer",
    "answer": "correct_answer",
    "correct": "correct_answer",
    "bloomslevel": "blooms_level",
    "bloomlevel": "blooms_level",
    "blooms": "blooms_level",
    "bloom": "blooms_level",
    "topic": "topic",
    "unit": "unit",
}


def _squash(name: str) -> str:
    return re.sub(r"[^a-z]", "", (name or "").lower())


def canonical_field(name: str) -> Optional[str]:
    field_name = _FIELD_ALIASES.get(_squash(name))
    return field_name if field_name in RECORD_FIELDS else None


@dataclass
class ParsedRecord:
    """One question as found in the file, before validation"""
    location: str
    fields: Dict[str, str] = field(default_factory=dict)


class ParseError(ValueError):
    """The file as a whole could not be parsed"""


# ─── Line-oriented formats (md / txt) ──────────────────────────────────────────

_MD_START = re.compile(r"^##(?!#)\s*(?:question\b\s*\d*\s*[:.)\-]?)?\s*(.*)$", re.IGNORECASE)
_TXT_START = re.compile(r"^(?:question|q)\s*\d*\s*[:.)]\s*(.*)$", re.IGNORECASE)
_OPTION_LINE = re.compile(r"^(?:[-*]\s*)?\(?([A-Da-d])[).:]\s*(.*)$")
_FIELD_NAMES = r"correct answer|answer|bloom'?s level|bloom level|bloom'?s|bloom|topic|unit"
_FIELD_INLINE = re.compile(rf"^[*_]*({_FIELD_NAMES})[*_]*\s*:\s*[*_]*\s*(.*?)\s*[*_]*$", re.IGNORECASE)
_FIELD_HEADING = re.compile(rf"^#{{2,}}\s*({_FIELD_NAMES})\s*:?\s*$", re.IGNORECASE)
_OPTIONS_HEADING = re.compile(r"^#{2,}\s*options\s*:?\s*$", re.IGNORECASE)


def _parse_line_records(text: str, start: re.Pattern, label: str) -> List[ParsedRecord]:
    """
    Walk the file line by line. A start line opens a record; question text runs
    until the first option line; option and field lines fill the record.
    A field heading (### Answer) takes its value from the next non-empty line.
    """
    records: List[ParsedRecord] = []
    current: Optional[ParsedRecord] = None
    question_lines: List[str] = []
    pending_field: Optional[str] = None

    def _close():
        if current is not None and question_lines and "question" not in current.fields:
            current.fields["question"] = " ".join(question_lines).strip()

    for line_no, raw in enumerate(text.splitlines(), 1):
        line = raw.strip()
        if not line:
            continue

        opened = start.match(line)
        if opened and not _FIELD_HEADING.match(line) and not _OPTIONS_HEADING.match(line):
            _close()
            current = ParsedRecord(location=f"{label} line {line_no}")
            records.append(current)
            question_lines = [opened.group(1).strip()] if opened.group(1).strip() else []
            pending_field = None
            continue
        if current is None:
            continue

        if pending_field:
            current.fields[pending_field] = line.strip("*_ ")
            pending_field = None
            continue

        heading = _FIELD_HEADING.match(line)
        if heading:
            pending_field = canonical_field(heading.group(1))
            continue
        if _OPTIONS_HEADING.match(line):
            _close()
            continue

        inline = _FIELD_INLINE.match(line)
        if inline:
            current.fields[canonical_field(inline.group(1))] = inline.group(2)
            continue

        option = _OPTION_LINE.match(line)
        if option:
            _close()
            current.fields[canonical_field(option.group(1))] = option.group(2).strip()
            continue

        if not any(k.startswith("option_") for k in current.fields):
            question_lines.append(line)

    _close()
    return records


# ─── SQL dumps ─────────────────────────────────────────────────────────────────

_INSERT = re.compile(
    r"INSERT\s+INTO\s+[`\"\[]?(\w+)[`\"\]]?\s*\(([^)]*)\)\s*VALUES\s*(.*?);",
    re.IGNORECASE | re.DOTALL,
)


def _split_sql_tuples(values: str) -> List[List[Optional[str]]]:
    """
    Split "(1, 'a', 'it''s'), (2, NULL, 'b')" into rows of raw values.
    Strings are single-quoted with '' escapes; bare tokens are kept as text; NULL → None.
    """
    rows: List[List[Optional[str]]] = []
    row: Optional[List[Optional[str]]] = None
    token: List[str] = []
    quoted = False
    in_string = False
    i = 0

    def _flush():
        nonlocal token, quoted
        raw = "".join(token)
        if quoted:
            row.append(raw)
        else:
            bare = raw.strip()
            if bare:
                row.append(None if bare.upper() == "NULL" else bare)
        token, quoted = [], False

    while i < len(values):
        ch = values[i]
        if in_string:
            if ch == "'" and i + 1 < len(values) and values[i + 1] == "'":
                token.append("'")
                i += 1
            elif ch == "'":
                in_string = False
            else:
                token.append(ch)
        elif ch == "'":
            in_string, quoted = True, True
        elif ch == "(" and row is None:
            row = []
        elif ch == ")" and row is not None:
            _flush()
            rows.append(row)
            row = None
        elif ch == "," and row is not None:
            _flush()
        elif row is not None:
            token.append(ch)
        i += 1

    if in_string or row is not None:
        raise ParseError("Unterminated VALUES list")
    return rows


# ─── Parser ────────────────────────────────────────────────────────────────────

class QuestionFileParser:
    """
    Deterministic parser for question import files
    """

    SUPPORTED_FORMATS = ("csv", "sql", "md", "txt")

    @staticmethod
    def parse(content: str, fmt: str) -> List[ParsedRecord]:
        """
        Parse decoded file content into raw records

        Args:
            content: File text
            fmt: One of csv, sql, md, txt

        Returns:
            ParsedRecord list in file order

        Raises:
            ParseError: If the format is unsupported or the file is malformed
        """
        fmt = (fmt or "").lower().lstrip(".")
        if fmt == "csv":
            records = QuestionFileParser._parse_csv(content)
        elif fmt == "sql":
            records = QuestionFileParser._parse_sql(content)
        elif fmt == "md":
            records = _parse_line_records(content, _MD_START, "md")
        elif fmt == "txt":
            records = _parse_line_records(content, _TXT_START, "txt")
        else:
            raise ParseError(f"Unsupported import format: {fmt!r}. Allowed: {', '.join(QuestionFileParser.SUPPORTED_FORMATS)}")

        log.info("[IMPORT] parsed %d record(s) from %s", len(records), fmt)
        return records

    @staticmethod
    def _parse_csv(content: str) -> List[ParsedRecord]:
        reader = csv.DictReader(io.StringIO(content))
        if not reader.fieldnames:
            raise ParseError("CSV file has no header row")
        columns = {name: canonical_field(name) for name in reader.fieldnames}
        if "question" not in columns.values():
            raise ParseError("CSV header must include a 'question' column")

        records = []
        try:
            for row in reader:
                fields = {
                    columns[name]: (value or "").strip()
                    for name, value in row.items()
                    if name is not None and columns.get(name)
                }
                if not any(fields.values()):
                    continue
                records.append(ParsedRecord(location=f"csv row {reader.line_num}", fields=fields))
        except csv.Error as e:
            raise ParseError(f"CSV parse error near line {reader.line_num}: {e}")
        return records

    @staticmethod
    def _parse_sql(content: str) -> List[ParsedRecord]:
        records = []
        statements = list(_INSERT.finditer(content))
        if not statements:
            raise ParseError("No INSERT INTO statements found")

        for stmt_no, match in enumerate(statements, 1):
            table, column_list, values = match.groups()
            if table.lower() != "questions":
                log.info("[IMPORT] skipping INSERT into table %s", table)
                continue
            columns = [canonical_field(c.strip(" `\"[]")) for c in column_list.split(",")]
            for row_no, row in enumerate(_split_sql_tuples(values), 1):
                location = f"sql statement {stmt_no} row {row_no}"
                if len(row) != len(columns):
                    records.append(ParsedRecord(location=location, fields={"_error": f"expected {len(columns)} values, got {len(row)}"}))
                    continue
                fields = {col: value for col, value in zip(columns, row) if col and value is not None}
                records.append(ParsedRecord(location=location, fields=fields))
        return records
