# tests/test_importer.py
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from database import crud
from generation.errors import StoreError
from ingestion import ParseError, QuestionFileParser, import_questions
from ingestion.parser import RECORD_FIELDS, canonical_field

CSV_FILE = """question,optionA,optionB,optionC,optionD,correctAnswer,bloomsLevel,topic,unit
What is 2+2?,3,4,5,6,B,Remember,Arithmetic,Unit 1
"Which is a prime, 9 or 7?",9,7,both,neither,b,Apply (Level 3),Primes,Unit 1
Broken row,1,2,3,4,E,Remember,Arithmetic,Unit 1
"""

SQL_FILE = """-- dump
INSERT INTO units (name) VALUES ('Unit 9');
INSERT INTO questions (question, option_a, option_b, option_c, option_d, correct_answer, blooms_level, topic, unit) VALUES
  ('It''s raining. What do you take?', 'Umbrella', 'Sunglasses', 'Fan', 'Nothing', 'A', 'Understand', 'Weather', 'Unit 2'),
  ('Boiling point of water (C)?', '90', '100', '110', '120', 'B', 'Remember', 'Physics', 'Unit 2');
INSERT INTO questions (question, option_a) VALUES ('Too short', 'x', 'extra');
"""

MD_FILE = """# Question Bank

## Question 1
What does CPU stand for?

### Options
A) Central Processing Unit
B) Computer Personal Unit
C) Central Program Utility
D) Core Processing Unit

**Answer:** A
**Bloom's Level:** Remember
**Topic:** Hardware
**Unit:** Unit 3

## Question 2
Which of these is an output device?
- A) Keyboard
- B) Mouse
- C) Monitor
- D) Scanner
Answer: C
Bloom: Understand
Topic: Hardware
Unit: Unit 3
"""

TXT_FILE = """Question: What is the chemical symbol for gold?
A) Ag
B) Au
C) Gd
D) Go
Answer: B
Bloom: Remember
Topic: Chemistry
Unit: Unit 4

Question: Which gas do plants absorb?
A) Oxygen
B) Nitrogen
C) Carbon dioxide
D) Helium
Answer: C
"""


class TestParser:
    def test_csv_fields(self):
        records = QuestionFileParser.parse(CSV_FILE, "csv")
        assert len(records) == 3
        assert records[0].fields["option_b"] == "4"
        assert records[1].fields["question"] == "Which is a prime, 9 or 7?"

    def test_csv_requires_question_column(self):
        with pytest.raises(ParseError):
            QuestionFileParser.parse("foo,bar\n1,2\n", "csv")

    def test_sql_rows_and_escapes(self):
        records = QuestionFileParser.parse(SQL_FILE, "sql")
        assert len(records) == 3
        assert records[0].fields["question"] == "It's raining. What do you take?"
        assert records[1].fields["correct_answer"] == "B"
        assert "_error" in records[2].fields

    def test_sql_without_inserts(self):
        with pytest.raises(ParseError):
            QuestionFileParser.parse("SELECT 1;", "sql")

    def test_md_blocks(self):
        records = QuestionFileParser.parse(MD_FILE, "md")
        assert len(records) == 2
        first, second = records
        assert first.fields["question"] == "What does CPU stand for?"
        assert first.fields["option_a"] == "Central Processing Unit"
        assert first.fields["correct_answer"] == "A"
        assert first.fields["blooms_level"] == "Remember"
        assert second.fields["option_c"] == "Monitor"
        assert second.fields["unit"] == "Unit 3"

    def test_txt_blocks(self):
        records = QuestionFileParser.parse(TXT_FILE, "txt")
        assert [r.fields["question"] for r in records] == [
            "What is the chemical symbol for gold?",
            "Which gas do plants absorb?",
        ]
        assert records[1].fields["correct_answer"] == "C"
        assert "unit" not in records[1].fields

    @pytest.mark.parametrize("name,expected", [
        ("optionA", "option_a"),
        ("Correct Answer", "correct_answer"),
        ("blooms_level", "blooms_level"),
        ("id", None),
        ("created_at", None),
    ])
    def test_canonical_field(self, name, expected):
        assert canonical_field(name) == expected
        assert expected is None or expected in RECORD_FIELDS

    def test_unknown_format(self):
        with pytest.raises(ParseError):
            QuestionFileParser.parse("x", "xlsx")


class TestImportQuestions:
    def test_csv_import_skips_invalid_rows(self, db):
        result = import_questions(db, CSV_FILE.encode("utf-8"), "csv")
        assert result.success is True
        assert result.imported_count == 2
        assert result.message == "Successfully imported 2 questions"
        assert len(result.errors) == 1
        assert result.errors[0].startswith("csv row 4:")
        assert crud.count_questions(db) == 2
        assert crud.count_questions(db, bloom_levels=["Apply"]) == 1

    def test_sql_import(self, db):
        result = import_questions(db, SQL_FILE.encode("utf-8"), "sql")
        assert result.imported_count == 2
        assert result.errors == ["sql statement 3 row 1: expected 2 values, got 3"]
        assert crud.count_questions(db, units=["Unit 2"]) == 2

    def test_md_import(self, db):
        result = import_questions(db, MD_FILE.encode("utf-8"), "md")
        assert result.success is True
        assert result.imported_count == 2
        assert crud.get_unit_by_name(db, "Unit 3") is not None

    def test_txt_import_with_defaults(self, db):
        result = import_questions(
            db, TXT_FILE.encode("utf-8"), "txt",
            defaults={"unit": "Unit 5", "topic": "Biology", "blooms_level": "Understand"},
        )
        assert result.imported_count == 2
        assert crud.count_questions(db, units=["Unit 4"]) == 1
        assert crud.count_questions(db, units=["Unit 5"], topics=["Biology"]) == 1

    def test_txt_import_missing_fields_reported(self, db):
        result = import_questions(db, TXT_FILE.encode("utf-8"), "txt")
        assert result.imported_count == 1
        assert len(result.errors) == 1
        assert result.errors[0].startswith("txt line 11:")

    def test_utf8_bom_accepted(self, db):
        result = import_questions(db, b"\xef\xbb\xbf" + CSV_FILE.encode("utf-8"), "csv")
        assert result.imported_count == 2

    def test_undecodable_file(self, db):
        result = import_questions(db, b"\xff\xfe\x00bad", "csv")
        assert result.success is False
        assert result.imported_count == 0
        assert crud.count_questions(db) == 0

    def test_no_valid_records(self, db):
        result = import_questions(db, b"question,optionA\nonly one option,x\n", "csv")
        assert result.success is False
        assert result.message == "No valid questions found in file"
        assert crud.count_questions(db) == 0

    def test_store_failure(self, db):
        with patch.object(crud, "bulk_create_questions", side_effect=OperationalError("INSERT", {}, Exception("locked"))):
            with pytest.raises(StoreError):
                import_questions(db, CSV_FILE.encode("utf-8"), "csv")


class TestImportAPI:
    def test_upload_csv(self, client: TestClient):
        response = client.post(
            "/api/import",
            files={"file": ("bank.csv", CSV_FILE.encode("utf-8"), "text/csv")},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["importedCount"] == 2
        assert len(data["errors"]) == 1
        assert client.get("/api/questions").json()["total"] == 2

    def test_explicit_format_wins(self, client: TestClient):
        response = client.post(
            "/api/import",
            files={"file": ("upload.dat", TXT_FILE.encode("utf-8"), "text/plain")},
            data={"format": "txt", "unit": "Unit 5", "topic": "Biology", "bloomsLevel": "Remember"},
        )
        assert response.status_code == 200
        assert response.json()["importedCount"] == 2

    def test_unsupported_extension(self, client: TestClient):
        response = client.post(
            "/api/import",
            files={"file": ("bank.xlsx", b"data", "application/octet-stream")},
        )
        assert response.status_code == 400
        assert "Unsupported file type" in response.json()["error"]

    def test_upload_too_large(self, client: TestClient, monkeypatch):
        from routers import imports
        monkeypatch.setattr(imports, "MAX_UPLOAD_SIZE", 10)
        response = client.post(
            "/api/import",
            files={"file": ("bank.csv", CSV_FILE.encode("utf-8"), "text/csv")},
        )
        assert response.status_code == 413
        assert client.get("/api/questions").json()["total"] == 0
