"""Shared fixtures: in-memory store, fake fetcher and fake model invoker."""

import copy
import json
from datetime import datetime, timezone

import pytest

from sheetgrade.models import AcademicLevel, AnswerSheet, QuestionPaper
from sheetgrade.services.model_invoker import InlineDocument, ModelResponse


class InMemoryStore:
    """Duck-typed stand-in for MongoReEvaluationStore."""

    def __init__(self, sheets=None, papers=None, academic_levels=None):
        self.sheets = {s["id"]: copy.deepcopy(s) for s in (sheets or [])}
        self.papers = {p["id"]: copy.deepcopy(p) for p in (papers or [])}
        self.academic_levels = list(academic_levels or [])
        self.logs = []
        self.academic_lookups = []
        self.fail_update = False
        self.fail_log = False

    async def get_answer_sheet(self, answer_sheet_id):
        doc = copy.deepcopy(self.sheets.get(answer_sheet_id))
        if not doc:
            return None
        paper = self.papers.get(doc.get("question_paper_id"))
        if paper:
            doc["question_paper"] = QuestionPaper.model_validate(paper)
        return AnswerSheet.model_validate(doc)

    async def get_academic_level(self, class_id, subject_id):
        self.academic_lookups.append((class_id, subject_id))
        for level in self.academic_levels:
            if level["class_id"] == class_id and level["subject_id"] == subject_id:
                return AcademicLevel.model_validate(level)
        return None

    async def update_answer_sheet(self, answer_sheet_id, fields):
        if self.fail_update:
            raise RuntimeError("connection reset by peer")
        self.sheets[answer_sheet_id].update(copy.deepcopy(fields))

    async def insert_log(self, log):
        if self.fail_log:
            raise RuntimeError("insert rejected")
        self.logs.append(log.model_dump())

    async def list_logs(self, evaluation_type=None, answer_sheet_id=None, limit=200):
        rows = list(self.logs)
        if evaluation_type in ("section", "full"):
            rows = [r for r in rows if r["evaluation_type"] == evaluation_type]
        if answer_sheet_id:
            rows = [r for r in rows if r["answer_sheet_id"] == answer_sheet_id]
        rows.sort(key=lambda r: r["created_at"], reverse=True)
        return [{**r, "created_at": r["created_at"].isoformat()} for r in rows[:limit]]


class FakeFetcher:
    def __init__(self):
        self.urls = []

    async def fetch(self, url):
        self.urls.append(url)
        return InlineDocument.from_url(b"\xff\xd8fake-jpeg", url or "")


class FakeInvoker:
    """Replays queued responses; an Exception in the queue is raised instead."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts = []

    async def generate(self, prompt, document):
        self.prompts.append(prompt)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return ModelResponse(text=response, model="gemini-2.0-flash")


def make_question(number, marks, max_marks=10, is_extra=False, **extra):
    question = {
        "question_number": number,
        "question_text": f"Question {number}",
        "question_type": "Short",
        "student_answer": "answer",
        "correct_answer": "answer",
        "is_correct": marks == max_marks,
        "marks_obtained": marks,
        "max_marks": max_marks,
        "feedback": "ok",
        "is_extra": is_extra,
    }
    question.update(extra)
    return question


def make_section(label, marks, section_max=None, **extra):
    questions = [make_question(i + 1, m) for i, m in enumerate(marks)]
    section = {
        "section": label,
        "section_name": f"Section {label}",
        "section_type": "Short",
        "attempt_required": None,
        "questions": questions,
        "section_total": sum(marks),
        "section_max": section_max if section_max is not None else 10 * len(marks),
    }
    section.update(extra)
    return section


@pytest.fixture
def graded_sheet():
    """Sheet scored 70/100: section A 55, section B 15."""
    return {
        "id": "sheet-1",
        "graded_by": "grader-1",
        "class_id": "class-1",
        "subject_id": "subject-1",
        "question_paper_id": "paper-1",
        "file_url": "https://files.example.com/answer-sheets/sheet-1.jpg?token=abc",
        "section_wise_results": [
            make_section("A", [10, 10, 10, 10, 10, 5], section_max=60),
            make_section("B", [10, 5, 0], section_max=30, attempt_required=2),
        ],
        "total_score": 70,
        "content_score": 42,
        "language_score": 28,
        "grade": "B+",
        "is_re_evaluated": False,
        "re_evaluation_count": 0,
        "graded_at": datetime(2026, 1, 5, tzinfo=timezone.utc),
    }


@pytest.fixture
def question_paper():
    return {
        "id": "paper-1",
        "title": "Mid-term English",
        "total_marks": 100,
        "file_url": "https://files.example.com/papers/paper-1.pdf",
        "class_id": "class-1",
        "subject_id": "subject-1",
    }


@pytest.fixture
def academic_level():
    return {
        "class_id": "class-1",
        "subject_id": "subject-1",
        "weightage": {"content": 60, "language": 40},
        "max_marks": 100,
        "strictness_level": 50,
        "grading_instructions": "Accept British spellings.",
    }


@pytest.fixture
def store(graded_sheet, question_paper, academic_level):
    return InMemoryStore(
        sheets=[graded_sheet],
        papers=[question_paper],
        academic_levels=[academic_level],
    )


@pytest.fixture
def regraded_section_b():
    """Model reply for section B: [10, 7, 0 (extra)]."""
    section = {
        "section": "B",
        "section_name": "Section B",
        "section_type": "Short",
        "attempt_required": 2,
        "questions_graded": 2,
        "questions": [
            make_question(1, 10),
            make_question(2, 7),
            make_question(3, 0, is_extra=True, feedback="Extra question - not graded"),
        ],
        "section_total": 17,
        "section_max": 30,
    }
    return "```json\n" + json.dumps(section, indent=2) + "\n```"
