"""Database and API models using Pydantic for validation."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as ShapeError

from ..errors import ParseError
from ..utils import to_number


QUESTION_TYPES = ("MCQ", "FillBlank", "TrueFalse", "Short", "Long", "Numerical")


def _optional_int(value: Any) -> Optional[int]:
    number = to_number(value)
    return int(number) if number is not None else None


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _is_true(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True


# ============ QUESTION ============
class Question(BaseModel):
    """One graded question as returned by the model. Unknown keys are kept."""
    model_config = ConfigDict(extra="allow")

    question_number: Optional[Union[int, float, str]] = None
    question_text: Optional[str] = None
    question_type: Optional[str] = None  # MCQ, FillBlank, TrueFalse, Short, Long, Numerical
    student_answer: Optional[Any] = None
    correct_answer: Optional[Any] = None
    is_correct: Optional[bool] = None
    marks_obtained: float = 0
    max_marks: Optional[float] = None
    feedback: Optional[str] = None
    is_extra: bool = False

    @field_validator("marks_obtained", mode="before")
    @classmethod
    def _coerce_marks(cls, value):
        return to_number(value) or 0.0

    @field_validator("max_marks", mode="before")
    @classmethod
    def _coerce_max_marks(cls, value):
        return to_number(value)

    @field_validator("is_extra", mode="before")
    @classmethod
    def _coerce_is_extra(cls, value):
        return _is_true(value)

    @field_validator("is_correct", mode="before")
    @classmethod
    def _coerce_is_correct(cls, value):
        if value is None or isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        return None

    @field_validator("question_text", "question_type", "feedback", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        return None if value is None else str(value)


# ============ SECTION ============
class Section(BaseModel):
    """A group of questions within an answer sheet's section_wise_results."""
    model_config = ConfigDict(extra="allow")

    section: Optional[Union[int, str]] = None
    section_name: Optional[str] = None
    section_type: Optional[str] = None
    attempt_required: Optional[int] = None
    questions_graded: Optional[int] = None
    questions: List[Question] = []
    section_total: Optional[float] = None
    section_max: Optional[float] = None

    @field_validator("attempt_required", "questions_graded", mode="before")
    @classmethod
    def _coerce_counts(cls, value):
        return _optional_int(value)

    @field_validator("section_total", mode="before")
    @classmethod
    def _coerce_section_total(cls, value):
        # Only a real number counts as an explicit total
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return to_number(value)

    @field_validator("section_max", mode="before")
    @classmethod
    def _coerce_section_max(cls, value):
        return to_number(value)

    @field_validator("questions", mode="before")
    @classmethod
    def _coerce_questions(cls, value):
        if not isinstance(value, list):
            return []
        return [q for q in value if isinstance(q, dict)]

    @field_validator("section_name", "section_type", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        return None if value is None else str(value)

    @classmethod
    def from_raw(cls, raw: Any) -> "Section":
        """Build a Section from a stored or model-produced value of any shape."""
        if isinstance(raw, Section):
            return raw
        try:
            return cls.model_validate(raw if isinstance(raw, dict) else {})
        except ShapeError as e:
            raise ParseError(f"AI response has an invalid section shape: {e.error_count()} field error(s)") from e

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


# ============ QUESTION PAPER / ACADEMIC LEVEL ============
class QuestionPaper(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    title: Optional[str] = None
    total_marks: Optional[Any] = None
    file_url: Optional[str] = None
    class_id: Optional[str] = None
    subject_id: Optional[str] = None


class Weightage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: Optional[Any] = None
    language: Optional[Any] = None


class AcademicLevel(BaseModel):
    """Per class+subject grading settings. All numeric fields are raw input."""
    model_config = ConfigDict(extra="ignore")

    class_id: Optional[str] = None
    subject_id: Optional[str] = None
    weightage: Optional[Weightage] = None
    max_marks: Optional[Any] = None
    strictness_level: Optional[Any] = None
    grading_instructions: Optional[str] = None


class GradingConfig(BaseModel):
    """Normalized grading configuration used by prompt and scoring."""
    max_marks: float
    content_weightage: float
    language_weightage: float
    strictness_level: float
    grading_instructions: str = ""


# ============ ANSWER SHEET ============
class AnswerSheet(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    graded_by: Optional[str] = None
    class_id: Optional[str] = None
    subject_id: Optional[str] = None
    question_paper_id: Optional[str] = None
    question_paper: Optional[QuestionPaper] = None
    file_url: Optional[str] = None
    section_wise_results: List[Any] = []
    total_score: Optional[float] = None
    content_score: Optional[float] = None
    language_score: Optional[float] = None
    grade: Optional[str] = None
    is_re_evaluated: bool = False
    re_evaluation_count: int = 0
    graded_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @field_validator("section_wise_results", mode="before")
    @classmethod
    def _coerce_results(cls, value):
        return value if isinstance(value, list) else []

    @field_validator("total_score", "content_score", "language_score", mode="before")
    @classmethod
    def _coerce_scores(cls, value):
        return to_number(value)

    @field_validator("re_evaluation_count", mode="before")
    @classmethod
    def _coerce_count(cls, value):
        return _optional_int(value) or 0


# ============ SCORING ============
class ScoreSummary(BaseModel):
    total: float
    content_score: float
    language_score: float
    percentage: float
    grade: str


# ============ RE-EVALUATION LOG ============
class QuestionMark(BaseModel):
    question_number: Optional[Union[int, float, str]] = None
    marks_obtained: Optional[float] = None


class ReEvaluationLogDetails(BaseModel):
    previous_question_marks: List[QuestionMark] = []
    new_question_marks: List[QuestionMark] = []


class ReEvaluationLog(BaseModel):
    """Audit row written once per re-evaluation. Never updated."""
    id: str
    answer_sheet_id: str
    evaluation_type: str = "section"  # section, full
    section_index: Optional[int] = None
    section_name: Optional[str] = None
    previous_total_score: Optional[float] = None
    previous_section_score: Optional[float] = None
    new_total_score: float
    new_section_score: float
    previous_grade: Optional[str] = None
    new_grade: str
    triggered_by: Optional[str] = None
    details: ReEvaluationLogDetails = Field(default_factory=ReEvaluationLogDetails)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ============ API ============
class SectionReEvaluationRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    answer_sheet_id: Optional[Any] = None
    section_index: Optional[Any] = None
    requested_by: Optional[str] = None

    @field_validator("requested_by", mode="before")
    @classmethod
    def _coerce_requested_by(cls, value):
        return _optional_text(value)


class BulkReEvaluationItem(BaseModel):
    answer_sheet_id: Optional[Any] = None
    section_index: Optional[Any] = None


class BulkReEvaluationRequest(BaseModel):
    items: List[BulkReEvaluationItem]
    requested_by: Optional[str] = None

    @field_validator("requested_by", mode="before")
    @classmethod
    def _coerce_requested_by(cls, value):
        return _optional_text(value)


class ReEvaluationResult(BaseModel):
    section: Section
    total_score: float
    content_score: float
    language_score: float
    grade: str
    model: Optional[str] = None
    log_written: bool = True


__all__ = [
    "QUESTION_TYPES",
    "Question",
    "Section",
    "QuestionPaper",
    "Weightage",
    "AcademicLevel",
    "GradingConfig",
    "AnswerSheet",
    "ScoreSummary",
    "QuestionMark",
    "ReEvaluationLogDetails",
    "ReEvaluationLog",
    "SectionReEvaluationRequest",
    "BulkReEvaluationItem",
    "BulkReEvaluationRequest",
    "ReEvaluationResult",
]
