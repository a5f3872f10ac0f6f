"""
Weightage normalization - resolves the grading configuration for a sheet.

Layered sources, first usable value wins:
    weightage:  academic level -> 60/40 defaults
    max marks:  academic level -> question paper total_marks -> 100
    strictness: academic level (clamped 0..100) -> 50
"""

from typing import Optional, Tuple

from ..models import AcademicLevel, GradingConfig, QuestionPaper
from ..utils import to_number

DEFAULT_CONTENT_WEIGHTAGE = 60.0
DEFAULT_LANGUAGE_WEIGHTAGE = 40.0
DEFAULT_MAX_MARKS = 100.0
DEFAULT_STRICTNESS = 50.0


def normalize_weightage(content=None, language=None) -> Tuple[float, float]:
    """
    Resolve a (content, language) percentage pair that sums to exactly 100.

    Args:
        content: Raw content weightage (any type, may be missing)
        language: Raw language weightage (any type, may be missing)

    Returns:
        (content_weightage, language_weightage)
    """
    content_weightage = to_number(content)
    language_weightage = to_number(language)

    if content_weightage is None and language_weightage is None:
        return DEFAULT_CONTENT_WEIGHTAGE, DEFAULT_LANGUAGE_WEIGHTAGE
    if content_weightage is None:
        content_weightage = max(0.0, 100 - language_weightage)
    elif language_weightage is None:
        language_weightage = max(0.0, 100 - content_weightage)

    weightage_sum = content_weightage + language_weightage
    if weightage_sum <= 0:
        return DEFAULT_CONTENT_WEIGHTAGE, DEFAULT_LANGUAGE_WEIGHTAGE

    if weightage_sum != 100:
        content_weightage = round(content_weightage / weightage_sum * 100, 2)
        language_weightage = round(100 - content_weightage, 2)

    # A single negative input can survive the rescale; pin the pair into range
    if content_weightage < 0 or language_weightage < 0:
        content_weightage = min(100.0, max(0.0, content_weightage))
        language_weightage = round(100 - content_weightage, 2)

    return float(content_weightage), float(language_weightage)


def resolve_max_marks(academic_max_marks=None, paper_total_marks=None) -> float:
    for candidate in (academic_max_marks, paper_total_marks):
        value = to_number(candidate)
        if value is not None and value > 0:
            return value
    return DEFAULT_MAX_MARKS


def resolve_strictness(strictness_level=None) -> float:
    value = to_number(strictness_level)
    if value is None:
        return DEFAULT_STRICTNESS
    return min(100.0, max(0.0, value))


def resolve_grading_config(
    academic: Optional[AcademicLevel] = None,
    question_paper: Optional[QuestionPaper] = None
) -> GradingConfig:
    """Build the normalized GradingConfig. Pure; both inputs may be None."""
    weightage = academic.weightage if academic else None
    content_weightage, language_weightage = normalize_weightage(
        weightage.content if weightage else None,
        weightage.language if weightage else None
    )

    return GradingConfig(
        max_marks=resolve_max_marks(
            academic.max_marks if academic else None,
            question_paper.total_marks if question_paper else None
        ),
        content_weightage=content_weightage,
        language_weightage=language_weightage,
        strictness_level=resolve_strictness(academic.strictness_level if academic else None),
        grading_instructions=(academic.grading_instructions or "") if academic else ""
    )
