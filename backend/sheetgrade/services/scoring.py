"""
Scoring service - section totals, sheet totals and grade banding.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from ..models import GradingConfig, ScoreSummary, Section

logger = logging.getLogger(__name__)

# Lower bound (inclusive) of each band, highest first
GRADE_BANDS: List[Tuple[float, str]] = [
    (90, "A+"),
    (80, "A"),
    (70, "B+"),
    (60, "B"),
    (50, "C+"),
    (40, "C"),
    (33, "D"),
]
FAILING_GRADE = "F"


def calculate_grade(percentage: float) -> str:
    """Map a percentage score to a letter grade."""
    for threshold, grade in GRADE_BANDS:
        if percentage >= threshold:
            return grade
    return FAILING_GRADE


def _cap(value: float, ceiling) -> float:
    if ceiling is not None and ceiling >= 0 and value > ceiling:
        return ceiling
    return value


def questions_total(section: Section) -> float:
    """Sum marks_obtained over every question not flagged is_extra."""
    return sum(q.marks_obtained for q in section.questions if not q.is_extra)


def total_mismatch(section) -> Optional[float]:
    """Question marks sum when it disagrees with an explicit section_total, else None."""
    section = Section.from_raw(section)
    if section.section_total is None or not section.questions:
        return None
    counted = questions_total(section)
    if abs(counted - section.section_total) > 1e-6:
        return counted
    return None


def section_total(section) -> float:
    """
    Resolve a section's score.

    An explicit numeric section_total wins; otherwise the non-extra
    question marks are summed. Either way the result never exceeds
    section_max when one is given.
    """
    section = Section.from_raw(section)
    if section.section_total is None:
        return _cap(questions_total(section), section.section_max)

    counted = total_mismatch(section)
    if counted is not None:
        logger.warning(
            f"Section {section.section!r}: section_total {section.section_total} "
            f"differs from question marks sum {counted}; keeping section_total"
        )
    return _cap(section.section_total, section.section_max)


def aggregate_scores(sections: Sequence, config: GradingConfig) -> ScoreSummary:
    """
    Recompute sheet totals after a section has been replaced.

    Args:
        sections: Every section of the sheet, in order
        config: Normalized grading configuration

    Returns:
        ScoreSummary with the clamped total, content/language split,
        percentage and grade
    """
    raw_total = sum(section_total(s) for s in sections)
    total = min(max(raw_total, 0.0), config.max_marks)
    if raw_total != total:
        logger.info(f"Clamped raw total {raw_total} into [0, {config.max_marks}]")

    percentage = total / config.max_marks * 100 if config.max_marks > 0 else 0.0

    return ScoreSummary(
        total=total,
        content_score=total * config.content_weightage / 100,
        language_score=total * config.language_weightage / 100,
        percentage=percentage,
        grade=calculate_grade(percentage)
    )


def question_marks(section) -> List[dict]:
    """(question_number, marks_obtained) pairs for audit logging."""
    return [
        {"question_number": q.question_number, "marks_obtained": q.marks_obtained}
        for q in Section.from_raw(section).questions
    ]
