"""
Section re-evaluation orchestrator.

FLOW (one request, no shared state):
1. loaded           - validate request, load sheet and target section
2. config-resolved  - academic level lookup (sheet class/subject, then the
                      question paper's) and weightage normalization
3. model-invoked    - build prompt, download sheet file, call Gemini models
4. parsed           - recover the section JSON from the model text
5. aggregated       - swap the section in, recompute totals and grade
6. persisted        - write the sheet; failure here ends the request
7. logged           - append the audit row; failure here is only reported

Two concurrent re-evaluations of the same section are not serialized: the
last sheet write wins and both append a log row.
"""

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional, Tuple

from ..config.settings import settings
from ..errors import (
    LoggingError,
    NotFoundError,
    PersistenceError,
    ReEvaluationError,
    ValidationError,
)
from ..models import (
    AcademicLevel,
    AnswerSheet,
    ReEvaluationLog,
    ReEvaluationLogDetails,
    ReEvaluationResult,
    ScoreSummary,
    Section,
)
from ..utils import to_number
from .file_fetcher import FileFetcher
from .json_extraction import parse_model_json
from .model_invoker import ModelInvoker
from .prompt_builder import build_section_prompt
from .scoring import aggregate_scores, question_marks, section_total, total_mismatch
from .weightage import resolve_grading_config

logger = logging.getLogger(__name__)

# Stored on a section whose explicit section_total disagrees with its question marks
MISMATCH_KEYS = ("section_total_mismatch", "questions_marks_total")


class ReEvaluationState(str, Enum):
    LOADED = "loaded"
    CONFIG_RESOLVED = "config-resolved"
    MODEL_INVOKED = "model-invoked"
    PARSED = "parsed"
    AGGREGATED = "aggregated"
    PERSISTED = "persisted"
    LOGGED = "logged"
    FAILED = "failed"


def validate_request(answer_sheet_id: Any, section_index: Any) -> Tuple[str, int]:
    """Check request fields before any I/O. Returns (sheet_id, section_index)."""
    if answer_sheet_id is None or section_index is None:
        raise ValidationError("answer_sheet_id and section_index are required")

    sheet_id = str(answer_sheet_id).strip()
    if not sheet_id:
        raise ValidationError("answer_sheet_id and section_index are required")

    index = to_number(section_index)
    if index is None:
        raise ValidationError("section_index must be a number")
    if not index.is_integer():
        raise ValidationError("section_index must be an integer")
    if index < 0:
        raise ValidationError("section_index is out of range")

    return sheet_id, int(index)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SectionReEvaluationService:
    """Re-scores one section of a graded answer sheet."""

    def __init__(
        self,
        store,
        invoker: Optional[ModelInvoker] = None,
        fetcher: Optional[FileFetcher] = None,
        max_re_evaluations: Optional[int] = None,
        clock: Callable[[], datetime] = _utcnow
    ):
        self.store = store
        self.invoker = invoker or ModelInvoker()
        self.fetcher = fetcher or FileFetcher()
        self.max_re_evaluations = (
            settings.MAX_RE_EVALUATIONS if max_re_evaluations is None else max_re_evaluations
        )
        self.clock = clock

    async def _load_academic_level(self, sheet: AnswerSheet) -> Optional[AcademicLevel]:
        academic = await self.store.get_academic_level(sheet.class_id, sheet.subject_id)
        if academic:
            return academic

        paper = sheet.question_paper
        if (
            paper and paper.class_id and paper.subject_id
            and (paper.class_id != sheet.class_id or paper.subject_id != sheet.subject_id)
        ):
            academic = await self.store.get_academic_level(paper.class_id, paper.subject_id)
            if academic:
                logger.info(f"Using question paper academic level for sheet {sheet.id}")
        return academic

    async def _load(self, sheet_id: str, index: int) -> Tuple[AnswerSheet, Any]:
        sheet = await self.store.get_answer_sheet(sheet_id)
        if not sheet:
            raise NotFoundError("Answer sheet not found")
        if index >= len(sheet.section_wise_results) or sheet.section_wise_results[index] is None:
            raise NotFoundError("Section not found in results")

        if self.max_re_evaluations and sheet.re_evaluation_count >= self.max_re_evaluations:
            raise ValidationError(
                f"Maximum re-evaluations ({self.max_re_evaluations}) reached for this answer sheet"
            )
        return sheet, sheet.section_wise_results[index]

    async def reevaluate_section(
        self,
        answer_sheet_id: Any,
        section_index: Any,
        requested_by: Optional[str] = None
    ) -> ReEvaluationResult:
        """
        Re-grade one section and update the sheet.

        Returns:
            ReEvaluationResult with the new section, total score and grade

        Raises:
            ReEvaluationError subclasses; no sheet data changes unless the
            request reaches the persisted state
        """
        sheet_id, index = validate_request(answer_sheet_id, section_index)
        state = ReEvaluationState.LOADED

        try:
            logger.info(f"Re-evaluating section {index} of sheet {sheet_id}")
            sheet, current_section = await self._load(sheet_id, index)

            academic = await self._load_academic_level(sheet)
            config = resolve_grading_config(academic, sheet.question_paper)
            state = ReEvaluationState.CONFIG_RESOLVED
            logger.info(
                f"[{sheet_id}] {state.value}: max_marks={config.max_marks}, "
                f"weightage={config.content_weightage}/{config.language_weightage}, "
                f"strictness={config.strictness_level}"
            )

            prompt = build_section_prompt(current_section, config)
            document = await self.fetcher.fetch(sheet.file_url)
            response = await self.invoker.generate(prompt, document)
            state = ReEvaluationState.MODEL_INVOKED
            logger.info(f"[{sheet_id}] {state.value}: answered by {response.model}")

            raw_section = parse_model_json(response.text)
            for key in MISMATCH_KEYS:
                raw_section.pop(key, None)
            new_section = Section.from_raw(raw_section)
            counted = total_mismatch(new_section)
            if counted is not None:
                new_section = Section.from_raw({
                    **new_section.to_document(),
                    "section_total_mismatch": True,
                    "questions_marks_total": counted,
                })
            state = ReEvaluationState.PARSED

            updated_results = list(sheet.section_wise_results)
            updated_results[index] = new_section.to_document()
            summary = aggregate_scores(updated_results, config)
            state = ReEvaluationState.AGGREGATED
            logger.info(
                f"[{sheet_id}] {state.value}: total {summary.total}/{config.max_marks} "
                f"({summary.percentage:.1f}%) grade {summary.grade}"
            )

            graded_at = self.clock()
            try:
                await self.store.update_answer_sheet(sheet_id, {
                    "section_wise_results": updated_results,
                    "total_score": summary.total,
                    "content_score": summary.content_score,
                    "language_score": summary.language_score,
                    "grade": summary.grade,
                    "is_re_evaluated": True,
                    "re_evaluation_count": sheet.re_evaluation_count + 1,
                    "graded_at": graded_at,
                })
            except PersistenceError:
                raise
            except Exception as e:
                raise PersistenceError(f"Failed to update answer sheet: {e}") from e
            state = ReEvaluationState.PERSISTED

        except ReEvaluationError as e:
            logger.error(f"[{sheet_id}] {ReEvaluationState.FAILED.value} after {state.value}: {e.message}")
            raise

        log_written = await self._write_log(
            lambda: self._build_log(
                sheet, index, current_section, new_section, summary,
                requested_by, graded_at
            )
        )
        if log_written:
            state = ReEvaluationState.LOGGED

        logger.info(f"Section re-evaluated ({state.value}). New total: {summary.total} Grade: {summary.grade}")

        return ReEvaluationResult(
            section=new_section,
            total_score=summary.total,
            content_score=summary.content_score,
            language_score=summary.language_score,
            grade=summary.grade,
            model=response.model,
            log_written=log_written,
        )

    def _build_log(
        self,
        sheet: AnswerSheet,
        index: int,
        current_section: Any,
        new_section: Section,
        summary: ScoreSummary,
        requested_by: Optional[str],
        created_at: datetime
    ) -> ReEvaluationLog:
        return ReEvaluationLog(
            id=str(uuid.uuid4()),
            answer_sheet_id=sheet.id,
            evaluation_type="section",
            section_index=index,
            section_name=new_section.section_name or Section.from_raw(current_section).section_name,
            previous_total_score=sheet.total_score,
            previous_section_score=section_total(current_section),
            new_total_score=summary.total,
            new_section_score=section_total(new_section),
            previous_grade=sheet.grade,
            new_grade=summary.grade,
            triggered_by=requested_by or sheet.graded_by,
            details=ReEvaluationLogDetails(
                previous_question_marks=question_marks(current_section),
                new_question_marks=question_marks(new_section),
            ),
            created_at=created_at,
        )

    async def _write_log(self, build_log: Callable[[], ReEvaluationLog]) -> bool:
        """Build and insert the audit row. The score update already stands, so failures are only reported."""
        try:
            await self.store.insert_log(build_log())
            return True
        except Exception as e:
            error = LoggingError(f"Failed to insert section re-evaluation log: {e}")
            logger.error(error.message, exc_info=True)
            return False
