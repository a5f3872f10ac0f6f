"""
Prompt builder - section re-evaluation instructions for the grading model.
"""

import json
from typing import Any, Dict, Union

from ..models import GradingConfig, Section

EXTRA_QUESTION_FEEDBACK = "Extra question - not graded"

STRICTNESS_DESCRIPTIONS = {
    "lenient": "lenient (give benefit of doubt, accept partially correct answers generously)",
    "moderate": "moderate (balanced evaluation, fair partial marking)",
    "strict": "strict (rigorous grading, exact answers required, penalize errors)",
}

SECTION_PROMPT_TEMPLATE = """## SYSTEM ROLE
You are an expert exam grader. Re-evaluate this specific section of an answer sheet. Be fair, thorough, and provide detailed feedback.

## GRADING PARAMETERS
- Content Weightage: {content_weightage}%
- Language Weightage: {language_weightage}%
- Strictness: {strictness_text}
{special_instructions}
## SECTION TO RE-EVALUATE
{section_json}

## SPECIAL GRADING RULES

### MCQ (Multiple Choice Questions):
- Award FULL marks if the selected option matches the correct answer exactly
- Award ZERO marks if wrong option is selected

### Fill in the Blanks:
- Award FULL marks if the answer is correct or semantically equivalent
- Minor spelling errors acceptable for lenient/moderate, exact for strict

### True/False Questions:
- Award FULL marks for correct, ZERO for incorrect

### Attempt Limits:
- If "attempt_required" is set, only grade that many questions
- Extra answers get marks_obtained = 0, is_extra = true, feedback = "{extra_feedback}"

## YOUR TASK

Re-grade all questions in this section. For each question:
1. Review the student_answer carefully
2. Compare with correct_answer
3. Award marks based on rubric and question type
4. Provide detailed feedback

## RESPONSE FORMAT (JSON ONLY)

{{
  "section": {section_label},
  "section_name": {section_name},
  "section_type": {section_type},
  "attempt_required": {attempt_required},
  "questions_graded": <number>,
  "questions": [
    {{
      "question_number": "<number>",
      "question_text": "<the question>",
      "question_type": "<MCQ|FillBlank|TrueFalse|Short|Long|Numerical>",
      "student_answer": "<transcribed answer>",
      "correct_answer": "<expected answer>",
      "is_correct": <true|false>,
      "marks_obtained": <number>,
      "max_marks": <number>,
      "feedback": "<detailed explanation>",
      "is_extra": <true|false>
    }}
  ],
  "section_total": <sum of marks>,
  "section_max": <max possible>
}}

Return ONLY valid JSON."""


def strictness_description(strictness_level: float) -> str:
    if strictness_level <= 30:
        return STRICTNESS_DESCRIPTIONS["lenient"]
    if strictness_level <= 60:
        return STRICTNESS_DESCRIPTIONS["moderate"]
    return STRICTNESS_DESCRIPTIONS["strict"]


def _format_percent(value: float) -> str:
    return f"{value:g}"


def build_section_prompt(section: Union[Dict[str, Any], Section], config: GradingConfig) -> str:
    """
    Build the re-evaluation prompt for one section.

    Args:
        section: The section as stored on the answer sheet (embedded verbatim)
        config: Normalized grading configuration

    Returns:
        The full instruction text. Identical inputs give identical output.
    """
    raw_section = section.to_document() if isinstance(section, Section) else section
    parsed = Section.from_raw(raw_section)

    label = "" if parsed.section is None else str(parsed.section)
    special_instructions = ""
    if config.grading_instructions:
        special_instructions = f"- Special Instructions: {config.grading_instructions}\n"

    return SECTION_PROMPT_TEMPLATE.format(
        content_weightage=_format_percent(config.content_weightage),
        language_weightage=_format_percent(config.language_weightage),
        strictness_text=strictness_description(config.strictness_level),
        special_instructions=special_instructions,
        section_json=json.dumps(raw_section, indent=2, ensure_ascii=False, default=str),
        extra_feedback=EXTRA_QUESTION_FEEDBACK,
        section_label=json.dumps(label),
        section_name=json.dumps(parsed.section_name or f"Section {label}".strip()),
        section_type=json.dumps(parsed.section_type or "Mixed"),
        attempt_required=parsed.attempt_required if parsed.attempt_required is not None else "null",
    )
