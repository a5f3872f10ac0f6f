"""Tests for the section re-evaluation prompt."""

import json

import pytest

from sheetgrade.models import GradingConfig, Section
from sheetgrade.services.prompt_builder import (
    EXTRA_QUESTION_FEEDBACK,
    build_section_prompt,
    strictness_description,
)

from conftest import make_section


def make_config(**overrides):
    values = dict(
        max_marks=100,
        content_weightage=60,
        language_weightage=40,
        strictness_level=50,
        grading_instructions="",
    )
    values.update(overrides)
    return GradingConfig(**values)


@pytest.mark.parametrize("level,word", [
    (0, "lenient"), (30, "lenient"), (30.5, "moderate"), (60, "moderate"), (61, "strict"), (100, "strict"),
])
def test_strictness_description(level, word):
    assert strictness_description(level).startswith(word)


def test_prompt_embeds_parameters_and_section():
    section = make_section("B", [10, 5, 0], attempt_required=2)

    prompt = build_section_prompt(section, make_config(content_weightage=58.33, language_weightage=41.67))

    assert "- Content Weightage: 58.33%" in prompt
    assert "- Language Weightage: 41.67%" in prompt
    assert "- Strictness: moderate" in prompt
    assert json.dumps(section, indent=2, ensure_ascii=False) in prompt
    assert '"section": "B"' in prompt
    assert '"attempt_required": 2,' in prompt
    assert "Special Instructions" not in prompt


def test_prompt_includes_rubric_and_output_contract():
    prompt = build_section_prompt(make_section("A", [1]), make_config(strictness_level=90))

    assert "### MCQ (Multiple Choice Questions):" in prompt
    assert "### Fill in the Blanks:" in prompt
    assert "### True/False Questions:" in prompt
    assert EXTRA_QUESTION_FEEDBACK in prompt
    assert "- Strictness: strict" in prompt
    for field in (
        "questions_graded", "question_number", "question_text", "question_type",
        "student_answer", "correct_answer", "is_correct", "marks_obtained",
        "max_marks", "feedback", "is_extra", "section_total", "section_max",
    ):
        assert f'"{field}"' in prompt
    assert prompt.rstrip().endswith("Return ONLY valid JSON.")


def test_prompt_includes_special_instructions():
    prompt = build_section_prompt(make_section("A", [1]), make_config(grading_instructions="Ignore handwriting."))
    assert "- Special Instructions: Ignore handwriting." in prompt


def test_prompt_defaults_for_sparse_section():
    prompt = build_section_prompt({"section": 3, "questions": []}, make_config(strictness_level=10))

    assert '"section": "3"' in prompt
    assert '"section_name": "Section 3"' in prompt
    assert '"section_type": "Mixed"' in prompt
    assert '"attempt_required": null' in prompt
    assert "- Strictness: lenient" in prompt


def test_prompt_is_deterministic_and_accepts_models():
    section = make_section("A", [4, 6])
    config = make_config()

    assert build_section_prompt(section, config) == build_section_prompt(section, config)
    assert "Section A" in build_section_prompt(Section.from_raw(section), config)
