"""Tests for the MongoDB store against mocked motor collections."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from sheetgrade.errors import PersistenceError
from sheetgrade.models import ReEvaluationLog
from sheetgrade.store import MongoReEvaluationStore


@pytest.fixture
def collections():
    names = ["answer_sheets", "question_papers", "academic_levels", "re_evaluation_logs"]
    return {name: MagicMock(name=name) for name in names}


@pytest.fixture
def store(collections):
    db = MagicMock()
    db.__getitem__.side_effect = lambda name: collections[name]
    return MongoReEvaluationStore(db)


@pytest.mark.asyncio
async def test_get_answer_sheet_joins_question_paper(store, collections):
    collections["answer_sheets"].find_one = AsyncMock(return_value={
        "id": "sheet-1",
        "question_paper_id": "paper-1",
        "section_wise_results": [{"section": "A"}],
        "total_score": "64",
    })
    collections["question_papers"].find_one = AsyncMock(return_value={
        "id": "paper-1", "total_marks": 80, "class_id": "c", "subject_id": "s",
    })

    sheet = await store.get_answer_sheet("sheet-1")

    assert sheet.id == "sheet-1"
    assert sheet.total_score == 64
    assert sheet.question_paper.total_marks == 80
    collections["answer_sheets"].find_one.assert_awaited_once_with({"id": "sheet-1"}, {"_id": 0})
    collections["question_papers"].find_one.assert_awaited_once_with({"id": "paper-1"}, {"_id": 0})


@pytest.mark.asyncio
async def test_get_answer_sheet_uses_embedded_question_paper(store, collections):
    collections["answer_sheets"].find_one = AsyncMock(return_value={
        "id": "sheet-1",
        "question_papers": {"id": "paper-9", "title": "Finals", "total_marks": 50},
    })
    collections["question_papers"].find_one = AsyncMock()

    sheet = await store.get_answer_sheet("sheet-1")

    assert sheet.question_paper.id == "paper-9"
    collections["question_papers"].find_one.assert_not_awaited()


@pytest.mark.asyncio
async def test_get_answer_sheet_missing(store, collections):
    collections["answer_sheets"].find_one = AsyncMock(return_value=None)
    assert await store.get_answer_sheet("nope") is None


@pytest.mark.asyncio
async def test_get_academic_level_needs_both_keys(store, collections):
    collections["academic_levels"].find_one = AsyncMock(return_value={
        "class_id": "c", "subject_id": "s", "weightage": {"content": 70, "language": 30},
    })

    assert await store.get_academic_level(None, "s") is None
    level = await store.get_academic_level("c", "s")

    assert level.weightage.content == 70
    collections["academic_levels"].find_one.assert_awaited_once()


@pytest.mark.asyncio
async def test_update_answer_sheet_unmatched_raises(store, collections):
    collections["answer_sheets"].update_one = AsyncMock(return_value=MagicMock(matched_count=0))

    with pytest.raises(PersistenceError):
        await store.update_answer_sheet("sheet-1", {"grade": "A"})


@pytest.mark.asyncio
async def test_insert_log(store, collections):
    collections["re_evaluation_logs"].insert_one = AsyncMock()
    log = ReEvaluationLog(
        id="log-1",
        answer_sheet_id="sheet-1",
        new_total_score=72,
        new_section_score=17,
        new_grade="B+",
    )

    await store.insert_log(log)

    document = collections["re_evaluation_logs"].insert_one.await_args.args[0]
    assert document["answer_sheet_id"] == "sheet-1"
    assert document["evaluation_type"] == "section"
    assert document["details"] == {"previous_question_marks": [], "new_question_marks": []}


@pytest.mark.asyncio
async def test_list_logs_filters_and_sorts(store, collections):
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.to_list = AsyncMock(return_value=[{"id": "log-1"}])
    collections["re_evaluation_logs"].find.return_value = cursor

    rows = await store.list_logs(evaluation_type="full", answer_sheet_id="sheet-1")
    await store.list_logs(evaluation_type="bogus")

    assert rows == [{"id": "log-1"}]
    first, second = collections["re_evaluation_logs"].find.call_args_list
    assert first.args == ({"evaluation_type": "full", "answer_sheet_id": "sheet-1"}, {"_id": 0})
    assert second.args == ({}, {"_id": 0})
    cursor.sort.assert_called_with("created_at", -1)
    cursor.to_list.assert_awaited_with(200)
