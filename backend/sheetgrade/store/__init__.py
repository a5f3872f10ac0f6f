"""MongoDB access for answer sheets, academic levels and re-evaluation logs."""

import logging
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from ..errors import PersistenceError
from ..models import AcademicLevel, AnswerSheet, QuestionPaper, ReEvaluationLog

logger = logging.getLogger(__name__)

LOG_LIST_LIMIT = 200
EVALUATION_TYPES = ("section", "full")


class MongoReEvaluationStore:
    """Reads grading state and writes re-evaluation results."""

    ANSWER_SHEETS = "answer_sheets"
    QUESTION_PAPERS = "question_papers"
    ACADEMIC_LEVELS = "academic_levels"
    RE_EVALUATION_LOGS = "re_evaluation_logs"

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.sheets_col = db[self.ANSWER_SHEETS]
        self.papers_col = db[self.QUESTION_PAPERS]
        self.academic_col = db[self.ACADEMIC_LEVELS]
        self.logs_col = db[self.RE_EVALUATION_LOGS]

    async def create_indexes(self):
        await self.sheets_col.create_index("id", unique=True)
        await self.papers_col.create_index("id", unique=True)
        await self.academic_col.create_index([("class_id", 1), ("subject_id", 1)], unique=True)
        await self.logs_col.create_index([("answer_sheet_id", 1), ("created_at", -1)])
        await self.logs_col.create_index("evaluation_type")

    # ============ READS ============

    async def get_answer_sheet(self, answer_sheet_id: str) -> Optional[AnswerSheet]:
        """Load a sheet with its question paper attached (embedded or by reference)."""
        doc = await self.sheets_col.find_one({"id": answer_sheet_id}, {"_id": 0})
        if not doc:
            return None

        paper = doc.pop("question_papers", None)
        if not paper and doc.get("question_paper_id"):
            paper = await self.papers_col.find_one({"id": doc["question_paper_id"]}, {"_id": 0})
        if paper:
            doc["question_paper"] = QuestionPaper.model_validate(paper)

        return AnswerSheet.model_validate(doc)

    async def get_academic_level(self, class_id: Optional[str], subject_id: Optional[str]) -> Optional[AcademicLevel]:
        if not class_id or not subject_id:
            return None
        doc = await self.academic_col.find_one(
            {"class_id": class_id, "subject_id": subject_id},
            {"_id": 0}
        )
        return AcademicLevel.model_validate(doc) if doc else None

    async def list_logs(
        self,
        evaluation_type: Optional[str] = None,
        answer_sheet_id: Optional[str] = None,
        limit: int = LOG_LIST_LIMIT
    ) -> List[Dict[str, Any]]:
        """Newest-first log rows, optionally filtered."""
        query: Dict[str, Any] = {}
        if evaluation_type in EVALUATION_TYPES:
            query["evaluation_type"] = evaluation_type
        if answer_sheet_id:
            query["answer_sheet_id"] = answer_sheet_id

        cursor = self.logs_col.find(query, {"_id": 0}).sort("created_at", -1)
        return await cursor.to_list(limit)

    # ============ WRITES ============

    async def update_answer_sheet(self, answer_sheet_id: str, fields: Dict[str, Any]):
        result = await self.sheets_col.update_one({"id": answer_sheet_id}, {"$set": fields})
        if result.matched_count == 0:
            raise PersistenceError(f"Answer sheet {answer_sheet_id} was not updated")

    async def insert_log(self, log: ReEvaluationLog):
        await self.logs_col.insert_one(log.model_dump())
