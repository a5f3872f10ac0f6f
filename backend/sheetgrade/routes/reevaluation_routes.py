"""
Re-evaluation routes.

Endpoints:
- POST /api/reevaluate-section
- POST /api/reevaluate-sections/bulk
- GET /api/re-evaluation-logs
"""

import logging
from typing import Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..errors import ReEvaluationError
from ..models import BulkReEvaluationRequest, SectionReEvaluationRequest
from ..services.reevaluation import SectionReEvaluationService
from ..services.retry import RetryPolicy, retry_with_backoff
from ..store import LOG_LIST_LIMIT

logger = logging.getLogger(__name__)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid request body: {field + ': ' if field else ''}{first.get('msg', 'invalid value')}"
    else:
        message = "Invalid request body"
    logger.warning(f"Rejected {request.url.path}: {message}")
    return _error_response(400, message)


def register_error_handlers(app: FastAPI) -> None:
    """Answer unbindable request bodies with the same {success, error} shape as the routes."""
    app.add_exception_handler(RequestValidationError, _request_validation_handler)


def create_reevaluation_routes(
    store,
    service: Optional[SectionReEvaluationService] = None,
    retry_policy: Optional[RetryPolicy] = None
) -> APIRouter:
    """Create re-evaluation routes bound to a store."""

    router = APIRouter(prefix="/api", tags=["re-evaluation"])
    service = service or SectionReEvaluationService(store)
    retry_policy = retry_policy or RetryPolicy()

    @router.post("/reevaluate-section")
    async def reevaluate_section(request: SectionReEvaluationRequest):
        """Re-grade one section of an answer sheet."""
        try:
            result = await service.reevaluate_section(
                request.answer_sheet_id,
                request.section_index,
                request.requested_by
            )
            return {
                "success": True,
                "section": result.section.to_document(),
                "total_score": result.total_score,
                "grade": result.grade
            }

        except ReEvaluationError as e:
            return _error_response(e.http_status, e.message)
        except Exception as e:
            logger.error(f"Unexpected re-evaluation error: {e}", exc_info=True)
            return _error_response(500, str(e))

    @router.post("/reevaluate-sections/bulk")
    async def reevaluate_sections_bulk(request: BulkReEvaluationRequest):
        """
        Re-grade several sections one after another.

        Each item is retried with exponential backoff while its failure
        looks transient. One item failing does not stop the rest.
        """
        results = []
        for idx, item in enumerate(request.items):
            logger.info(f"Bulk re-evaluation {idx + 1}/{len(request.items)}: sheet {item.answer_sheet_id}")
            try:
                result = await retry_with_backoff(
                    lambda: service.reevaluate_section(
                        item.answer_sheet_id,
                        item.section_index,
                        request.requested_by
                    ),
                    retry_policy
                )
                results.append({
                    "answer_sheet_id": item.answer_sheet_id,
                    "section_index": item.section_index,
                    "success": True,
                    "total_score": result.total_score,
                    "grade": result.grade
                })
            except Exception as e:
                message = e.message if isinstance(e, ReEvaluationError) else str(e)
                results.append({
                    "answer_sheet_id": item.answer_sheet_id,
                    "section_index": item.section_index,
                    "success": False,
                    "error": message
                })

        succeeded = sum(1 for r in results if r["success"])
        return {
            "success": succeeded == len(results),
            "succeeded": succeeded,
            "failed": len(results) - succeeded,
            "results": results
        }

    @router.get("/re-evaluation-logs")
    async def list_re_evaluation_logs(type: Optional[str] = None, answer_sheet_id: Optional[str] = None):
        """Newest-first re-evaluation history, optionally filtered by type or sheet."""
        try:
            data = await store.list_logs(
                evaluation_type=type,
                answer_sheet_id=answer_sheet_id,
                limit=LOG_LIST_LIMIT
            )
            return {"success": True, "data": data}
        except Exception as e:
            logger.error(f"Failed to fetch re-evaluation logs: {e}")
            return _error_response(500, str(e))

    return router
