"""Services for re-evaluating answer sheet sections."""

from .file_fetcher import FileFetcher
from .model_invoker import InlineDocument, ModelInvoker, ModelResponse, is_transient_error
from .reevaluation import ReEvaluationState, SectionReEvaluationService
from .retry import RetryPolicy, retry_with_backoff

__all__ = [
    "FileFetcher",
    "InlineDocument",
    "ModelInvoker",
    "ModelResponse",
    "is_transient_error",
    "ReEvaluationState",
    "SectionReEvaluationService",
    "RetryPolicy",
    "retry_with_backoff",
]
