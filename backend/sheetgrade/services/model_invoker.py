"""
Gemini model invoker - one pass over an ordered list of vision models.

A transient failure (overload, quota, rate limit) or an empty reply moves on
to the next model. Any other failure stops the pass immediately.
"""

import asyncio
import base64
import logging
from typing import Any, Callable, List, Optional, Sequence

import google.generativeai as genai

from ..config.settings import settings
from ..errors import ModelHardError, ModelTransientError
from ..utils import get_mime_type

logger = logging.getLogger(__name__)

TRANSIENT_ERROR_SIGNATURES = ("overloaded", "quota", "rate limit")
ALL_MODELS_FAILED_MESSAGE = "All Gemini models failed"
EMPTY_RESPONSE_MESSAGE = "Empty response from Gemini"


def is_transient_error(message: Optional[str]) -> bool:
    """True when an upstream error message looks like overload/quota/rate limiting."""
    text = (message or "").lower()
    return any(signature in text for signature in TRANSIENT_ERROR_SIGNATURES)


class InlineDocument:
    """The answer sheet file sent alongside the prompt."""

    def __init__(self, data: bytes, mime_type: str = "image/jpeg"):
        self.data = data
        self.mime_type = mime_type

    @classmethod
    def from_url(cls, data: bytes, url: str) -> "InlineDocument":
        return cls(data=data, mime_type=get_mime_type(url))

    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode()

    def as_part(self) -> dict:
        return {"mime_type": self.mime_type, "data": self.data}

    def __repr__(self):
        return f"InlineDocument(mime_type='{self.mime_type}', bytes={len(self.data)})"


class ModelResponse:
    """Text returned by the first model that produced any."""

    def __init__(self, text: str, model: str):
        self.text = text
        self.model = model

    def __repr__(self):
        return f"ModelResponse(model='{self.model}', text='{self.text[:50]}...')"


def _response_text(response: Any) -> str:
    # .text raises ValueError when the candidate has no parts (e.g. blocked)
    try:
        text = response.text
    except (ValueError, AttributeError, IndexError):
        return ""
    return text.strip() if isinstance(text, str) else ""


class ModelInvoker:
    """Calls Gemini models in priority order until one answers."""

    def __init__(
        self,
        models: Optional[Sequence[str]] = None,
        api_key: Optional[str] = None,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
        model_factory: Optional[Callable[[str], Any]] = None
    ):
        self.models: List[str] = list(models or settings.GEMINI_MODELS)
        self.temperature = settings.LLM_TEMPERATURE if temperature is None else temperature
        self.max_output_tokens = max_output_tokens or settings.LLM_MAX_OUTPUT_TOKENS
        self.model_factory = model_factory or genai.GenerativeModel

        api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        if api_key:
            genai.configure(api_key=api_key)

    def _call_model(self, model_name: str, prompt: str, document: InlineDocument) -> Any:
        model = self.model_factory(model_name)
        return model.generate_content(
            [prompt, document.as_part()],
            generation_config=genai.types.GenerationConfig(
                temperature=self.temperature,
                max_output_tokens=self.max_output_tokens
            )
        )

    async def generate(self, prompt: str, document: InlineDocument) -> ModelResponse:
        """
        Send the prompt and document to each model in turn.

        Returns:
            ModelResponse from the first model with non-empty text

        Raises:
            ModelHardError: On the first non-transient upstream failure
            ModelTransientError: When every model failed transiently or replied empty
        """
        last_error: Optional[str] = None

        for model_name in self.models:
            logger.info(f"Trying model: {model_name}")
            try:
                response = await asyncio.to_thread(self._call_model, model_name, prompt, document)
            except Exception as e:
                error_msg = str(e) or e.__class__.__name__
                if is_transient_error(error_msg):
                    logger.warning(f"Model {model_name} failed transiently: {error_msg}")
                    last_error = error_msg
                    continue
                logger.error(f"Model {model_name} failed: {error_msg}")
                raise ModelHardError(error_msg) from e

            text = _response_text(response)
            if not text:
                logger.warning(f"Model {model_name} returned empty response, trying next...")
                last_error = EMPTY_RESPONSE_MESSAGE
                continue

            logger.info(f"Success with model: {model_name}")
            return ModelResponse(text=text, model=model_name)

        raise ModelTransientError(last_error or ALL_MODELS_FAILED_MESSAGE)
