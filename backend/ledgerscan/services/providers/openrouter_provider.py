"""
OpenRouter Extraction Provider.

Provides document extraction through the OpenRouter API (OpenAI-compatible,
supports multiple multimodal models).
"""
from typing import Any, Dict, List, Optional

from openai import (
    APIConnectionError,
    APIError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    RateLimitError,
)

from ...core.config import (
    EXTRACTION_MAX_TOKENS,
    EXTRACTION_TEMPERATURE,
    EXTRACTION_TIMEOUT_SECONDS,
    OPENROUTER_API_KEY,
    OPENROUTER_BASE_URL,
    OPENROUTER_MODEL,
)
from ...core.exceptions import ExtractionUnavailableError, RateLimitedError
from ...core.logging_config import get_logger
from .base import ExtractionProvider, ExtractionRequest, classify_status
from .prompts import SYSTEM_PROMPT, build_user_prompt, parse_json_payload

logger = get_logger(__name__)


class OpenRouterProvider(ExtractionProvider):
    """
    Extraction provider using the OpenRouter API.

    Images are sent as data-URI ``image_url`` parts and PDFs as ``file``
    parts, with JSON-object response format enforced.
    """

    name = "openrouter"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None
    ):
        """Initialize OpenRouter provider with API key."""
        self.api_key = api_key if api_key is not None else OPENROUTER_API_KEY
        self.model = model or OPENROUTER_MODEL
        if client is not None:
            self.client = client
        elif self.api_key:
            self.client = AsyncOpenAI(
                base_url=OPENROUTER_BASE_URL,
                api_key=self.api_key,
                timeout=EXTRACTION_TIMEOUT_SECONDS,
                max_retries=0
            )
        else:
            self.client = None

    def _build_content(self, request: ExtractionRequest, ocr_text: Optional[str]) -> List[Dict[str, Any]]:
        content: List[Dict[str, Any]] = [
            {"type": "text", "text": build_user_prompt(request, ocr_text)}
        ]
        if request.is_image:
            content.append({"type": "image_url", "image_url": {"url": request.data_uri}})
        elif request.is_pdf:
            content.append({
                "type": "file",
                "file": {"filename": request.file_name, "file_data": request.data_uri}
            })
        return content

    async def analyze(self, request: ExtractionRequest, ocr_text: Optional[str] = None) -> Dict[str, Any]:
        """Analyze a document with a chat completion."""
        if not self.client:
            raise ExtractionUnavailableError("OpenRouter API key not configured")

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": self._build_content(request, ocr_text)},
                ],
                response_format={"type": "json_object"},
                temperature=EXTRACTION_TEMPERATURE,
                max_tokens=EXTRACTION_MAX_TOKENS
            )
        except RateLimitError:
            raise RateLimitedError(status_code=429)
        except APIStatusError as e:
            logger.error(f"OpenRouter API Error (Extraction): {e.status_code} {e.message}")
            raise classify_status(e.status_code, e.message)
        except APITimeoutError:
            raise ExtractionUnavailableError("Extraction request timed out")
        except (APIConnectionError, APIError) as e:
            logger.error(f"OpenRouter API Error (Extraction): {e}")
            raise ExtractionUnavailableError(f"Extraction request failed: {e}")

        if not response.choices:
            return parse_json_payload(None)
        return parse_json_payload(response.choices[0].message.content)
