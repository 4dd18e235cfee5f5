"""
Anthropic Extraction Provider.

Provides document extraction using Anthropic's Claude API directly, with
documents sent as base64 image/document content blocks.
"""
from typing import Any, Dict, List, Optional

import anthropic

from ...core.config import (
    ANTHROPIC_API_KEY,
    ANTHROPIC_MODEL,
    EXTRACTION_MAX_TOKENS,
    EXTRACTION_TEMPERATURE,
    EXTRACTION_TIMEOUT_SECONDS,
)
from ...core.exceptions import ExtractionUnavailableError, RateLimitedError
from ...core.logging_config import get_logger
from .base import ExtractionProvider, ExtractionRequest, classify_status
from .prompts import SYSTEM_PROMPT, build_user_prompt, parse_json_payload

logger = get_logger(__name__)


class AnthropicProvider(ExtractionProvider):
    """Extraction provider using the Anthropic Messages API."""

    name = "anthropic"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[anthropic.AsyncAnthropic] = None
    ):
        """Initialize Anthropic provider with API key."""
        self.api_key = api_key if api_key is not None else ANTHROPIC_API_KEY
        self.model = model or ANTHROPIC_MODEL
        if client is not None:
            self.client = client
        elif self.api_key:
            self.client = anthropic.AsyncAnthropic(
                api_key=self.api_key,
                timeout=EXTRACTION_TIMEOUT_SECONDS,
                max_retries=0
            )
        else:
            self.client = None

    def _build_content(self, request: ExtractionRequest, ocr_text: Optional[str]) -> List[Dict[str, Any]]:
        content: List[Dict[str, Any]] = []
        source = {"type": "base64", "media_type": request.file_type, "data": request.encoded}
        if request.is_image:
            content.append({"type": "image", "source": source})
        elif request.is_pdf:
            content.append({"type": "document", "source": source})
        content.append({"type": "text", "text": build_user_prompt(request, ocr_text)})
        return content

    async def analyze(self, request: ExtractionRequest, ocr_text: Optional[str] = None) -> Dict[str, Any]:
        """Analyze a document with a single message."""
        if not self.client:
            raise ExtractionUnavailableError("Anthropic API key not configured")

        try:
            message = await self.client.messages.create(
                model=self.model,
                max_tokens=EXTRACTION_MAX_TOKENS,
                temperature=EXTRACTION_TEMPERATURE,
                system=SYSTEM_PROMPT,
                messages=[
                    {"role": "user", "content": self._build_content(request, ocr_text)}
                ]
            )
        except anthropic.RateLimitError:
            raise RateLimitedError(status_code=429)
        except anthropic.APIStatusError as e:
            logger.error(f"Anthropic API Error (Extraction): {e.status_code} {e.message}")
            raise classify_status(e.status_code, e.message)
        except anthropic.APITimeoutError:
            raise ExtractionUnavailableError("Extraction request timed out")
        except (anthropic.APIConnectionError, anthropic.APIError) as e:
            logger.error(f"Anthropic API Error (Extraction): {e}")
            raise ExtractionUnavailableError(f"Extraction request failed: {e}")

        text = "".join(
            block.text for block in message.content if getattr(block, "type", None) == "text"
        )
        return parse_json_payload(text)
