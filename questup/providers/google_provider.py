"""Google Gemini provider integration."""

import base64
import logging
from typing import List, Optional

from google import genai
from google.genai import types

from ..config import settings
from ..models import ModelRequest
from ..schemas import RESPONSE_MIME_TYPE
from .base import BaseLLMProvider

logger = logging.getLogger(__name__)


class GoogleProvider(BaseLLMProvider):
    """Gemini integration for exam generation and result analysis.

    A new ``genai.Client`` is created for every call, bound to the credential
    resolved for that call, so a rotated key is never served by a stale client.
    """

    def __init__(self, model: Optional[str] = None):
        """
        Initialize Google provider.

        Args:
            model: Default model (default: settings.gemini_model)
        """
        super().__init__(model or settings.gemini_model)

    def create_client(self, api_key: str) -> genai.Client:
        return genai.Client(api_key=api_key)

    async def close_client(self, client: genai.Client) -> None:
        """Release the async and sync HTTP transports of a per-call client."""
        try:
            await client.aio.aclose()
        finally:
            client.close()

    def build_contents(self, request: ModelRequest) -> List[types.Content]:
        """Inline file parts followed by the instruction text, as one user turn."""
        parts = [
            types.Part.from_bytes(
                data=base64.b64decode(part.data),
                mime_type=part.mime_type,
            )
            for part in request.parts
        ]
        parts.append(types.Part(text=request.prompt))
        return [types.Content(role="user", parts=parts)]

    def build_config(self, request: ModelRequest) -> types.GenerateContentConfig:
        thinking_config = None
        if request.thinking_budget:
            thinking_config = types.ThinkingConfig(
                thinking_budget=request.thinking_budget
            )
        return types.GenerateContentConfig(
            system_instruction=request.system_instruction,
            response_mime_type=RESPONSE_MIME_TYPE,
            response_schema=request.response_schema,
            thinking_config=thinking_config,
        )

    async def generate_json(self, request: ModelRequest, api_key: str) -> str:
        """
        Generate a structured JSON response.

        Args:
            request: The request to send
            api_key: Credential resolved for this attempt

        Returns:
            Raw JSON text of the response ("" if the model returned no text)

        Raises:
            AuthError: If the credential was rejected
            TransientError: On rate limiting or temporary unavailability
            Exception: Unclassified SDK errors, unmodified
        """
        model = request.model or self.model
        client = self.create_client(api_key)
        logger.debug(
            f"Calling {model} with {len(request.parts)} inline parts "
            f"and {len(request.prompt)} prompt characters"
        )
        try:
            response = await client.aio.models.generate_content(
                model=model,
                contents=self.build_contents(request),
                config=self.build_config(request),
            )
        except Exception as e:
            error = self._handle_api_error(e)
            if error is e:
                raise
            raise error from e
        finally:
            await self.close_client(client)

        return (response.text or "").strip()
