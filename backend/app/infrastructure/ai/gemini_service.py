"""
Gemini AI Service for the AI Chat backend

Uses the google.genai SDK for:
- Multi-turn chat completions from stored conversation history
- Short chat titles generated from the first user message
"""

import asyncio
import logging
from typing import List, Optional, Sequence

from google import genai
from google.genai import types

from app.domain.chat import ChatTurn, MessageRole
from app.infrastructure.exceptions import (
    AIServiceError,
    RateLimitError,
    ConfigurationError,
)


logger = logging.getLogger(__name__)


TITLE_PROMPT = (
    "Generate a short, concise title (max 5 words) for a chat that starts "
    "with this message. Only return the title, nothing else."
)
TITLE_FALLBACK_LENGTH = 30


def fallback_title(first_message: str) -> str:
    """Title derived from the first message when generation fails."""
    text = " ".join(first_message.split())
    if len(text) <= TITLE_FALLBACK_LENGTH:
        return text
    return text[:TITLE_FALLBACK_LENGTH] + "..."


def to_gemini_contents(turns: Sequence[ChatTurn]) -> tuple[Optional[str], List[types.Content]]:
    """
    Split role-tagged turns into a system instruction and Gemini contents.

    Gemini names the assistant role ``model`` and takes system turns
    out of band.
    """
    system_parts = []
    contents = []
    for turn in turns:
        if turn.role == MessageRole.SYSTEM:
            system_parts.append(turn.content)
            continue
        role = "model" if turn.role == MessageRole.ASSISTANT else "user"
        contents.append(
            types.Content(role=role, parts=[types.Part(text=turn.content)])
        )
    system_instruction = "\n\n".join(system_parts) if system_parts else None
    return system_instruction, contents


class GeminiService:
    """
    Response generator backed by Gemini.

    Calls are single-shot with no retry; failures surface as AIServiceError.
    """

    DEFAULT_MODEL = "gemini-2.0-flash"
    TEMPERATURE = 0.7
    MAX_OUTPUT_TOKENS = 2000
    TITLE_TEMPERATURE = 0.5
    TITLE_MAX_OUTPUT_TOKENS = 20

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        temperature: float = TEMPERATURE,
        max_output_tokens: int = MAX_OUTPUT_TOKENS,
    ):
        self._api_key = api_key
        self._model = model
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens
        self._client: Optional[genai.Client] = None

    @property
    def client(self) -> genai.Client:
        """Get the Gemini client instance, created on first use."""
        if self._client is None:
            if not self._api_key:
                raise ConfigurationError(
                    "Missing GOOGLE_API_KEY environment variable",
                    missing_keys=["GOOGLE_API_KEY"]
                )
            self._client = genai.Client(api_key=self._api_key)
            logger.info(f"GeminiService initialized with model: {self._model}")
        return self._client

    async def _generate(
        self,
        contents: List[types.Content],
        config: types.GenerateContentConfig,
    ) -> str:
        response = await asyncio.to_thread(
            lambda: self.client.models.generate_content(
                model=self._model,
                contents=contents,
                config=config,
            )
        )
        return response.text or ""

    async def complete(self, turns: Sequence[ChatTurn]) -> str:
        """
        Generate the next assistant turn for a conversation.

        Args:
            turns: Ordered conversation, oldest first

        Returns:
            Generated text (may be empty)

        Raises:
            AIServiceError: the Gemini call failed
        """
        system_instruction, contents = to_gemini_contents(turns)
        config = types.GenerateContentConfig(
            temperature=self._temperature,
            max_output_tokens=self._max_output_tokens,
            system_instruction=system_instruction,
        )

        try:
            return await self._generate(contents, config)
        except ConfigurationError:
            raise
        except Exception as e:
            error_msg = str(e).lower()

            if "rate" in error_msg or "quota" in error_msg:
                raise RateLimitError(
                    "Gemini API rate limit exceeded",
                    original_error=e
                )

            logger.error(f"Gemini completion failed: {e}")
            raise AIServiceError(
                f"AI service error: {str(e)}",
                model=self._model,
                operation="complete",
                original_error=e
            )

    async def generate_chat_title(self, first_message: str) -> str:
        """
        Generate a short title for a chat from its first message.

        Never raises: on failure or empty output the title falls back to
        the start of the message.
        """
        contents = [
            types.Content(role="user", parts=[types.Part(text=first_message)])
        ]
        config = types.GenerateContentConfig(
            temperature=self.TITLE_TEMPERATURE,
            max_output_tokens=self.TITLE_MAX_OUTPUT_TOKENS,
            system_instruction=TITLE_PROMPT,
        )

        try:
            title = await self._generate(contents, config)
        except Exception as e:
            logger.warning(f"Title generation failed, using fallback: {e}")
            return fallback_title(first_message)

        title = title.strip().strip('"').strip("'").strip()
        return title or fallback_title(first_message)
