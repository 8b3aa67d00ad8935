"""
Singleton OpenAI client with rate limiting using aiolimiter.
"""
import os
from aiolimiter import AsyncLimiter
from openai import AsyncOpenAI
from loguru import logger

from bizlicense.config import OPENAI_API_KEY, CONCURRENCY


class OpenAIClient:
    """
    Singleton OpenAI client for making API requests.
    Uses AsyncLimiter for rate limiting instead of semaphores.
    """
    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not OpenAIClient._initialized:
            if not self.is_configured():
                raise ValueError("OPENAI_API_KEY must be set in environment or config")

            self.client = AsyncOpenAI(api_key=self._api_key())
            # Token bucket: at most CONCURRENCY report requests per second
            self.rate_limiter = AsyncLimiter(max_rate=min(CONCURRENCY, 500), time_period=1.0)
            OpenAIClient._initialized = True

    @staticmethod
    def _api_key():
        return OPENAI_API_KEY or os.getenv("OPENAI_API_KEY")

    @classmethod
    def is_configured(cls) -> bool:
        """True if an API key is available for report generation."""
        return bool(cls._api_key())

    async def chat_completions_create(self, **kwargs):
        """
        Create a chat completion with rate limiting.
        Accepts all arguments that AsyncOpenAI.chat.completions.create accepts.

        Returns:
            The response from OpenAI's chat completions API.
        """
        async with self.rate_limiter:
            try:
                return await self.client.chat.completions.create(**kwargs)
            except Exception as e:
                logger.debug(f"⚠️ OpenAI API request failed: {e}")
                raise
