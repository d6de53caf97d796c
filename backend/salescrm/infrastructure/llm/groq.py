"""
Groq LLM Provider
Single-shot chat completions used by the contact quality assessor

The assessor asks for one JSON object per contact, so requests are
non-streaming, low temperature and can opt into Groq's JSON mode.
"""
import os
from typing import Any, Dict, List, Optional

from groq import AsyncGroq

from salescrm.domain.interfaces.llm_provider import LLMProvider


class GroqLLMProvider(LLMProvider):
    """
    LLMProvider over the async Groq SDK.

    Config keys (all optional except the key):
        api_key: falls back to GROQ_API_KEY
        model: defaults to llama-3.3-70b-versatile
        temperature, max_tokens: request defaults
        json_mode: send response_format={"type": "json_object"}
    """

    DEFAULT_MODEL = "llama-3.3-70b-versatile"
    DEFAULT_TEMPERATURE = 0.2
    DEFAULT_MAX_TOKENS = 512

    def __init__(self):
        self._client: Optional[AsyncGroq] = None
        self._model = self.DEFAULT_MODEL
        self._temperature = self.DEFAULT_TEMPERATURE
        self._max_tokens = self.DEFAULT_MAX_TOKENS
        self._json_mode = False

    async def initialize(self, config: dict) -> None:
        api_key = config.get("api_key") or os.getenv("GROQ_API_KEY")
        if not api_key:
            raise ValueError("Groq API key not found in config or environment")

        self._client = AsyncGroq(api_key=api_key)
        self._model = config.get("model") or self.DEFAULT_MODEL
        self._temperature = config.get("temperature", self.DEFAULT_TEMPERATURE)
        self._max_tokens = config.get("max_tokens", self.DEFAULT_MAX_TOKENS)
        self._json_mode = bool(config.get("json_mode", False))

    @staticmethod
    def _messages(prompt: str, system_prompt: Optional[str]) -> List[Dict[str, str]]:
        messages = [{"role": "system", "content": system_prompt}] if system_prompt else []
        messages.append({"role": "user", "content": prompt})
        return messages

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> str:
        """
        Returns the first choice's text, or "" when the model sent none.

        Raises:
            RuntimeError: Not initialized, or the API call failed
            ValueError: Temperature outside 0.0-2.0
        """
        if self._client is None:
            raise RuntimeError("Groq client not initialized. Call initialize() first.")

        temperature = self._temperature if temperature is None else temperature
        if not 0.0 <= temperature <= 2.0:
            raise ValueError(f"Temperature must be between 0.0 and 2.0, got {temperature}")

        request: Dict[str, Any] = {
            "model": kwargs.get("model", self._model),
            "messages": self._messages(prompt, system_prompt),
            "temperature": temperature,
            "max_tokens": self._max_tokens if max_tokens is None else max_tokens,
            "stream": False,
        }
        if kwargs.get("seed") is not None:
            request["seed"] = kwargs["seed"]
        if self._json_mode:
            request["response_format"] = {"type": "json_object"}

        try:
            response = await self._client.chat.completions.create(**request)
        except Exception as e:
            raise RuntimeError(f"Groq completion failed: {e}") from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def cleanup(self) -> None:
        self._client = None

    @property
    def name(self) -> str:
        return "groq"

    def __repr__(self) -> str:
        return f"GroqLLMProvider(model={self._model}, temp={self._temperature})"
