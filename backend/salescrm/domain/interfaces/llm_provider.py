"""
LLM Provider Interface
What the quality assessor needs from a language model backend
"""
from abc import ABC, abstractmethod
from typing import Optional


class LLMProvider(ABC):
    """
    One prompt in, one completion out.

    Providers are created by LLMFactory, initialized once at startup and
    shared by every assessment. `generate` raises on any transport or API
    failure; callers turn that into an assessment error.
    """

    @abstractmethod
    async def initialize(self, config: dict) -> None:
        """Open the client; raise ValueError when credentials are missing"""

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> str:
        """Raw completion text for `prompt`"""

    @abstractmethod
    async def cleanup(self) -> None:
        """Drop the client"""

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry name, e.g. "groq" """
