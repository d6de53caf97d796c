"""
LLM Provider Factory
Maps the LLM_PROVIDER setting to a provider class
"""
from typing import Dict, List, Type

from salescrm.domain.interfaces.llm_provider import LLMProvider
from salescrm.infrastructure.llm.groq import GroqLLMProvider


class LLMFactory:
    """Registry of provider classes; instances still need initialize()"""

    _providers: Dict[str, Type[LLMProvider]] = {"groq": GroqLLMProvider}

    @classmethod
    def create(cls, provider_name: str, config: dict) -> LLMProvider:
        try:
            provider_class = cls._providers[provider_name]
        except KeyError:
            available = ", ".join(sorted(cls._providers)) or "None"
            raise ValueError(f"Unknown LLM provider: {provider_name}. Available: {available}") from None
        return provider_class()

    @classmethod
    def register(cls, name: str, provider_class: Type[LLMProvider]) -> None:
        cls._providers[name] = provider_class

    @classmethod
    def list_providers(cls) -> List[str]:
        return sorted(cls._providers)
