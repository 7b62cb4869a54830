"""Agent infrastructure — LLM client and prompts."""

from vulnguard.agent.llm_client import Citation, LLMClient, LLMResponse

__all__ = [
    "Citation",
    "LLMClient",
    "LLMResponse",
]
