"""Request/response types exchanged with LLM providers (used for AI consolidation summaries)."""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class LLMRole(str, Enum):
    SYSTEM = "system"
    USER = "user"


@dataclass
class LLMMessage:
    role: LLMRole
    content: str


@dataclass
class LLMRequest:
    """A chat completion request. Unset ``max_tokens``/``temperature`` use the provider defaults."""
    messages: List[LLMMessage]
    model: Optional[str] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None


@dataclass
class LLMResponse:
    content: str
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    finish_reason: str = "stop"
