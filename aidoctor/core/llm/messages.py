"""
Completion Request Types

Provider-neutral request/response shapes passed between the prompt
builders and the completion client.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

SYSTEM = "system"
USER = "user"
ASSISTANT = "assistant"


@dataclass(frozen=True)
class CompletionMessage:
    role: str      # system | user | assistant
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class CompletionOptions:
    """Per-request generation settings; None defers to the client config."""
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


@dataclass
class CompletionRequest:
    """An ordered message list plus generation settings."""
    messages: List[CompletionMessage] = field(default_factory=list)
    options: CompletionOptions = field(default_factory=CompletionOptions)

    @property
    def system_prompt(self) -> str:
        return "\n\n".join(m.content for m in self.messages if m.role == SYSTEM)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "messages": [m.to_dict() for m in self.messages],
            "options": {
                "model": self.options.model,
                "temperature": self.options.temperature,
                "max_tokens": self.options.max_tokens,
            },
        }


@dataclass
class CompletionResponse:
    """Raw text returned by the completion service."""
    text: str
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    latency_ms: float = 0.0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "model": self.model,
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
            "latency_ms": round(self.latency_ms, 2),
        }
