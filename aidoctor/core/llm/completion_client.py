"""
Completion Client

Wrapper around a LangChain chat model (Gemini by default) that sends a
CompletionRequest and returns the raw text. The core never retries:
any failure surfaces as CompletionServiceError carrying the upstream
message.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from aidoctor.config import CompletionConfig
from aidoctor.utils import CompletionServiceError, get_logger

from .messages import ASSISTANT, SYSTEM, CompletionRequest, CompletionResponse

logger = get_logger(__name__)


def to_langchain_messages(request: CompletionRequest) -> List[BaseMessage]:
    converted: List[BaseMessage] = []
    for message in request.messages:
        if message.role == SYSTEM:
            converted.append(SystemMessage(content=message.content))
        elif message.role == ASSISTANT:
            converted.append(AIMessage(content=message.content))
        else:
            converted.append(HumanMessage(content=message.content))
    return converted


class CompletionClient:
    """
    Client for the external completion service.

    The chat model can be injected (tests pass a fake); otherwise one
    Gemini model is built per distinct (model, temperature, max tokens)
    combination on first use.
    """

    def __init__(
        self,
        config: Optional[CompletionConfig] = None,
        chat_model: Optional[BaseChatModel] = None
    ):
        """
        Initialize completion client.

        Args:
            config: Optional configuration, uses defaults if not provided
            chat_model: Optional pre-built LangChain chat model
        """
        self.config = config or CompletionConfig()
        self._injected_model = chat_model
        self._models: Dict[Tuple[str, float, int], BaseChatModel] = {}
        self._request_count = 0
        self._last_request_time: Optional[datetime] = None

    @property
    def is_available(self) -> bool:
        """True when a model is injected or an API key is configured."""
        return self._injected_model is not None or bool(self.config.api_key)

    def _settings_for(self, request: CompletionRequest) -> Tuple[str, float, int]:
        options = request.options
        return (
            options.model or self.config.model,
            options.temperature if options.temperature is not None else self.config.temperature,
            options.max_tokens or self.config.max_output_tokens,
        )

    def _model_for(self, settings: Tuple[str, float, int]) -> BaseChatModel:
        if self._injected_model is not None:
            return self._injected_model

        if not self.config.api_key:
            raise CompletionServiceError(
                "GEMINI_API_KEY is not configured", model=settings[0]
            )

        if settings not in self._models:
            model_name, temperature, max_tokens = settings
            self._models[settings] = ChatGoogleGenerativeAI(
                model=model_name,
                temperature=temperature,
                max_output_tokens=max_tokens,
                top_p=self.config.top_p,
                timeout=self.config.request_timeout_seconds,
                max_retries=0,
                google_api_key=self.config.api_key,
            )
            logger.info(f"Chat model initialized: {model_name}")
        return self._models[settings]

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """
        Send the request and return the model's raw text.

        Raises:
            CompletionServiceError: the service is unconfigured, unreachable,
                timed out or returned an error
        """
        settings = self._settings_for(request)
        model_name = settings[0]
        chat_model = self._model_for(settings)

        start_time = datetime.now()
        try:
            response = await chat_model.ainvoke(to_langchain_messages(request))
        except Exception as e:
            logger.error(f"Completion request failed: {e}", extra={"model": model_name})
            raise CompletionServiceError(
                f"Completion service failed: {e}", model=model_name
            ) from e

        latency = (datetime.now() - start_time).total_seconds() * 1000
        text = response.content if isinstance(response.content, str) else _join_content(response.content)

        usage = getattr(response, "usage_metadata", None) or {}
        metadata = getattr(response, "response_metadata", None) or {}

        self._request_count += 1
        self._last_request_time = datetime.now()

        result = CompletionResponse(
            text=text,
            model=metadata.get("model_name") or model_name,
            prompt_tokens=usage.get("input_tokens", 0),
            completion_tokens=usage.get("output_tokens", 0),
            latency_ms=latency,
        )
        logger.info(
            "Completion received",
            extra={"model": result.model, "tokens": result.total_tokens, "latency_ms": round(latency, 1)},
        )
        return result

    def get_stats(self) -> Dict[str, Any]:
        """Get client statistics."""
        return {
            "is_available": self.is_available,
            "model": self.config.model,
            "request_count": self._request_count,
            "last_request": self._last_request_time.isoformat() if self._last_request_time else None
        }


def _join_content(parts: List[Any]) -> str:
    """Flatten multi-part message content into plain text."""
    texts = []
    for part in parts:
        if isinstance(part, str):
            texts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            texts.append(part.get("text", ""))
    return "".join(texts)
