"""
Planner interface for brandassist.

This module is the only place that *directly* calls an LLM.  Everything else (orchestration loop,
tools, integrations) stays model-agnostic and speaks the provider-neutral transcript defined in
:mod:`brandassist.core.schema`.

We support two back-ends out of the box, both using native tool calling:

1. **OpenAI** Chat Completions with function tools.
2. **Anthropic** Messages API with ``tool_use`` / ``tool_result`` blocks.

Additional providers can be added by subclassing :class:`BasePlanner` and registering via
:func:`register_planner`.  Every provider error is wrapped in
:class:`~brandassist.core.errors.ModelCallError`; the loop never catches it.
"""

import json
import logging
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Sequence,
    Type,
)

from brandassist.config import settings
from brandassist.core.errors import ModelCallError
from brandassist.core.schema import (
    Message,
    ModelResponse,
    Role,
    ToolCall,
)
from brandassist.tools import ToolSchema

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_PLANNER_REGISTRY: dict[str, Type["BasePlanner"]] = {}


def register_planner(name: str) -> Callable:
    """Decorator to register a planner class under *name*."""

    def wrapper(cls: Type["BasePlanner"]) -> Type["BasePlanner"]:
        _PLANNER_REGISTRY[name] = cls
        return cls

    return wrapper


def load_planner(name: str | None = None, **kwargs: Any) -> "BasePlanner":
    """
    Factory that returns an instantiated planner.

    Fallback order:
    1. *name* arg
    2. ``settings.PLANNER`` env option
    3. default: ``"openai"``
    """

    target = name or getattr(settings, "PLANNER", "openai")
    cls = _PLANNER_REGISTRY.get(target.lower())
    if cls is None:
        raise ValueError(f"Planner '{target}' is not registered.")
    return cls(**kwargs)


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------
class BasePlanner(ABC):
    """Abstract planner: transcript + tool schemas -> text answer and/or tool calls."""

    @abstractmethod
    def complete(self, messages: Sequence[Message], tools: Sequence[ToolSchema]) -> ModelResponse:
        """
        Run one model call.

        Raises
        ------
        ModelCallError
            If the provider cannot be reached or returns an error.
        """


def _decode_arguments(raw: str | None) -> tuple[Dict[str, Any], str | None]:
    """Decode a JSON argument string; return (args, error)."""
    if not raw:
        return {}, None
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as exc:
        return {}, f"arguments are not valid JSON ({exc.msg})"
    if not isinstance(decoded, dict):
        return {}, "arguments must be a JSON object"
    return decoded, None


# ---------------------------------------------------------------------------
# Concrete planners
# ---------------------------------------------------------------------------
@register_planner("openai")
class OpenAIPlanner(BasePlanner):
    """OpenAI Chat Completions planner with function tools."""

    def __init__(self, client: Any = None, model: str | None = None) -> None:
        self._client = client
        self.model = model or settings.OPENAI_MODEL

    def _get_client(self) -> Any:
        if self._client is None:
            import openai  # pylint: disable=import-outside-toplevel

            self._client = openai.OpenAI(
                api_key=settings.OPENAI_API_KEY, timeout=settings.MODEL_TIMEOUT
            )
        return self._client

    @staticmethod
    def to_provider_messages(messages: Sequence[Message]) -> List[Dict[str, Any]]:
        """Convert the transcript to Chat Completions messages."""
        converted: List[Dict[str, Any]] = []
        for msg in messages:
            if msg.role is Role.TOOL:
                converted.append(
                    {"role": "tool", "tool_call_id": msg.tool_call_id, "content": msg.content}
                )
            elif msg.role is Role.ASSISTANT and msg.tool_calls:
                converted.append(
                    {
                        "role": "assistant",
                        "content": msg.content or None,
                        "tool_calls": [
                            {
                                "id": call.id,
                                "type": "function",
                                "function": {"name": call.name, "arguments": json.dumps(call.args)},
                            }
                            for call in msg.tool_calls
                        ],
                    }
                )
            else:
                converted.append({"role": msg.role.value, "content": msg.content})
        return converted

    @staticmethod
    def to_provider_tools(tools: Sequence[ToolSchema]) -> List[Dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": tool["name"],
                    "description": tool["description"],
                    "parameters": tool["parameters"],
                },
            }
            for tool in tools
        ]

    def complete(self, messages: Sequence[Message], tools: Sequence[ToolSchema]) -> ModelResponse:
        request: Dict[str, Any] = {
            "model": self.model,
            "messages": self.to_provider_messages(messages),
        }
        if tools:
            request["tools"] = self.to_provider_tools(tools)

        try:
            resp = self._get_client().chat.completions.create(**request)
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("OpenAI planner error: %s", str(exc))
            raise ModelCallError(f"Error calling OpenAI: {exc}") from exc

        if not resp.choices:
            raise ModelCallError("Error: Empty response from OpenAI")
        message = resp.choices[0].message

        calls: List[ToolCall] = []
        for tool_call in message.tool_calls or []:
            args, error = _decode_arguments(tool_call.function.arguments)
            calls.append(
                ToolCall(
                    id=tool_call.id, name=tool_call.function.name, args=args, argument_error=error
                )
            )

        logger.debug("OpenAI planner response: text=%r tool_calls=%s", message.content, calls)
        return ModelResponse(text=message.content or "", tool_calls=calls)


@register_planner("anthropic")
class AnthropicPlanner(BasePlanner):
    """Anthropic Claude planner using the Messages API tool blocks."""

    MAX_TOKENS = 4096

    def __init__(self, client: Any = None, model: str | None = None) -> None:
        self._client = client
        self.model = model or settings.ANTHROPIC_MODEL

    def _get_client(self) -> Any:
        if self._client is None:
            import anthropic  # pylint: disable=import-outside-toplevel

            self._client = anthropic.Anthropic(
                api_key=settings.ANTHROPIC_API_KEY, timeout=settings.MODEL_TIMEOUT
            )
        return self._client

    @staticmethod
    def to_provider_messages(messages: Sequence[Message]) -> tuple[str, List[Dict[str, Any]]]:
        """
        Convert the transcript to ``(system, messages)``.

        System entries are lifted into the system prompt; tool results travel as ``tool_result``
        blocks in a user turn; consecutive same-role turns are merged because the API requires
        strict user/assistant alternation.
        """
        system_parts: List[str] = []
        converted: List[Dict[str, Any]] = []

        for msg in messages:
            if msg.role is Role.SYSTEM:
                system_parts.append(msg.content)
                continue

            if msg.role is Role.TOOL:
                role = "user"
                blocks: List[Dict[str, Any]] = [
                    {"type": "tool_result", "tool_use_id": msg.tool_call_id, "content": msg.content}
                ]
            elif msg.role is Role.ASSISTANT:
                role = "assistant"
                blocks = [{"type": "text", "text": msg.content}] if msg.content else []
                blocks += [
                    {"type": "tool_use", "id": call.id, "name": call.name, "input": call.args}
                    for call in msg.tool_calls
                ]
            else:
                role = "user"
                blocks = [{"type": "text", "text": msg.content}]

            if not blocks:
                continue
            if converted and converted[-1]["role"] == role:
                converted[-1]["content"].extend(blocks)
            else:
                converted.append({"role": role, "content": blocks})

        return "\n\n".join(system_parts), converted

    @staticmethod
    def to_provider_tools(tools: Sequence[ToolSchema]) -> List[Dict[str, Any]]:
        return [
            {"name": tool["name"], "description": tool["description"], "input_schema": tool["parameters"]}
            for tool in tools
        ]

    def complete(self, messages: Sequence[Message], tools: Sequence[ToolSchema]) -> ModelResponse:
        system, provider_messages = self.to_provider_messages(messages)
        request: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.MAX_TOKENS,
            "messages": provider_messages,
        }
        if system:
            request["system"] = system
        if tools:
            request["tools"] = self.to_provider_tools(tools)

        try:
            response = self._get_client().messages.create(**request)
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Anthropic planner error: %s", str(exc))
            raise ModelCallError(f"Error calling Anthropic: {exc}") from exc

        texts: List[str] = []
        calls: List[ToolCall] = []
        # Handle different content block types from Anthropic API
        for block in response.content:
            if block.type == "text":
                texts.append(block.text)
            elif block.type == "tool_use":
                if isinstance(block.input, dict):
                    calls.append(ToolCall(id=block.id, name=block.name, args=block.input))
                else:
                    calls.append(
                        ToolCall(
                            id=block.id,
                            name=block.name,
                            argument_error="arguments must be a JSON object",
                        )
                    )

        logger.debug("Anthropic planner response: text=%r tool_calls=%s", texts, calls)
        return ModelResponse(text="".join(texts), tool_calls=calls)
