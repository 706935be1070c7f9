"""
Tool registry for brandassist.

This module provides a decorator to register tools and a registry to look them up by name.
A tool is a function ``fn(params, context)`` taking a validated pydantic input model and the
per-run :class:`~brandassist.core.schema.ToolContext`, returning text or a
:class:`~brandassist.core.schema.ToolOutput`.
"""

import importlib
import logging
from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Type,
    TypedDict,
)

from pydantic import (
    BaseModel,
    ConfigDict,
)
from pydantic.alias_generators import to_camel

from brandassist.core.schema import ConversationKind

logger = logging.getLogger(__name__)

ALL_KINDS: FrozenSet[ConversationKind] = frozenset(ConversationKind)

BUILTIN_TOOL_MODULES = (
    "brandassist.tools.slack_tools",
    "brandassist.tools.web_search",
    "brandassist.tools.knowledge",
    "brandassist.tools.products",
    "brandassist.tools.vectorize",
    "brandassist.tools.memory_tools",
)


class ToolInput(BaseModel):
    """
    Base class for tool input schemas.

    Field names are exposed to the model in camelCase; unknown fields are rejected so the model
    gets a corrective message instead of a silently ignored argument.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class EmptyInput(ToolInput):
    """Input schema for tools that take no arguments."""


class ToolSchema(TypedDict):
    """
    Schema for a tool function, in the shape the model backends expect.
    """

    name: str
    description: str
    parameters: Mapping[str, Any]


@dataclass(frozen=True)
class Tool:
    """A registry entry: name, description, input schema, execute function and enabled kinds."""

    name: str
    description: str
    input_model: Type[ToolInput]
    fn: Callable[..., Any]
    kinds: FrozenSet[ConversationKind] = ALL_KINDS

    def schema(self) -> ToolSchema:
        return ToolSchema(
            name=self.name,
            description=self.description,
            parameters=self.input_model.model_json_schema(by_alias=True),
        )


class ToolRegistry:
    """Name -> :class:`Tool` mapping, frozen once startup registration is done."""

    def __init__(self) -> None:
        self._tools: Dict[str, Tool] = {}
        self._frozen = False

    def register(self, tool: Tool) -> Tool:
        """
        Add *tool* to the registry.

        Raises
        ------
        ValueError
            If a tool with the same name is already registered.
        RuntimeError
            If the registry has been frozen.
        """
        if self._frozen:
            raise RuntimeError(f"Cannot register '{tool.name}': the tool registry is frozen.")
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered.")
        if not tool.kinds:
            raise ValueError(f"Tool '{tool.name}' must be enabled for at least one kind.")
        logger.debug("Registering tool '%s'", tool.name)
        self._tools[tool.name] = tool
        return tool

    def tool(
        self,
        name: str,
        *,
        description: str,
        input_model: Type[ToolInput] = EmptyInput,
        kinds: Iterable[ConversationKind] = ALL_KINDS,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of :meth:`register`; returns the function unchanged."""

        def wrapper(fn: Callable[..., Any]) -> Callable[..., Any]:
            self.register(Tool(name, description, input_model, fn, frozenset(kinds)))
            return fn

        return wrapper

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools)

    def active_tools(self, kind: ConversationKind) -> List[Tool]:
        """Return the tools enabled for *kind*, in registration order."""
        return [tool for tool in self._tools.values() if kind in tool.kinds]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


TOOL_REGISTRY = ToolRegistry()
"""Process-wide registry of the built-in tools."""


def register_tool(
    name: str,
    *,
    description: str,
    input_model: Type[ToolInput] = EmptyInput,
    kinds: Iterable[ConversationKind] = ALL_KINDS,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Register a tool function in :data:`TOOL_REGISTRY`.

    The function is registered as a decorator, so it can be used like this:
        @register_tool("my_tool", description="...", input_model=MyInput)
        def my_tool(params: MyInput, context: ToolContext) -> str:
            ...

    Parameters
    ----------
    name: str
        The model-visible tool name.  Must be unique.
    description: str
        Guides the model's decision to call the tool.
    input_model:
        Pydantic model the raw arguments are validated against before execution.
    kinds:
        Conversation kinds the tool is enabled for (default: all).
    """
    return TOOL_REGISTRY.tool(name, description=description, input_model=input_model, kinds=kinds)


def get_tool_schemas(tools: Sequence[Tool]) -> List[ToolSchema]:
    """Return the model-facing schemas for *tools*."""
    return [tool.schema() for tool in tools]


def load_builtin_tools() -> ToolRegistry:
    """Import every built-in tool module, then freeze :data:`TOOL_REGISTRY`."""
    if not TOOL_REGISTRY.frozen:
        for module in BUILTIN_TOOL_MODULES:
            importlib.import_module(module)
        TOOL_REGISTRY.freeze()
        logger.info("Loaded %d tools: %s", len(TOOL_REGISTRY), TOOL_REGISTRY.names())
    return TOOL_REGISTRY
