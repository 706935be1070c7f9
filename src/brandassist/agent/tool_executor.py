"""Dispatches tool calls against the active tool set and turns every outcome into a ToolResult."""

import logging
from typing import Mapping

from pydantic import ValidationError

from brandassist.core.errors import (
    ToolErrorKind,
    ToolFailure,
)
from brandassist.core.schema import (
    ToolCall,
    ToolContext,
    ToolOutput,
    ToolResult,
)
from brandassist.tools import Tool

logger = logging.getLogger(__name__)


def _failure(call: ToolCall, kind: ToolErrorKind, content: str) -> ToolResult:
    return ToolResult(
        call_id=call.id, name=call.name, content=content, is_error=True, error_kind=kind
    )


def _format_validation_error(exc: ValidationError) -> str:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"]) or "input"
        problems.append(f"{location}: {err['msg']}")
    return "; ".join(problems)


def execute_tool(call: ToolCall, context: ToolContext, active: Mapping[str, Tool]) -> ToolResult:
    """
    Validate *call* against *active* and run it.

    Parameters
    ----------
    call:
        The model's tool invocation request.
    context:
        Ambient identifiers for the current run.
    active:
        Tools enabled for the current conversation kind, keyed by name.

    Returns
    -------
    ToolResult
        Always.  Unknown names, invalid input and any error raised by the tool become an error
        result describing what went wrong; nothing raised inside a tool escapes this function.
    """
    tool = active.get(call.name)
    if tool is None:
        logger.warning("Rejected call to unavailable tool '%s'", call.name)
        available = ", ".join(sorted(active)) or "none"
        return _failure(
            call,
            ToolErrorKind.UNKNOWN_TOOL,
            f"Tool '{call.name}' is not available in this conversation. "
            f"Available tools: {available}.",
        )

    if call.argument_error:
        return _failure(
            call,
            ToolErrorKind.VALIDATION,
            f"Invalid arguments for tool '{call.name}': {call.argument_error}. "
            "Send the arguments as a JSON object.",
        )

    try:
        params = tool.input_model.model_validate(call.args)
    except ValidationError as exc:
        logger.info("Invalid arguments for tool '%s': %s", call.name, exc)
        return _failure(
            call,
            ToolErrorKind.VALIDATION,
            f"Invalid arguments for tool '{call.name}': {_format_validation_error(exc)}. "
            "Correct the arguments and try again.",
        )

    try:
        logger.debug("Executing tool '%s' with args=%s", call.name, call.args)
        output = tool.fn(params, context)
    except ToolFailure as exc:
        logger.warning("Tool '%s' failed (%s): %s", call.name, exc.kind.value, exc.message)
        return _failure(call, exc.kind, exc.describe())
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("Unhandled error in tool '%s'", call.name)
        return _failure(call, ToolErrorKind.INTERNAL, f"Tool '{call.name}' raised an error: {exc}")

    if isinstance(output, ToolOutput):
        return ToolResult(call_id=call.id, name=call.name, content=output.text, blocks=output.blocks)
    return ToolResult(call_id=call.id, name=call.name, content=str(output))
