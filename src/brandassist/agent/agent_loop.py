"""Main orchestration loop for brandassist."""

from __future__ import annotations

import logging
from typing import (
    List,
    Sequence,
)

from brandassist.agent.planner_interface import (
    BasePlanner,
    load_planner,
)
from brandassist.agent.prompts import build_system_prompt
from brandassist.agent.tool_executor import execute_tool
from brandassist.config import settings
from brandassist.core.schema import (
    ConversationKind,
    Message,
    OrchestrationResult,
    RunState,
    ToolContext,
    ToolResult,
    Transcript,
)
from brandassist.tools import (
    ToolRegistry,
    get_tool_schemas,
    load_builtin_tools,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Orchestration loop
# ---------------------------------------------------------------------------
def run_orchestration(
    messages: Sequence[Message],
    kind: ConversationKind,
    context: ToolContext,
    *,
    planner: BasePlanner,
    registry: ToolRegistry,
    max_turns: int | None = None,
) -> OrchestrationResult:
    """
    Drive the model/tool exchange for one inbound message.

    Each turn submits the transcript and the tools enabled for *kind* to the model.  A reply
    without tool calls ends the run (``answered``).  Otherwise every requested call is executed in
    order, the assistant request and all tool results are appended, and the turn counter advances;
    at *max_turns* the run ends with the last model text (``budget_exhausted``).

    Model-call failures (:class:`~brandassist.core.errors.ModelCallError`) propagate to the caller.
    Tool failures never do: they come back as error results the model can react to.
    """
    max_turns = settings.MAX_TURNS if max_turns is None else max_turns
    if max_turns < 1:
        raise ValueError("max_turns must be at least 1")

    transcript = Transcript(messages)
    tool_results: List[ToolResult] = []
    last_text = ""
    turn = 0
    state = RunState.RUNNING

    while state is RunState.RUNNING:
        # Recomputed every turn
        active = registry.active_tools(kind)
        response = planner.complete(transcript.messages, get_tool_schemas(active))
        last_text = response.text

        if not response.tool_calls:
            transcript.append(Message.assistant(response.text))
            state = RunState.ANSWERED
            break

        logger.info(
            "Turn %d: model requested %d tool call(s): %s",
            turn + 1,
            len(response.tool_calls),
            [call.name for call in response.tool_calls],
        )
        transcript.append(Message.assistant(response.text, response.tool_calls))

        by_name = {tool.name: tool for tool in active}
        for call in response.tool_calls:
            result = execute_tool(call, context, by_name)
            tool_results.append(result)
            transcript.append(result.to_message())

        turn += 1
        if turn >= max_turns:
            state = RunState.BUDGET_EXHAUSTED

    model_calls = turn + 1 if state is RunState.ANSWERED else turn
    logger.info("Run finished: state=%s model_calls=%d", state.value, model_calls)
    return OrchestrationResult(
        text=last_text,
        state=state,
        model_calls=model_calls,
        transcript=list(transcript.messages),
        tool_results=tool_results,
    )


def answer_message(
    messages: Sequence[Message],
    kind: ConversationKind,
    context: ToolContext,
    *,
    planner: BasePlanner | None = None,
    persona: str | None = None,
    registry: ToolRegistry | None = None,
) -> OrchestrationResult:
    """
    Answer one inbound chat message.

    Prepends the persona system prompt to *messages* and runs the orchestration loop over the
    built-in tools.  The result text may be empty if the turn budget ran out before the model
    wrote anything.
    """
    planner = planner or load_planner()
    registry = registry or load_builtin_tools()
    system = Message.system(build_system_prompt(persona or settings.PERSONA, kind))

    result = run_orchestration(
        [system, *messages], kind, context, planner=planner, registry=registry
    )
    if result.state is RunState.BUDGET_EXHAUSTED:
        logger.warning(
            "Turn budget exhausted for channel=%s thread=%s", context.channel, context.thread_ts
        )
    return result


def respond_to_message(
    messages: Sequence[Message],
    kind: ConversationKind,
    context: ToolContext,
    *,
    planner: BasePlanner | None = None,
    persona: str | None = None,
    registry: ToolRegistry | None = None,
) -> str:
    """Like :func:`answer_message`, returning only the answer text."""
    return answer_message(
        messages, kind, context, planner=planner, persona=persona, registry=registry
    ).text
