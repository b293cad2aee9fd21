"""Turn-scoped data passed between the runners and their caller."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from pydantic_ai.models import Model


@dataclass(frozen=True)
class ToolSpec:
    """A tool the agent may call.

    Attributes:
        name: Tool name shown to the model and recorded in metrics
        description: Human-readable description for the model
        invoke: Sync or async callable; its signature defines the arguments

    """

    name: str
    description: str
    invoke: Callable[..., Any]


@dataclass(frozen=True)
class AgentConfig:
    """Everything needed to run one conversational turn.

    Attributes:
        model: Pydantic AI model (any provider)
        tools: Ordered tool set
        user_id: Owner of the turn, for log correlation

    """

    model: Model
    tools: tuple[ToolSpec, ...] = ()
    user_id: str | None = None


@dataclass(frozen=True)
class ToolTraceEntry:
    """One tool invocation observed during a run."""

    tool_name: str
    input: Any
    output: Any


@dataclass
class ExecutionResult:
    """Outcome of one runner call.

    Attributes:
        output: Final text answer
        tool_trace: Tools actually invoked, in call order
        degraded: True when produced by the fallback path

    """

    output: str
    tool_trace: list[ToolTraceEntry] = field(default_factory=list)
    degraded: bool = False

    @property
    def tools_used(self) -> list[str]:
        return [entry.tool_name for entry in self.tool_trace]
