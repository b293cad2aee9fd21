"""Prompt assembly from structured inputs.

The coaching prompt itself is an opaque template owned by the caller; these
builders only add the tool manifest, user context and closing directives.
"""

from __future__ import annotations

from typing import Sequence

from coach.core.types import ToolSpec

TOOL_USE_DIRECTIVE = (
    "CRITICAL: You have access to tools. When users ask about their workout plans, "
    "schedules, nutrition, or progress, ALWAYS use the appropriate tool to fetch real "
    "data or compute real numbers first. Do not give generic responses."
)

FALLBACK_DIRECTIVE = (
    "IMPORTANT: Provide a helpful, personalized response based on the user's context. "
    "Use the available information to give specific, actionable advice. Focus on the "
    "most relevant aspects of their fitness journey."
)


def _join(sections: Sequence[str]) -> str:
    return "\n\n".join(s.strip() for s in sections if s and s.strip())


def build_tool_manifest(tools: Sequence[ToolSpec]) -> str:
    """Describe tools for the model; empty string when there are none."""
    if not tools:
        return ""
    lines = [f"{tool.name}: {tool.description or 'No description available'}" for tool in tools]
    names = ", ".join(tool.name for tool in tools)
    return "Available tools:\n" + "\n".join(lines) + f"\n\nTool names: {names}"


def build_agent_instructions(system_prompt: str, tools: Sequence[ToolSpec]) -> str:
    """Instructions for the tool-calling agent."""
    manifest = build_tool_manifest(tools)
    return _join([system_prompt, manifest, TOOL_USE_DIRECTIVE if tools else ""])


def build_context_prompt(
    system_prompt: str,
    context_text: str | None = None,
    knowledge: str | None = None,
) -> str:
    """System prompt for the primary path with ranked user context appended."""
    sections = [system_prompt]
    if context_text:
        sections.append(f"User context:\n{context_text}")
    if knowledge:
        sections.append(f"Relevant knowledge:\n{knowledge}")
    return _join(sections)


def build_fallback_prompt(
    system_prompt: str,
    context_blocks: Sequence[str],
    knowledge: str | None = None,
) -> str:
    """Reduced system prompt for the degraded path.

    Args:
        system_prompt: Caller's coaching prompt
        context_blocks: Already-compressed user context blocks, in priority order
        knowledge: Already-compressed retrieved knowledge

    """
    return _join([system_prompt, *context_blocks, knowledge or "", FALLBACK_DIRECTIVE])
