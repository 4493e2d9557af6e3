"""Memory module - run-scoped agent memory."""

from .agent_memory import AgentMemory

__all__ = ["AgentMemory"]
