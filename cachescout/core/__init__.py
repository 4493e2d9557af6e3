"""Core module - configuration, errors, models, run state, events and guardrails."""

from .config import settings, Settings, AgentConfig, load_agent_config
from .errors import (
    CacheScoutError,
    ConfigurationError,
    ProbeError,
    AnalysisError,
    GuardrailViolation,
)
from .state import AgentPhase, StopToken
from .events import EventBus, EventType, AgentEvent
from .models import (
    ActionType,
    Decision,
    FetchResult,
    CacheTestResult,
    PageAnalysis,
    PageFindings,
    Experiment,
    LearnedRule,
    Summary,
    Snapshot,
    Change,
)
from .guardrails import Guardrails

__all__ = [
    "settings",
    "Settings",
    "AgentConfig",
    "load_agent_config",
    "CacheScoutError",
    "ConfigurationError",
    "ProbeError",
    "AnalysisError",
    "GuardrailViolation",
    "AgentPhase",
    "StopToken",
    "EventBus",
    "EventType",
    "AgentEvent",
    "ActionType",
    "Decision",
    "FetchResult",
    "CacheTestResult",
    "PageAnalysis",
    "PageFindings",
    "Experiment",
    "LearnedRule",
    "Summary",
    "Snapshot",
    "Change",
    "Guardrails",
]
