"""
Runs API - Start, stop and inspect agent runs.
"""

from typing import Any, Literal

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from ...core.config import load_agent_config
from ...core.errors import ConfigurationError
from ...core.models import Summary
from ...agents.synthesizer import synthesize
from ..registry import RunHandle, RunRegistry


router = APIRouter()


class StartRunRequest(BaseModel):
    """Request to start a run. Unset fields fall back to settings."""
    url: str = Field(..., description="Base URL to analyze")
    max_pages: int | None = None
    max_depth: int | None = None
    timeout_ms: int | None = None
    experiment_mode: bool | None = None
    monitor_mode: bool = False
    monitor_interval_ms: int | None = None
    max_monitor_cycles: int | None = None
    use_ai: bool | None = None
    llm_provider: Literal["openai", "anthropic"] | None = None


class RunStatus(BaseModel):
    """Run status response model."""
    run_id: str
    base_url: str
    phase: str
    running: bool
    stop_requested: bool
    pages_analyzed: int
    pending: int
    failed: int
    insights: int
    error: str | None = None


def _registry(req: Request) -> RunRegistry:
    return req.app.state.runs


def _handle(req: Request, run_id: str) -> RunHandle:
    handle = _registry(req).get(run_id)
    if handle is None:
        raise HTTPException(status_code=404, detail="Run not found")
    return handle


def _status(handle: RunHandle) -> RunStatus:
    memory = handle.agent.memory
    return RunStatus(
        run_id=handle.run_id,
        base_url=memory.base_url,
        phase=handle.agent.phase.value,
        running=handle.running,
        stop_requested=handle.agent.stop_token.stopped,
        pages_analyzed=memory.pages_analyzed,
        pending=len(memory.pending),
        failed=len(memory.failed),
        insights=len(memory.insights),
        error=handle.error,
    )


@router.post("", response_model=RunStatus, status_code=201)
async def start_run(request: StartRunRequest, req: Request) -> RunStatus:
    """
    Start a run in the background.

    Returns:
        Initial status of the new run
    """
    overrides = request.model_dump(exclude={"url"})
    try:
        config = load_agent_config(request.url, **overrides)
        handle = _registry(req).start(config)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _status(handle)


@router.post("/{run_id}/stop", response_model=RunStatus)
async def stop_run(run_id: str, req: Request) -> RunStatus:
    """Request a cooperative stop. The current page or experiment finishes first."""
    handle = _handle(req, run_id)
    if not handle.running:
        raise HTTPException(status_code=400, detail="Run is not running")
    handle.agent.stop()
    return _status(handle)


@router.get("/{run_id}", response_model=RunStatus)
async def get_run(run_id: str, req: Request) -> RunStatus:
    return _status(_handle(req, run_id))


@router.get("/{run_id}/summary", response_model=Summary)
async def get_summary(run_id: str, req: Request) -> Summary:
    """Synthesize a fresh summary from the run's current memory."""
    handle = _handle(req, run_id)
    config = handle.agent.config
    return synthesize(handle.agent.memory, config.reference_url, config.experiment_mode)


@router.get("/{run_id}/memory")
async def get_memory(run_id: str, req: Request) -> dict[str, Any]:
    """Insights, failures, experiments and learned rules accumulated so far."""
    memory = _handle(req, run_id).agent.memory
    return {
        "run_id": memory.run_id,
        "base_url": memory.base_url,
        "analyzed": list(memory.pages),
        "pending": list(memory.pending),
        "failed": memory.failed,
        "insights": memory.insights,
        "experiments": [e.model_dump(mode="json") for e in memory.experiments],
        "learned_rules": [r.model_dump() for r in memory.learned_rules],
        "recon": memory.recon.model_dump(mode="json"),
        "snapshots": len(memory.snapshots),
    }


@router.get("/{run_id}/events")
async def get_events(run_id: str, req: Request, limit: int = 50) -> list[dict[str, Any]]:
    """Most recent events of the run, oldest first."""
    handle = _handle(req, run_id)
    return [event.to_message() for event in handle.events.recent(limit)]
