"""
Run Endpoints
=============
HTTP trigger surface for the maintenance agent.

Routes:
    POST /runs             — execute one run and return its RunResult
    POST /runs/cancel      — ask the active run to stop after its current attempt
    GET  /runs             — recent runs, newest first
    GET  /runs/{run_id}    — one run with its issues and fix attempts
    GET  /learning/stats   — aggregate learning-store figures

Only one run executes at a time; a second POST /runs while one is active
is refused with 409.
"""
import asyncio
import logging
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from janitor.agents.orchestrator import Orchestrator
from janitor.core.context import build_context
from janitor.models.run import Run, RunResult

logger = logging.getLogger(__name__)

router = APIRouter()

_run_lock = asyncio.Lock()
_orchestrator: Optional[Orchestrator] = None


def get_orchestrator() -> Orchestrator:
    """Process-wide orchestrator, built on first use (overridable in tests)."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = Orchestrator(build_context())
    return _orchestrator


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------
class RunRequest(BaseModel):
    dry_run: Optional[bool] = None
    max_tasks: Optional[int] = Field(default=None, ge=0)
    trigger_type: Literal["manual", "cron", "api"] = "api"


class RunDetail(BaseModel):
    run: Run
    issues: List[Dict[str, Any]]
    fix_attempts: List[Dict[str, Any]]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.post("/runs", response_model=RunResult)
async def start_run(
    request: Optional[RunRequest] = None,
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    request = request or RunRequest()
    if _run_lock.locked():
        raise HTTPException(status_code=409, detail="A run is already in progress")

    async with _run_lock:
        logger.info(
            "API run requested (trigger=%s, dry_run=%s, max_tasks=%s)",
            request.trigger_type, request.dry_run, request.max_tasks,
        )
        return await orchestrator.run(
            trigger_type=request.trigger_type,
            dry_run=request.dry_run,
            max_tasks=request.max_tasks,
        )


@router.post("/runs/cancel")
async def cancel_run(orchestrator: Orchestrator = Depends(get_orchestrator)):
    if not _run_lock.locked():
        return {"cancelled": False, "detail": "No run in progress"}
    orchestrator.cancel()
    return {"cancelled": True}


@router.get("/runs", response_model=List[Run])
async def list_runs(limit: int = 50, orchestrator: Orchestrator = Depends(get_orchestrator)):
    return orchestrator.context.repository.list_runs(limit=max(1, min(limit, 500)))


@router.get("/runs/{run_id}", response_model=RunDetail)
async def get_run(run_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)):
    repository = orchestrator.context.repository
    run = repository.get_run(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Run {run_id} not found")
    return RunDetail(
        run=run,
        issues=[issue.model_dump(mode="json") for issue in repository.get_issues(run_id)],
        fix_attempts=[a.model_dump(mode="json") for a in repository.get_attempts(run_id)],
    )


@router.get("/learning/stats")
async def learning_stats(orchestrator: Orchestrator = Depends(get_orchestrator)):
    return orchestrator.context.learning.stats()
