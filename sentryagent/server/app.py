"""Starlette application exposing the audit workflow over HTTP.

Two surfaces share one app:

- ``/api/workflows/...``: run-based workflow protocol (create a run, start it
  synchronously or in the background, poll it, fetch its result).
- ``/scan/...``: thin scan API used by the web front-end.

Both keep their state in injected RunStore instances.
"""

from __future__ import annotations

import json
import time
from typing import Any, Dict, Optional

from pydantic import BaseModel
from starlette.applications import Starlette
from starlette.background import BackgroundTask
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from sentryagent.server.store import InMemoryRunStore, RunStore, ScanRecord
from sentryagent.utils.exceptions import (
    RunNotFoundError,
    SentryAgentError,
    WorkflowError,
    WorkflowNotFoundError,
)
from sentryagent.utils.logger import get_logger
from sentryagent.workflow.audit_workflow import WORKFLOW_KEY, WorkflowRegistry
from sentryagent.workflow.engine import RunStatus, Workflow, WorkflowRun

logger = get_logger(__name__)

SCAN_STARTED_PROGRESS = 5


class BadRequest(Exception):
    pass


def _dump(model: Optional[BaseModel]) -> Optional[Dict[str, Any]]:
    if model is None:
        return None
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


async def _read_json(request: Request) -> Dict[str, Any]:
    body = await request.body()
    if not body:
        return {}
    try:
        data = json.loads(body)
    except ValueError as e:
        raise BadRequest(f"Invalid JSON body: {e}") from e
    if not isinstance(data, dict):
        raise BadRequest("JSON body must be an object")
    return data


def create_app(
    registry: WorkflowRegistry,
    run_store: Optional[RunStore[WorkflowRun]] = None,
    scan_store: Optional[RunStore[ScanRecord]] = None,
    scan_workflow: str = WORKFLOW_KEY,
) -> Starlette:
    """Build the Starlette application.

    Args:
        registry: Workflows served under ``/api/workflows/{id}``.
        run_store: Storage for workflow runs (in-memory by default).
        scan_store: Storage for scan records (in-memory by default).
        scan_workflow: Key of the workflow the thin scan API runs.
    """
    runs: RunStore[WorkflowRun] = run_store if run_store is not None else InMemoryRunStore()
    scans: RunStore[ScanRecord] = scan_store if scan_store is not None else InMemoryRunStore()

    def _get_run(workflow: Workflow, run_id: str) -> WorkflowRun:
        run = runs.get(run_id)
        if run is None or run.workflow is not workflow:
            raise RunNotFoundError(f"Run not found: {run_id}")
        return run

    # -- workflow surface ---------------------------------------------------

    async def list_workflows(request: Request) -> JSONResponse:
        data = {}
        for key in registry.keys():
            workflow = registry.get(key)
            data[key] = {
                "id": workflow.id,
                "description": workflow.description,
                "steps": [{"id": step.id, "description": step.description} for step in workflow.steps],
            }
        return JSONResponse(data)

    async def create_run(request: Request) -> JSONResponse:
        workflow = registry.get(request.path_params["workflow_id"])
        body = await _read_json(request)
        run_id = body.get("runId") or request.query_params.get("runId")
        if run_id and runs.get(run_id) is not None:
            return _error(f"Run already exists: {run_id}", 409)
        run = workflow.create_run(run_id)
        runs.set(run.run_id, run)
        logger.info("Created run %s for %s", run.run_id, workflow.id)
        return JSONResponse({"runId": run.run_id})

    async def _prepare_start(request: Request) -> tuple[WorkflowRun, Dict[str, Any]]:
        workflow = registry.get(request.path_params["workflow_id"])
        body = await _read_json(request)
        run_id = body.get("runId") or request.query_params.get("runId")
        if not run_id:
            raise BadRequest("runId is required")
        run = _get_run(workflow, run_id)
        if run.status != RunStatus.PENDING:
            raise WorkflowError(f"Run {run_id} was already started (status: {run.status.value})")
        return run, body.get("inputData") or {}

    async def start(request: Request) -> JSONResponse:
        run, input_data = await _prepare_start(request)
        result = await run.start(input_data)
        payload: Dict[str, Any] = {"runId": run.run_id, "status": result.status.value}
        if result.result is not None:
            payload["result"] = _dump(result.result)
        if result.error:
            payload["error"] = result.error
        return JSONResponse(payload)

    async def start_async(request: Request) -> JSONResponse:
        run, input_data = await _prepare_start(request)
        return JSONResponse(
            {"runId": run.run_id, "message": "Workflow run started"},
            status_code=202,
            background=BackgroundTask(run.start, input_data),
        )

    async def get_run(request: Request) -> JSONResponse:
        workflow = registry.get(request.path_params["workflow_id"])
        run = _get_run(workflow, request.path_params["run_id"])
        return JSONResponse(run.to_dict())

    async def execution_result(request: Request) -> JSONResponse:
        workflow = registry.get(request.path_params["workflow_id"])
        run = _get_run(workflow, request.path_params["run_id"])
        if not run.status.is_terminal:
            return _error("not completed", 400)
        if run.status == RunStatus.FAILED:
            return JSONResponse({"status": run.status.value, "error": run.error}, status_code=400)
        return JSONResponse(_dump(run.result))

    # -- thin scan API ------------------------------------------------------

    def _new_scan_id() -> str:
        scan_id = int(time.time() * 1000)
        while scans.get(str(scan_id)) is not None:
            scan_id += 1
        return str(scan_id)

    async def _run_scan(scan_id: str, input_data: Dict[str, Any]) -> None:
        workflow = registry.get(scan_workflow)

        def on_progress(run: WorkflowRun) -> None:
            if run.status == RunStatus.RUNNING:
                scans.set(scan_id, ScanRecord(status="in_progress", progress=max(SCAN_STARTED_PROGRESS, run.progress)))

        result = await workflow.create_run(scan_id, on_progress=on_progress).start(input_data)
        if result.status == RunStatus.COMPLETED:
            scans.set(scan_id, ScanRecord(status="completed", progress=100, result=_dump(result.result)))
        else:
            scans.set(scan_id, ScanRecord(status="failed", progress=0, error=result.error or "failed"))

    async def scan_start(request: Request) -> JSONResponse:
        body = await _read_json(request)
        repo_url = body.get("repoUrl")
        if not repo_url:
            return _error("repoUrl is required", 400)

        scan_id = _new_scan_id()
        scans.set(scan_id, ScanRecord(status="in_progress", progress=SCAN_STARTED_PROGRESS))
        input_data = {
            "scanId": scan_id,
            "repoUrl": repo_url,
            "token": body.get("token"),
            "model": body.get("model"),
            "includeSecurityAnalysis": True,
        }
        logger.info("Scan %s started for %s", scan_id, repo_url)
        return JSONResponse(
            {"scanId": scan_id, "status": "started"},
            background=BackgroundTask(_run_scan, scan_id, input_data),
        )

    async def scan_status(request: Request) -> JSONResponse:
        record = scans.get(request.path_params["scan_id"])
        if record is None:
            return JSONResponse({"status": "unknown", "progress": 0})
        return JSONResponse(record.status_dict())

    async def scan_report(request: Request) -> JSONResponse:
        record = scans.get(request.path_params["scan_id"])
        if record is None:
            return _error("not found", 404)
        if record.status != "completed":
            return _error("not completed", 400)
        return JSONResponse(record.result)

    # -- error mapping ------------------------------------------------------

    async def handle_bad_request(request: Request, exc: Exception) -> JSONResponse:
        return _error(str(exc), 400)

    async def handle_not_found(request: Request, exc: SentryAgentError) -> JSONResponse:
        return JSONResponse(exc.to_dict(), status_code=404)

    async def handle_conflict(request: Request, exc: SentryAgentError) -> JSONResponse:
        return JSONResponse(exc.to_dict(), status_code=409)

    routes = [
        Route("/api/workflows", list_workflows, methods=["GET"]),
        Route("/api/workflows/{workflow_id}/create-run", create_run, methods=["POST"]),
        Route("/api/workflows/{workflow_id}/createRun", create_run, methods=["POST"]),
        Route("/api/workflows/{workflow_id}/start", start, methods=["POST"]),
        Route("/api/workflows/{workflow_id}/start-async", start_async, methods=["POST"]),
        Route("/api/workflows/{workflow_id}/runs/{run_id}", get_run, methods=["GET"]),
        Route("/api/workflows/{workflow_id}/runs/{run_id}/execution-result", execution_result, methods=["GET"]),
        Route("/scan/start", scan_start, methods=["POST"]),
        Route("/scan/status/{scan_id}", scan_status, methods=["GET"]),
        Route("/scan/report/{scan_id}", scan_report, methods=["GET"]),
    ]

    return Starlette(
        routes=routes,
        exception_handlers={
            BadRequest: handle_bad_request,
            WorkflowNotFoundError: handle_not_found,
            RunNotFoundError: handle_not_found,
            WorkflowError: handle_conflict,
        },
    )
