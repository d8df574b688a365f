#!/usr/bin/env python3
"""
HTTP client for the workflow surface of a running SentryAgent server.

Flow of `run_audit()`:
    create-run -> start-async -> poll runs/{runId} -> execution-result
"""

import time
from typing import Any, Callable, Dict, Optional

import requests

from sentryagent.utils.exceptions import WorkflowClientError
from sentryagent.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_BASE_URL = "http://localhost:4111"
DEFAULT_WORKFLOW = "web3AuditWorkflow"
REQUEST_TIMEOUT = 30
POLL_INTERVAL = 3.0
USER_AGENT = "SentryAgent-Audit/1.0.0"


class WorkflowClient:
    """
    Drives one workflow over HTTP.

    Args:
        base_url: Server base URL.
        workflow_id: Workflow key or id.
        timeout: Per-request timeout in seconds.
        poll_interval: Seconds between status polls.
        session: Optional requests session (tests inject one).
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        workflow_id: str = DEFAULT_WORKFLOW,
        timeout: int = REQUEST_TIMEOUT,
        poll_interval: float = POLL_INTERVAL,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.workflow_id = workflow_id
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json", "User-Agent": USER_AGENT})

    def _url(self, path: str) -> str:
        return f"{self.base_url}/api/workflows/{self.workflow_id}/{path}"

    def _request(self, method: str, path: str, what: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = self.session.request(method, self._url(path), json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise WorkflowClientError(f"Failed to {what}: {e}", cause=e) from e

        if response.status_code not in (200, 202):
            raise WorkflowClientError(f"Failed to {what}: {response.status_code} - {response.text}")
        try:
            return response.json()
        except ValueError as e:
            raise WorkflowClientError(f"Failed to {what}: response is not JSON", cause=e) from e

    def create_run(self, run_id: Optional[str] = None) -> str:
        body = {"runId": run_id} if run_id else None
        data = self._request("POST", "create-run", "create run", body)
        return data["runId"]

    def start_async(self, run_id: str, input_data: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "start-async", "start workflow", {"runId": run_id, "inputData": input_data})

    def get_run(self, run_id: str) -> Dict[str, Any]:
        return self._request("GET", f"runs/{run_id}", "get run status")

    def get_execution_result(self, run_id: str) -> Dict[str, Any]:
        return self._request("GET", f"runs/{run_id}/execution-result", "get result")

    def watch(
        self,
        run_id: str,
        on_status: Optional[Callable[[Dict[str, Any]], None]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> Dict[str, Any]:
        """
        Poll the run until it reaches a terminal status.

        Returns:
            The last run status payload.

        Raises:
            WorkflowClientError: If the run failed or polling failed.
        """
        last_status = ""
        while True:
            data = self.get_run(run_id)
            status = data.get("status", "")
            if status != last_status:
                logger.info("Status: %s (%s%%)", status, data.get("progress", 0))
                last_status = status
            if on_status is not None:
                on_status(data)
            if status == "completed":
                return data
            if status == "failed":
                raise WorkflowClientError(f"Workflow failed: {data.get('error', 'unknown error')}")
            sleep(self.poll_interval)

    def run_audit(
        self,
        repo_url: str,
        token: str = "",
        scan_id: Optional[str] = None,
        include_security_analysis: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ) -> Dict[str, Any]:
        """Run one audit end to end and return the report payload."""
        logger.info("Creating workflow run...")
        run_id = self.create_run()
        logger.info("[+] Run created: %s", run_id)

        input_data = {
            "scanId": scan_id or f"audit-{int(time.time() * 1000)}",
            "repoUrl": repo_url,
            "token": token,
            "includeSecurityAnalysis": include_security_analysis,
        }
        self.start_async(run_id, input_data)
        logger.info("[+] Workflow started")

        self.watch(run_id, sleep=sleep)
        logger.info("Fetching audit report...")
        return self.get_execution_result(run_id)
