#!/usr/bin/env python3
"""
A small run-based workflow engine.

A `Workflow` is an ordered list of `Step`s. Each step declares a pydantic
input and output model; data crossing a step boundary is validated against
both, and a validation failure fails the run. Steps run strictly in
sequence with no retries.

Run lifecycle:
    pending -> running -> completed | failed
"""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError

from sentryagent.utils.exceptions import WorkflowError, WorkflowSchemaError
from sentryagent.utils.logger import get_logger

logger = get_logger(__name__)


class RunStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RunStatus.COMPLETED, RunStatus.FAILED)


StepExecutor = Callable[[Any], Awaitable[Any]]
ProgressCallback = Callable[["WorkflowRun"], None]


@dataclass(frozen=True)
class Step:
    """One stage of a workflow."""

    id: str
    description: str
    input_model: Type[BaseModel]
    output_model: Type[BaseModel]
    execute: StepExecutor


@dataclass
class StepRecord:
    status: RunStatus = RunStatus.PENDING
    started_at: Optional[float] = None
    ended_at: Optional[float] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": self.status.value}
        if self.started_at is not None:
            data["startedAt"] = self.started_at
        if self.ended_at is not None:
            data["endedAt"] = self.ended_at
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class RunResult:
    run_id: str
    status: RunStatus
    result: Optional[BaseModel] = None
    error: Optional[str] = None


def _validate(model: Type[BaseModel], data: Any, step_id: str, boundary: str) -> BaseModel:
    if isinstance(data, BaseModel):
        data = data.model_dump()
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise WorkflowSchemaError(step_id, boundary, str(e), cause=e) from e


@dataclass
class WorkflowRun:
    """One execution of a workflow."""

    workflow: "Workflow"
    run_id: str
    status: RunStatus = RunStatus.PENDING
    steps: Dict[str, StepRecord] = field(default_factory=dict)
    result: Optional[BaseModel] = None
    error: Optional[str] = None
    on_progress: Optional[ProgressCallback] = None

    def __post_init__(self) -> None:
        for step in self.workflow.steps:
            self.steps.setdefault(step.id, StepRecord())

    @property
    def completed_steps(self) -> int:
        return sum(1 for record in self.steps.values() if record.status == RunStatus.COMPLETED)

    @property
    def progress(self) -> int:
        """Percentage of steps completed (100 once the run completed)."""
        if self.status == RunStatus.COMPLETED:
            return 100
        if not self.steps:
            return 0
        return int(100 * self.completed_steps / len(self.steps))

    def _notify(self) -> None:
        if self.on_progress is not None:
            self.on_progress(self)

    async def start(self, input_data: Any) -> RunResult:
        """
        Execute every step in order.

        Args:
            input_data: Workflow input (dict or model instance), validated
                against the first step's input model.

        Returns:
            RunResult: Completed with the last step's output, or failed with
                the triggering error message. Step errors are not raised.

        Raises:
            WorkflowError: If the run was already started.
        """
        if self.status != RunStatus.PENDING:
            raise WorkflowError(f"Run {self.run_id} was already started (status: {self.status.value})")

        self.status = RunStatus.RUNNING
        logger.info("Starting run %s of workflow %s", self.run_id, self.workflow.id)
        self._notify()

        data: Any = input_data
        total = len(self.workflow.steps)

        for index, step in enumerate(self.workflow.steps, start=1):
            record = self.steps[step.id]
            record.status = RunStatus.RUNNING
            record.started_at = time.time()
            logger.info("\nStep %d/%d: %s", index, total, step.description)
            logger.info("-" * 60)

            try:
                step_input = _validate(step.input_model, data, step.id, "input")
                output = await step.execute(step_input)
                data = _validate(step.output_model, output, step.id, "output")
            except Exception as e:
                record.status = RunStatus.FAILED
                record.ended_at = time.time()
                record.error = str(e)
                self.status = RunStatus.FAILED
                self.error = str(e)
                logger.error("[-] Step %d (%s) failed: %s", index, step.id, e)
                self._notify()
                return RunResult(run_id=self.run_id, status=self.status, error=self.error)

            record.status = RunStatus.COMPLETED
            record.ended_at = time.time()
            self._notify()

        self.status = RunStatus.COMPLETED
        self.result = data
        logger.info("[+] Run %s completed", self.run_id)
        self._notify()
        return RunResult(run_id=self.run_id, status=self.status, result=self.result)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "runId": self.run_id,
            "workflowId": self.workflow.id,
            "status": self.status.value,
            "progress": self.progress,
            "steps": {step_id: record.to_dict() for step_id, record in self.steps.items()},
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class Workflow:
    """An ordered, linear sequence of steps."""

    id: str
    steps: List[Step]
    description: str = ""

    def __post_init__(self) -> None:
        if not self.steps:
            raise WorkflowError(f"Workflow {self.id} has no steps")
        ids = [step.id for step in self.steps]
        if len(set(ids)) != len(ids):
            raise WorkflowError(f"Workflow {self.id} has duplicate step ids: {ids}")

    @property
    def input_model(self) -> Type[BaseModel]:
        return self.steps[0].input_model

    @property
    def output_model(self) -> Type[BaseModel]:
        return self.steps[-1].output_model

    def create_run(self, run_id: Optional[str] = None, on_progress: Optional[ProgressCallback] = None) -> WorkflowRun:
        return WorkflowRun(workflow=self, run_id=run_id or str(uuid.uuid4()), on_progress=on_progress)

    async def execute(self, input_data: Any, run_id: Optional[str] = None) -> RunResult:
        """Create a run and start it immediately."""
        return await self.create_run(run_id).start(input_data)
