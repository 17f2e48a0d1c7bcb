"""
Dependency/condition workflow executor

Runs a WorkflowDefinition in rounds. Each round scans the pending steps in
declaration order and runs every step whose dependencies have completed and
whose condition holds; results are merged into the state immediately, so a
step later in the same scan already sees them. A round without progress is
a stall.
"""
import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Mapping, Optional, Set, Tuple, Union

from learnflow.utils.logger import get_logger
from learnflow.workflow.state import WorkflowState, initial_state, merge_state

logger = get_logger(__name__)

STALL_MESSAGE = "Workflow execution stalled - possible circular dependency or unmet condition"

StepHandler = Callable[[WorkflowState], Awaitable[Dict[str, Any]]]
StepCondition = Callable[[WorkflowState], bool]


class WorkflowInputError(ValueError):
    """Unknown workflow or missing required input"""


class FailurePolicy(str, Enum):
    CONTINUE = "continue"                 # a failed step counts as completed
    SKIP_DEPENDENTS = "skip_dependents"   # dependents of a failed step are skipped


@dataclass
class WorkflowStep:
    id: str
    name: str
    handler: StepHandler
    dependencies: List[str] = field(default_factory=list)
    condition: Optional[StepCondition] = None


@dataclass
class WorkflowDefinition:
    id: str
    name: str
    description: str
    steps: List[WorkflowStep]

    def __post_init__(self):
        ids = [step.id for step in self.steps]
        duplicates = sorted({step_id for step_id in ids if ids.count(step_id) > 1})
        if duplicates:
            raise WorkflowInputError(f"Duplicate step ids in workflow {self.id}: {', '.join(duplicates)}")

    def step_ids(self) -> List[str]:
        return [step.id for step in self.steps]


class WorkflowExecutor:
    """
    Example:
        executor = WorkflowExecutor(build_default_definitions(StepHandlers(agents)))
        state = await executor.run("full_pipeline", {"url": "https://docs.python.org/3/"})
        if state["completed"]:
            print(state["learning_path"])
    """

    def __init__(
        self,
        definitions: Optional[Mapping[str, WorkflowDefinition]] = None,
        failure_policy: FailurePolicy = FailurePolicy.CONTINUE,
        step_timeout: Optional[float] = None,
    ):
        self._definitions: Dict[str, WorkflowDefinition] = dict(definitions or {})
        self.failure_policy = failure_policy
        self.step_timeout = step_timeout

    def register_definition(self, definition: WorkflowDefinition) -> None:
        if definition.id in self._definitions:
            logger.info(f"Replacing workflow definition: {definition.id}")
        self._definitions[definition.id] = definition

    def get_definition(self, workflow_id: str) -> WorkflowDefinition:
        try:
            return self._definitions[workflow_id]
        except KeyError:
            raise WorkflowInputError(f"Unknown workflow: {workflow_id}") from None

    def get_available_workflows(self) -> List[Dict[str, Any]]:
        return [
            {
                "id": definition.id,
                "name": definition.name,
                "description": definition.description,
                "steps": definition.step_ids(),
            }
            for definition in self._definitions.values()
        ]

    def get_workflow_visualization(self, workflow_id: str) -> str:
        """Mermaid flowchart of the definition; conditional edges are labelled."""
        definition = self.get_definition(workflow_id)
        lines = ["graph TD"]
        for step in definition.steps:
            label = step.name.replace('"', "'")
            lines.append(f'    {step.id}["{label}"]')
        for step in definition.steps:
            for dependency in step.dependencies:
                arrow = "-->|conditional|" if step.condition is not None else "-->"
                lines.append(f"    {dependency} {arrow} {step.id}")
        return "\n".join(lines)

    async def run(
        self,
        workflow: Union[str, WorkflowDefinition],
        initial_inputs: Optional[Mapping[str, Any]] = None,
    ) -> WorkflowState:
        final_state: Optional[WorkflowState] = None
        async for snapshot in self.stream(workflow, initial_inputs):
            final_state = snapshot
        return final_state  # type: ignore[return-value]

    async def stream(
        self,
        workflow: Union[str, WorkflowDefinition],
        initial_inputs: Optional[Mapping[str, Any]] = None,
    ) -> AsyncIterator[WorkflowState]:
        """Yield a snapshot after every step and after a stall, then the final state."""
        definition = workflow if isinstance(workflow, WorkflowDefinition) else self.get_definition(workflow)
        state = initial_state(initial_inputs)
        pending = list(definition.steps)
        completed: Set[str] = set()
        failed: Set[str] = set()

        logger.info(f"Workflow {definition.id} started (session={state['session_id']}, steps={len(pending)})")

        while pending:
            progressed = False
            for step in list(pending):
                if not self._is_ready(step, completed, state):
                    continue
                pending.remove(step)
                progressed = True

                if self.failure_policy == FailurePolicy.SKIP_DEPENDENTS and failed.intersection(step.dependencies):
                    logger.warning(f"Skipping step {step.id}: a dependency failed")
                    failed.add(step.id)
                    completed.add(step.id)
                    state = merge_state(state, {
                        "current_step": step.id,
                        "errors": [f"{step.name}: skipped because a dependency failed"],
                    })
                    yield state
                    continue

                state = merge_state(state, {"current_step": step.id})
                update, error = await self._execute_step(step, state)
                if error is not None:
                    failed.add(step.id)
                completed.add(step.id)
                state = merge_state(state, update)
                state = merge_state(state, {"completed_steps": [step.id]})
                yield state

            if not progressed:
                logger.error(
                    f"Workflow {definition.id} stalled with pending steps: "
                    f"{', '.join(step.id for step in pending)}"
                )
                state = merge_state(state, {"errors": [STALL_MESSAGE], "stalled": True})
                yield state
                break

        state = merge_state(state, {
            "current_step": None,
            "completed": not pending and not state.get("errors"),
        })
        logger.info(
            f"Workflow {definition.id} finished: completed={state['completed']}, "
            f"errors={len(state.get('errors', []))}"
        )
        yield state

    @staticmethod
    def _is_ready(step: WorkflowStep, completed: Set[str], state: WorkflowState) -> bool:
        if any(dependency not in completed for dependency in step.dependencies):
            return False
        if step.condition is None:
            return True
        try:
            return bool(step.condition(state))
        except Exception as e:
            logger.warning(f"Condition of step {step.id} raised, treating as unmet: {e}")
            return False

    async def _execute_step(self, step: WorkflowStep, state: WorkflowState) -> Tuple[Dict[str, Any], Optional[str]]:
        logger.info(f"Executing step {step.id}")
        try:
            if self.step_timeout:
                update = await asyncio.wait_for(step.handler(dict(state)), timeout=self.step_timeout)
            else:
                update = await step.handler(dict(state))
        except (asyncio.TimeoutError, TimeoutError):
            message = f"{step.name}: timed out after {self.step_timeout}s"
        except Exception as e:
            message = f"{step.name}: {e}"
        else:
            return dict(update or {}), None

        logger.error(f"Step {step.id} failed: {message}")
        return {"errors": [message]}, message
