from learnflow.workflow.concurrency import run_with_concurrency
from learnflow.workflow.definitions import StepExecutionError, StepHandlers, build_default_definitions
from learnflow.workflow.graph_executor import (
    STALL_MESSAGE,
    FailurePolicy,
    WorkflowDefinition,
    WorkflowExecutor,
    WorkflowInputError,
    WorkflowStep,
)
from learnflow.workflow.pipeline import AgentOrchestrator
from learnflow.workflow.state import WorkflowState, initial_state, merge_state

__all__ = [
    "AgentOrchestrator",
    "FailurePolicy",
    "STALL_MESSAGE",
    "StepExecutionError",
    "StepHandlers",
    "WorkflowDefinition",
    "WorkflowExecutor",
    "WorkflowInputError",
    "WorkflowState",
    "WorkflowStep",
    "build_default_definitions",
    "initial_state",
    "merge_state",
    "run_with_concurrency",
]
