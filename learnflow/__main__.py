"""
Command-line entry point

    python -m learnflow full_pipeline --url https://docs.python.org/3/tutorial/
    python -m learnflow interactive_qa --url ... --question "What is a list comprehension?" --engine graph
    python -m learnflow --list
"""
import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List, Optional

from learnflow.config import configure_tracing, get_settings
from learnflow.dependencies import get_learning_service
from learnflow.schemas.workflow import WorkflowOptions, WorkflowType
from learnflow.utils.logger import get_logger, setup_logging
from learnflow.workflow.graph_executor import WorkflowInputError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="learnflow", description="Turn a documentation URL into a learning package.")
    parser.add_argument("workflow", nargs="?", choices=[workflow_type.value for workflow_type in WorkflowType])
    parser.add_argument("--url", help="Document URL")
    parser.add_argument("--question", help="Question for interactive_qa")
    parser.add_argument("--level", default="beginner", choices=["beginner", "intermediate", "advanced"])
    parser.add_argument("--questions", type=int, default=5, help="Number of quiz questions")
    parser.add_argument("--time", dest="time_constraint", help="Time constraint, e.g. '2 hours'")
    parser.add_argument("--skip-quiz", action="store_true", help="Skip quiz generation")
    parser.add_argument("--engine", default="pipeline", choices=["pipeline", "graph"])
    parser.add_argument("--list", action="store_true", help="List available workflows")
    parser.add_argument("--visualize", action="store_true", help="Print the workflow as a Mermaid graph")
    return parser


def _jsonable(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    if isinstance(value, list):
        return [_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    return value


async def run(args: argparse.Namespace) -> Dict[str, Any]:
    service = get_learning_service()
    inputs = {
        "url": args.url,
        "question": args.question,
        "user_level": args.level,
        "question_count": args.questions,
        "time_constraint": args.time_constraint,
    }

    if args.engine == "graph":
        if args.skip_quiz:
            inputs["question_count"] = 0
        state = await service.run_workflow(args.workflow, inputs)
        return _jsonable(dict(state))

    request: Dict[str, Any] = {"type": args.workflow, **{k: v for k, v in inputs.items() if v is not None}}
    if args.skip_quiz:
        request["options"] = WorkflowOptions(skip_steps=["generate_quiz"])
    output = await service.run_pipeline(request)
    return output.model_dump(mode="json")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(environment=settings.environment, log_dir=settings.log_dir)
    configure_tracing(settings)
    logger = get_logger(__name__)

    if args.list:
        print(json.dumps(get_learning_service().get_available_workflows(), indent=2))
        return 0
    if not args.workflow:
        print("A workflow type is required (see --list)", file=sys.stderr)
        return 2
    if args.visualize:
        print(get_learning_service().get_workflow_visualization(args.workflow))
        return 0

    try:
        result = asyncio.run(run(args))
    except WorkflowInputError as e:
        logger.error(f"Invalid request: {e}")
        print(str(e), file=sys.stderr)
        return 2

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
