"""Workflow host boundary: input parsing and failure policy."""

from aem_ops.features.workflow.errors import WorkflowItemError
from aem_ops.features.workflow.runner import (
    ensure_supported_target,
    failure_output,
    parse_items_input,
    raise_for_failures,
    run_workflow_item,
)


__all__ = [
    "WorkflowItemError",
    "ensure_supported_target",
    "failure_output",
    "parse_items_input",
    "raise_for_failures",
    "run_workflow_item",
]
