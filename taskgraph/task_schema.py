"""Strict validation of raw task records returned by the extractor."""
import logging
from typing import Any, Iterable, List

from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .pipeline_models import GraphTask

logger = logging.getLogger(__name__)


def validate_task(raw: Any, index: int) -> GraphTask:
    """
    Validate one raw extracted record into a GraphTask.

    Missing or null ``dependencies`` default to an empty list; every other
    contract violation raises ValidationError naming the record index and field.

    Args:
        raw: One element of the extractor output
        index: Position of the record in the extractor output

    Returns:
        Validated GraphTask
    """
    if not isinstance(raw, dict):
        raise ValidationError(
            f"Task at index {index} must be an object, got {type(raw).__name__}",
            index=index,
        )

    candidate = {
        "id": raw.get("id"),
        "priority": raw.get("priority"),
        "dependencies": raw.get("dependencies") if raw.get("dependencies") is not None else [],
    }

    try:
        task = GraphTask.model_validate(candidate)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = str(first["loc"][0]) if first.get("loc") else None
        raise ValidationError(
            f"Task at index {index} failed validation on '{field}': {first['msg']}",
            index=index,
            field=field,
        ) from e

    logger.debug("Validated task index=%d id=%s", index, task.id)
    return task


def validate_tasks(raw_tasks: Iterable[Any]) -> List[GraphTask]:
    """Validate a whole batch; the first bad record aborts the batch."""
    tasks: List[GraphTask] = []
    seen_ids = set()
    for index, raw in enumerate(raw_tasks):
        task = validate_task(raw, index)
        if task.id in seen_ids:
            raise ValidationError(
                f"Task at index {index} reuses id '{task.id}'",
                index=index,
                field="id",
            )
        seen_ids.add(task.id)
        tasks.append(task)
    return tasks
