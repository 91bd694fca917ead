"""Dependency sanitization: keep only edges that point inside the batch."""
import logging
from typing import List, Sequence

from .pipeline_models import GraphTask

logger = logging.getLogger(__name__)


def sanitize_dependencies(tasks: Sequence[GraphTask]) -> List[GraphTask]:
    """
    Drop dependency ids that do not name a task in the same batch.

    Order of the surviving dependencies is preserved and the input tasks are
    left untouched, so the returned graph is closed: every edge target is a node.
    """
    valid_ids = {task.id for task in tasks}
    sanitized = []
    for task in tasks:
        kept = [dep for dep in task.dependencies if dep in valid_ids]
        if len(kept) != len(task.dependencies):
            dropped = [dep for dep in task.dependencies if dep not in valid_ids]
            logger.debug("Dropping unknown dependencies of %s: %s", task.id, dropped)
        sanitized.append(task.model_copy(update={"dependencies": kept}))
    return sanitized
