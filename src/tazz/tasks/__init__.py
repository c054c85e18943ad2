"""Task list parsing and task descriptor models."""

from .models import TaskDescriptor
from .parser import MAX_TASKS, TASK_LIST_TEMPLATE, TaskListLoader, parse_task_list

__all__ = [
    "MAX_TASKS",
    "TASK_LIST_TEMPLATE",
    "TaskDescriptor",
    "TaskListLoader",
    "parse_task_list",
]
