# This file makes the tasks directory a Python package
# Import all task modules to ensure they are registered with Celery

from . import session_tasks

# Explicitly import the tasks to register them
from .session_tasks import sweep_abandoned_sessions_task

__all__ = [
    'sweep_abandoned_sessions_task',
]
