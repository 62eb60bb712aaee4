from .background_worker import BackgroundWorker
from .task_scheduler import ScheduledTask, TaskScheduler

__all__ = ['BackgroundWorker', 'ScheduledTask', 'TaskScheduler']
