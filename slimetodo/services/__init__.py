from slimetodo.services.pet_service import PetService
from slimetodo.services.reminder_service import ReminderService
from slimetodo.services.statistics_service import StatisticsService
from slimetodo.services.storage_service import StorageService
from slimetodo.services.task_service import TaskService
from slimetodo.services.undo_service import UndoResult, UndoService


__all__ = [
    "PetService",
    "ReminderService",
    "StatisticsService",
    "StorageService",
    "TaskService",
    "UndoResult",
    "UndoService",
]
