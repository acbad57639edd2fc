from .build import AttributeStore, BuildAttributeStore
from .client import ADBClient, ADBConnectionError, ADBError, ADBResult, ADBTimeoutError
from .process import OsProcessControl, ProcessControl, RecordingProcessControl
from .props import AdbPropertySource, DictPropertyStore, PropertyStore
from .tasks import (
    AdbTaskStackPoller, SnapshotTaskService, TaskService,
    TaskStackDispatcher, TaskStackSource,
)

__all__ = [
    "ADBClient",
    "ADBConnectionError",
    "ADBError",
    "ADBResult",
    "ADBTimeoutError",
    "AdbPropertySource",
    "AdbTaskStackPoller",
    "AttributeStore",
    "BuildAttributeStore",
    "DictPropertyStore",
    "OsProcessControl",
    "ProcessControl",
    "PropertyStore",
    "RecordingProcessControl",
    "SnapshotTaskService",
    "TaskService",
    "TaskStackDispatcher",
    "TaskStackSource",
]
