from .applier import AttributeApplier
from .classifier import classify
from .context import ProcessContext, StartResult
from .guard import AttestationGuard
from .monitor import ForegroundTaskMonitor
from .permissions import DeveloperStatusPolicy
from .rules import RuleEngine

__all__ = [
    "AttestationGuard",
    "AttributeApplier",
    "DeveloperStatusPolicy",
    "ForegroundTaskMonitor",
    "ProcessContext",
    "RuleEngine",
    "StartResult",
    "classify",
]
