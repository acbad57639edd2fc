from .identity import Classification, ProcessIdentity
from .profile import AttributeKey, AttributeProfile, load_profiles
from .policy import (
    ApplyReport, AttestationVerdict, ConfigFlags, Decision,
    MonitorState, MonitorStatus, Restart, Rule, SpoofPath,
)

__all__ = [
    # Identity
    "ProcessIdentity",
    "Classification",
    # Profile
    "AttributeKey",
    "AttributeProfile",
    "load_profiles",
    # Policy
    "ConfigFlags",
    "Rule",
    "Decision",
    "SpoofPath",
    "ApplyReport",
    # Monitor
    "MonitorState",
    "MonitorStatus",
    "Restart",
    # Attestation
    "AttestationVerdict",
]
