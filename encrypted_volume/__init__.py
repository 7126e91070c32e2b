"""Encrypted EBS volume provisioning: validated configuration, resource planning and output projection."""

from .config.model import Config
from .config.validation import validate
from .context import ProviderContext
from .errors import (
    BackendError,
    ConfigValidationError,
    EncryptedVolumeError,
    PlanningInvariantViolation,
    Violation,
)
from .outputs import NOT_CREATED, PENDING, OutputSet, project
from .planning import ResourceIntent, ResourcePlan, plan
from .provisioner import provision

__all__ = [
    "BackendError",
    "Config",
    "ConfigValidationError",
    "EncryptedVolumeError",
    "NOT_CREATED",
    "OutputSet",
    "PENDING",
    "PlanningInvariantViolation",
    "ProviderContext",
    "ResourceIntent",
    "ResourcePlan",
    "Violation",
    "plan",
    "project",
    "provision",
    "validate",
]
