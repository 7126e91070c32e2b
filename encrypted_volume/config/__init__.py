"""Configuration contracts, validated model and environment presets."""

from .model import Config, KmsSpec, LoggingSpec, SnapshotSchedule, VolumeSpec
from .validation import VALIDATION_RULES, validate

__all__ = [
    "Config",
    "KmsSpec",
    "LoggingSpec",
    "SnapshotSchedule",
    "VALIDATION_RULES",
    "VolumeSpec",
    "validate",
]
