"""Provisioning backends that realize planned intents."""

from .base import BackendResult, ProvisioningBackend

__all__ = ["BackendResult", "ProvisioningBackend"]
