"""CDK stacks."""

from .encrypted_volume_stack import EncryptedVolumeStack

__all__ = ["EncryptedVolumeStack"]
