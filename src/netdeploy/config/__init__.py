"""Inventory and deployment settings."""
from .settings import DeploySettings
from .inventory import DeviceInventory

__all__ = ["DeploySettings", "DeviceInventory"]
