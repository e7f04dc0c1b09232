"""Device inventory and deployment settings loaded from YAML."""
import logging
from pathlib import Path
from typing import Optional

import yaml

from ..devices.base import Device
from .settings import DeploySettings

logger = logging.getLogger(__name__)


class DeviceInventory:
    """Manages the device inventory loaded from YAML config.

    Devices use the infrastructure model's record shape. Groups are ordered
    lists so that a rollout can walk them in dependency order:

    ```yaml
    deploy:
      username: netops
      password_env: NETOPS_PASSWORD
      line_delay: 0.2

    devices:
      - id: core-rtr-01
        hostname: core-rtr-01
        vendor: cisco
        management_ip: 10.0.0.1
      - id: edge-sw-01
        hostname: edge-sw-01
        vendor: juniper
        management_ip: 10.0.1.20

    groups:
      rollout:
        - core-rtr-01
        - edge-sw-01
    ```
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self._find_config()
        self._config: dict = {}
        self._devices: dict[str, Device] = {}
        self._load_config()

    def _find_config(self) -> str:
        """Find the devices.yaml config file."""
        search_paths = [
            Path.cwd() / "configs" / "devices.yaml",
            Path.cwd() / "devices.yaml",
            Path.home() / ".config" / "netdeploy" / "devices.yaml",
            Path("/etc/netdeploy/devices.yaml"),
        ]

        for path in search_paths:
            if path.exists():
                return str(path)

        raise FileNotFoundError(
            "Could not find devices.yaml. Create one in ./configs/devices.yaml"
        )

    def _load_config(self) -> None:
        """Load the YAML configuration."""
        with open(self.config_path) as f:
            self._config = yaml.safe_load(f) or {}

        for record in self._config.get("devices") or []:
            device = Device.from_dict(record)
            if device.id in self._devices:
                raise ValueError(f"Duplicate device id in inventory: {device.id}")
            self._devices[device.id] = device

        self._validate_groups()

    def get_device_ids(self) -> list[str]:
        """Get all device IDs in declaration order."""
        return list(self._devices.keys())

    def get_device(self, device_id: str) -> Device:
        if device_id not in self._devices:
            raise KeyError(f"Unknown device: {device_id}")
        return self._devices[device_id]

    def get_all_devices(self) -> list[Device]:
        return list(self._devices.values())

    def get_devices_by_vendor(self, vendor: str) -> list[Device]:
        vendor = vendor.lower()
        return [d for d in self._devices.values() if d.vendor == vendor]

    def get_settings(self) -> DeploySettings:
        """Deployment settings: ``defaults`` merged under ``deploy``, then env."""
        merged = dict(self._config.get("defaults") or {})
        merged.update(self._config.get("deploy") or {})
        return DeploySettings.from_env(merged)

    # === Group Management ===

    def _validate_groups(self) -> None:
        """Validate that all group members reference valid devices."""
        for group_name, members in (self._config.get("groups") or {}).items():
            if not isinstance(members, list):
                logger.warning(f"Group '{group_name}' should be a list of device IDs")
                continue
            for device_id in members:
                if device_id not in self._devices:
                    logger.warning(
                        f"Group '{group_name}' references unknown device: {device_id}"
                    )

    def get_group_names(self) -> list[str]:
        return list((self._config.get("groups") or {}).keys())

    def get_group_members(self, group_name: str) -> list[str]:
        """Get device IDs in a group, in declared order.

        Raises:
            KeyError: If group doesn't exist
        """
        groups = self._config.get("groups") or {}
        if group_name not in groups:
            raise KeyError(f"Unknown group: {group_name}")
        return list(groups[group_name])

    def get_devices_in_group(self, group_name: str) -> list[Device]:
        """Get device records for a group, skipping unknown members."""
        devices = []
        for device_id in self.get_group_members(group_name):
            if device_id in self._devices:
                devices.append(self._devices[device_id])
        return devices
