"""Tests for ConfigDeployer and the strategy registry."""
import asyncio
from datetime import datetime, timezone

import pytest

from netdeploy.deploy import (
    ConfigBackup,
    ConfigDeployer,
    DeploymentStrategy,
    FullReplaceStrategy,
    PerElementStrategy,
    RolledBackError,
    ApplyError,
    STRATEGY_TYPES,
    create_strategy,
)
from netdeploy.config.settings import DeploySettings
from netdeploy.devices.base import Device


class ScriptedStrategy(DeploymentStrategy):
    """Strategy whose outcome per device is set by the test."""

    vendors = ("cisco", "juniper")

    def __init__(self, transport, outcomes=None):
        super().__init__(transport)
        self.outcomes = outcomes or {}
        self.deployed: list[tuple[str, str]] = []

    async def deploy(self, device, desired_config):
        self.deployed.append((device.id, desired_config))
        await asyncio.sleep(0.001)
        outcome = self.outcomes.get(device.id)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def rollback(self, device, backup_config):
        pass


def make_devices(count: int) -> list[Device]:
    return [
        Device(id=f"dev-{i}", hostname=f"dev-{i}", vendor="cisco", management_ip=f"10.0.0.{i}")
        for i in range(1, count + 1)
    ]


class TestDeployToDevice:
    """Tests for single-device deployment."""

    @pytest.mark.asyncio
    async def test_success(self, transport, cisco_device):
        deployer = ConfigDeployer(ScriptedStrategy(transport))

        result = await deployer.deploy_to_device(cisco_device, "hostname r1")

        assert result.success is True
        assert result.error is None
        assert result.device_id == cisco_device.id
        assert result.duration > 0
        assert result.timestamp.tzinfo is not None

    @pytest.mark.asyncio
    async def test_failure_keeps_exception(self, transport, cisco_device):
        error = ApplyError("boom", device_id=cisco_device.id, step="apply")
        deployer = ConfigDeployer(ScriptedStrategy(transport, {cisco_device.id: error}))

        result = await deployer.deploy_to_device(cisco_device, "hostname r1")

        assert result.success is False
        assert result.error is error
        assert result.duration > 0

    @pytest.mark.asyncio
    async def test_backup_from_return_value(self, transport, cisco_device):
        backup = ConfigBackup(cisco_device.id, datetime.now(timezone.utc), "hostname old")
        deployer = ConfigDeployer(ScriptedStrategy(transport, {cisco_device.id: backup}))

        result = await deployer.deploy_to_device(cisco_device, "hostname r1")

        assert result.backup is backup

    @pytest.mark.asyncio
    async def test_backup_from_error(self, transport, cisco_device):
        backup = ConfigBackup(cisco_device.id, datetime.now(timezone.utc), "hostname old")
        cause = ApplyError("apply failed")
        error = RolledBackError("rolled back", cause, device_id=cisco_device.id, backup=backup)
        deployer = ConfigDeployer(ScriptedStrategy(transport, {cisco_device.id: error}))

        result = await deployer.deploy_to_device(cisco_device, "hostname r1")

        assert result.backup is backup
        assert result.error is error

    @pytest.mark.asyncio
    async def test_result_serializes(self, transport, cisco_device):
        error = ApplyError("boom")
        deployer = ConfigDeployer(ScriptedStrategy(transport, {cisco_device.id: error}))

        result = await deployer.deploy_to_device(cisco_device, "hostname r1")

        data = result.to_dict()
        assert data["error"] == "boom"
        assert data["backup"] is None


class TestDeployToMultipleDevices:
    """Tests for ordered batch deployment."""

    @pytest.mark.asyncio
    async def test_all_succeed(self, transport):
        devices = make_devices(3)
        strategy = ScriptedStrategy(transport)
        deployer = ConfigDeployer(strategy)
        configs = {d.id: f"hostname {d.hostname}" for d in devices}

        results = await deployer.deploy_to_multiple_devices(devices, configs)

        assert [r.device_id for r in results] == ["dev-1", "dev-2", "dev-3"]
        assert all(r.success for r in results)
        assert strategy.deployed == [(d.id, configs[d.id]) for d in devices]

    @pytest.mark.parametrize("failing", [1, 2, 3])
    @pytest.mark.asyncio
    async def test_stops_at_first_failure(self, transport, failing):
        """The k-th failure yields exactly k results, the last one failed."""
        devices = make_devices(4)
        failing_id = f"dev-{failing}"
        strategy = ScriptedStrategy(transport, {failing_id: ApplyError("boom")})
        deployer = ConfigDeployer(strategy)
        configs = {d.id: "hostname x" for d in devices}

        results = await deployer.deploy_to_multiple_devices(devices, configs)

        assert len(results) == failing
        assert results[-1].device_id == failing_id
        assert results[-1].success is False
        assert all(r.success for r in results[:-1])
        assert len(strategy.deployed) == failing

    @pytest.mark.asyncio
    async def test_missing_config_is_skipped(self, transport):
        devices = make_devices(3)
        strategy = ScriptedStrategy(transport)
        deployer = ConfigDeployer(strategy)

        results = await deployer.deploy_to_multiple_devices(
            devices, {"dev-1": "a", "dev-3": "c"}
        )

        assert [r.device_id for r in results] == ["dev-1", "dev-3"]
        assert [d for d, _ in strategy.deployed] == ["dev-1", "dev-3"]

    @pytest.mark.asyncio
    async def test_empty_batch(self, transport):
        deployer = ConfigDeployer(ScriptedStrategy(transport))
        assert await deployer.deploy_to_multiple_devices([], {}) == []

    @pytest.mark.asyncio
    async def test_end_to_end_full_replace(self, transport, settings, cisco_device):
        """Real strategy through the deployer: a failed apply is rolled back."""
        transport.responses["show running-config"] = (True, "hostname old\n")
        transport.shell_responses = [(False, "% failed"), (True, "")]
        deployer = ConfigDeployer(FullReplaceStrategy(transport, settings))

        results = await deployer.deploy_to_multiple_devices(
            [cisco_device], {cisco_device.id: "hostname r1\n"}
        )

        assert len(results) == 1
        assert isinstance(results[0].error, RolledBackError)
        assert results[0].backup.config == "hostname old\n"


class TestCreateStrategy:
    """Tests for the vendor strategy registry."""

    def test_registry(self):
        assert STRATEGY_TYPES["cisco"] is FullReplaceStrategy
        assert STRATEGY_TYPES["juniper"] is PerElementStrategy

    def test_create_by_vendor(self, transport, settings):
        strategy = create_strategy("Cisco", transport, settings)
        assert isinstance(strategy, FullReplaceStrategy)
        assert strategy.settings is settings
        assert isinstance(create_strategy("juniper", transport), PerElementStrategy)

    def test_unknown_vendor(self, transport):
        with pytest.raises(ValueError, match="arista"):
            create_strategy("arista", transport)

    @pytest.mark.asyncio
    async def test_connect_attempts_from_environment(self, transport, cisco_device, monkeypatch):
        monkeypatch.setenv("NETDEPLOY_CONNECT_ATTEMPTS", "3")
        monkeypatch.setenv("NETDEPLOY_SETTLE_TIME", "0")
        monkeypatch.setenv("NETDEPLOY_LINE_DELAY", "0")
        strategy = create_strategy("cisco", transport, DeploySettings.from_env())
        transport.responses["show running-config"] = (True, "hostname r1\n")

        await strategy.deploy(cisco_device, "hostname r1\n")

        assert transport.last_attempts == 3
