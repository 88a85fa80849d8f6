"""
Unit tests for core/health_monitor.py
"""
from unittest.mock import Mock, patch

import pytest

from core.health_monitor import HealthMonitor
from core.models import DegradationLevel


class TestDegradation:

    @pytest.mark.parametrize("error_rate,load,expected", [
        (0.0, 0.5, DegradationLevel.NONE),
        (0.15, 0.5, DegradationLevel.MODERATE),
        (0.25, 0.5, DegradationLevel.SEVERE),
        (0.0, 0.85, DegradationLevel.SEVERE),
        (0.6, 0.1, DegradationLevel.CRITICAL),
    ])
    def test_degradation_level(self, error_rate, load, expected):
        assert HealthMonitor.degradation_level(error_rate, load) == expected


class TestSnapshot:

    def test_fixed_readings(self, monitor):
        snapshot = monitor.capture_snapshot(
            {"primary": False, "secondary": True, "fallback": True, "validation": True},
            error_rate=0.02,
            active_connections=3,
        )
        assert snapshot.primary_available is False
        assert snapshot.network_connectivity is True
        assert snapshot.system_load == 0.5
        assert snapshot.memory_usage == 0.0
        assert snapshot.active_connections == 3
        assert snapshot.degradation_level == DegradationLevel.NONE

    def test_no_engine_means_no_connectivity(self, monitor):
        snapshot = monitor.capture_snapshot({"primary": False, "secondary": False}, error_rate=0.6)
        assert snapshot.network_connectivity is False
        assert snapshot.degradation_level == DegradationLevel.CRITICAL

    def test_psutil_sampling(self):
        with patch("core.health_monitor.psutil.cpu_percent", return_value=95.0), \
                patch("core.health_monitor.psutil.virtual_memory", return_value=Mock(percent=40.0)):
            monitor = HealthMonitor()
            assert monitor.system_load() == 0.95
            assert monitor.memory_usage() == 0.4
            snapshot = monitor.capture_snapshot({}, error_rate=0.0)
        assert snapshot.degradation_level == DegradationLevel.SEVERE

    def test_psutil_failure_uses_defaults(self):
        with patch("core.health_monitor.psutil.cpu_percent", side_effect=OSError("no /proc")), \
                patch("core.health_monitor.psutil.virtual_memory", side_effect=OSError("no /proc")):
            monitor = HealthMonitor()
            assert monitor.system_load() == 0.5
            assert monitor.memory_usage() == 0.0


class TestCheckHealth:

    def test_healthy(self, monitor):
        health = monitor.check_health(100.0, 0.02, {"primary": True, "secondary": True})
        assert health.status == "healthy"
        assert health.components["system"]["status"] == "healthy"
        assert health.to_dict()["components"]["translation"]["unavailable_components"] == []

    def test_unavailable_component_degrades(self, monitor):
        health = monitor.check_health(100.0, 0.02, {"primary": False, "secondary": True})
        assert health.status == "degraded"
        assert health.components["translation"]["unavailable_components"] == ["primary"]

    @pytest.mark.parametrize("success_rate,error_rate,expected", [
        (70.0, 0.02, "degraded"),
        (95.0, 0.15, "degraded"),
        (40.0, 0.02, "unhealthy"),
        (95.0, 0.35, "unhealthy"),
    ])
    def test_thresholds(self, monitor, success_rate, error_rate, expected):
        assert monitor.check_health(success_rate, error_rate).status == expected

    def test_overloaded_host(self):
        with patch("core.health_monitor.psutil.cpu_percent", return_value=80.0), \
                patch("core.health_monitor.psutil.virtual_memory", return_value=Mock(percent=95.0)):
            health = HealthMonitor().check_health(100.0, 0.0)
        assert health.components["system"]["status"] == "unhealthy"
