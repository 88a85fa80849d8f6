#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Health Monitoring for the pure translation core

Samples host resources with psutil, captures the system state snapshot
stored with every fallback activation, and rolls recovery statistics up
into a healthy / degraded / unhealthy status.
"""

import time
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Dict, Optional

import psutil

from config.constants import (
    DEFAULT_SYSTEM_LOAD,
    HEALTH_UNHEALTHY_SUCCESS_RATE,
    HEALTH_DEGRADED_SUCCESS_RATE,
    HEALTH_UNHEALTHY_ERROR_RATE,
    HEALTH_DEGRADED_ERROR_RATE,
)
from config.logging_config import get_logger
from core.models import DegradationLevel, SystemStateSnapshot

logger = get_logger(__name__)


# ============================================================================
# Health Status Data Models
# ============================================================================

@dataclass
class HealthStatus:
    """Overall system health status."""
    status: str  # "healthy", "degraded", "unhealthy"
    timestamp: str
    uptime_seconds: float
    components: Dict[str, Dict[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ============================================================================
# Health Monitor
# ============================================================================

class HealthMonitor:
    """System resource sampling and health roll-up."""

    def __init__(self, sample_resources: bool = True):
        """
        Initialize health monitor.

        Args:
            sample_resources: Read CPU and memory through psutil. When False
                the monitor reports fixed defaults, which keeps snapshots
                reproducible.
        """
        self.start_time = time.time()
        self.sample_resources = sample_resources

    def system_load(self) -> float:
        """CPU load as a 0-1 fraction."""
        if not self.sample_resources:
            return DEFAULT_SYSTEM_LOAD
        try:
            return round(psutil.cpu_percent(interval=None) / 100, 3)
        except Exception as e:
            logger.debug(f"CPU sampling failed: {e}")
            return DEFAULT_SYSTEM_LOAD

    def memory_usage(self) -> float:
        """Memory usage as a 0-1 fraction."""
        if not self.sample_resources:
            return 0.0
        try:
            return round(psutil.virtual_memory().percent / 100, 3)
        except Exception as e:
            logger.debug(f"Memory sampling failed: {e}")
            return 0.0

    @staticmethod
    def degradation_level(error_rate: float, system_load: float) -> DegradationLevel:
        if error_rate > 0.5:
            return DegradationLevel.CRITICAL
        if error_rate > 0.2 or system_load > 0.8:
            return DegradationLevel.SEVERE
        if error_rate > 0.1:
            return DegradationLevel.MODERATE
        return DegradationLevel.NONE

    def capture_snapshot(self, component_availability: Dict[str, bool], error_rate: float,
                         active_connections: int = 0) -> SystemStateSnapshot:
        """
        Capture the system state at the moment a fallback tier is reached.

        Args:
            component_availability: primary/secondary/fallback/validation flags
            error_rate: Failed-request share from recovery statistics
            active_connections: Requests currently in flight
        """
        load = self.system_load()
        return SystemStateSnapshot(
            primary_available=component_availability.get("primary", True),
            secondary_available=component_availability.get("secondary", True),
            fallback_available=component_availability.get("fallback", True),
            validation_available=component_availability.get("validation", True),
            network_connectivity=component_availability.get("primary", True)
            or component_availability.get("secondary", True),
            system_load=load,
            error_rate=error_rate,
            memory_usage=self.memory_usage(),
            active_connections=active_connections,
            degradation_level=self.degradation_level(error_rate, load),
        )

    def check_health(self, success_rate: float, error_rate: float,
                     component_availability: Optional[Dict[str, bool]] = None) -> HealthStatus:
        """
        Roll recovery statistics up into an overall status.

        Args:
            success_rate: Percentage of requests answered by an engine tier
            error_rate: Failed-request share (0-1)
            component_availability: Tier availability flags

        Returns:
            HealthStatus with translation and system components
        """
        availability = component_availability or {}
        unavailable = sorted(name for name, ok in availability.items() if not ok)

        if success_rate < HEALTH_UNHEALTHY_SUCCESS_RATE or error_rate > HEALTH_UNHEALTHY_ERROR_RATE:
            status = "unhealthy"
        elif (success_rate < HEALTH_DEGRADED_SUCCESS_RATE or error_rate > HEALTH_DEGRADED_ERROR_RATE
              or unavailable):
            status = "degraded"
        else:
            status = "healthy"

        components = {
            "translation": {
                "status": status,
                "success_rate": round(success_rate, 2),
                "error_rate": round(error_rate, 4),
                "unavailable_components": unavailable,
            },
            "system": self._check_system_resources(),
        }

        return HealthStatus(
            status=status,
            timestamp=datetime.now().isoformat(),
            uptime_seconds=time.time() - self.start_time,
            components=components,
        )

    def _check_system_resources(self) -> Dict[str, Any]:
        """Check system resource usage."""
        load = self.system_load()
        memory = self.memory_usage()

        if load > 0.9 or memory > 0.9:
            status = "unhealthy"
        elif load > 0.75 or memory > 0.75:
            status = "degraded"
        else:
            status = "healthy"

        return {
            "status": status,
            "cpu_load": load,
            "memory_usage": memory,
        }
