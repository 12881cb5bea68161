"""
Network health probes.

Usage:
    from nethealth.probes import build_probe_set, ProbeContext

    sections = build_probe_set(settings)
"""

from .base import Probe, ProbeContext, ProbeSection, run_guarded
from .variants import (
    ConfigPresenceProbe,
    ConnectivityProbe,
    LogScanProbe,
    ReachabilityMethod,
    ServiceStateProbe,
    StateInspectionProbe,
)
from .catalog import build_probe_set

__all__ = [
    'Probe',
    'ProbeContext',
    'ProbeSection',
    'run_guarded',
    'ConfigPresenceProbe',
    'ConnectivityProbe',
    'LogScanProbe',
    'ReachabilityMethod',
    'ServiceStateProbe',
    'StateInspectionProbe',
    'build_probe_set',
]
