"""
Run Settings

All tunables come from NETHEALTH_* environment variables; there is no
config file. Unset variables fall back to DEFAULTS.

Usage:
    settings = Settings.from_env()
    runner = CommandRunner(default_timeout=settings.command_timeout,
                           escalation=settings.escalation)

    network-healthcheck --show-config   # table of effective values
"""

import logging
import os
import shlex
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from rich.console import Console
from rich.table import Table

from .console import get_console

logger = logging.getLogger(__name__)

DEFAULTS = {
    # Command runner
    'NETHEALTH_COMMAND_TIMEOUT': '10',
    'NETHEALTH_FAST_TIMEOUT': '5',
    'NETHEALTH_ESCALATION': 'sudo -n',
    'NETHEALTH_NO_ESCALATION': 'false',

    # Units under test
    'NETHEALTH_NETWORK_UNIT': 'systemd-networkd',
    'NETHEALTH_RESOLVER_UNIT': 'systemd-resolved',

    # Reachability targets
    'NETHEALTH_IPV4_TARGET': '8.8.8.8',
    'NETHEALTH_IPV6_TARGET': '2001:4860:4860::8888',
    'NETHEALTH_HTTP6_URL': 'https://ipv6.google.com',
    'NETHEALTH_DNS_NAME': 'google.com',
    'NETHEALTH_DNS6_NAME': 'ipv6.google.com',

    # Diagnostics on stderr
    'NETHEALTH_LOG_LEVEL': 'WARNING',
}

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
TIMEOUT_KEYS = ('NETHEALTH_COMMAND_TIMEOUT', 'NETHEALTH_FAST_TIMEOUT')
_TRUTHY = frozenset({'1', 'true', 'yes', 'on'})


def get_config(key: str, default: Optional[str] = None) -> str:
    """Environment value for key, else the given default, else DEFAULTS."""
    if key in os.environ:
        return os.environ[key]
    if default is not None:
        return default
    return DEFAULTS.get(key, '')


def get_config_bool(key: str, default: bool = False) -> bool:
    return get_config(key, 'true' if default else 'false').strip().lower() in _TRUTHY


def get_config_int(key: str, default: int = 0) -> int:
    raw = get_config(key, str(default))
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"{key}={raw!r} is not an integer, using {default}")
        return default


def _timeout(key: str, fallback: int) -> int:
    value = get_config_int(key, fallback)
    if value > 0:
        return value
    logger.warning(f"{key} must be positive, using {fallback}")
    return fallback


def _escalation() -> Tuple[str, ...]:
    if get_config_bool('NETHEALTH_NO_ESCALATION'):
        return ()
    return tuple(shlex.split(get_config('NETHEALTH_ESCALATION')))


@dataclass(frozen=True)
class Settings:
    """Effective settings for one health check run, defaulting to DEFAULTS."""
    command_timeout: int = int(DEFAULTS['NETHEALTH_COMMAND_TIMEOUT'])
    fast_timeout: int = int(DEFAULTS['NETHEALTH_FAST_TIMEOUT'])
    escalation: Tuple[str, ...] = tuple(shlex.split(DEFAULTS['NETHEALTH_ESCALATION']))
    network_unit: str = DEFAULTS['NETHEALTH_NETWORK_UNIT']
    resolver_unit: str = DEFAULTS['NETHEALTH_RESOLVER_UNIT']
    ipv4_target: str = DEFAULTS['NETHEALTH_IPV4_TARGET']
    ipv6_target: str = DEFAULTS['NETHEALTH_IPV6_TARGET']
    http6_url: str = DEFAULTS['NETHEALTH_HTTP6_URL']
    dns_name: str = DEFAULTS['NETHEALTH_DNS_NAME']
    dns6_name: str = DEFAULTS['NETHEALTH_DNS6_NAME']
    log_level: str = DEFAULTS['NETHEALTH_LOG_LEVEL']

    @classmethod
    def from_env(cls) -> 'Settings':
        """Read NETHEALTH_* variables; invalid values are logged and replaced."""
        log_level = get_config('NETHEALTH_LOG_LEVEL').upper()
        if log_level not in LOG_LEVELS:
            logger.warning(f"Unknown NETHEALTH_LOG_LEVEL {log_level!r}, using {cls.log_level}")
            log_level = cls.log_level

        return cls(
            command_timeout=_timeout('NETHEALTH_COMMAND_TIMEOUT', cls.command_timeout),
            fast_timeout=_timeout('NETHEALTH_FAST_TIMEOUT', cls.fast_timeout),
            escalation=_escalation(),
            network_unit=get_config('NETHEALTH_NETWORK_UNIT'),
            resolver_unit=get_config('NETHEALTH_RESOLVER_UNIT'),
            ipv4_target=get_config('NETHEALTH_IPV4_TARGET'),
            ipv6_target=get_config('NETHEALTH_IPV6_TARGET'),
            http6_url=get_config('NETHEALTH_HTTP6_URL'),
            dns_name=get_config('NETHEALTH_DNS_NAME'),
            dns6_name=get_config('NETHEALTH_DNS6_NAME'),
            log_level=log_level,
        )


def validate_config() -> Dict[str, Any]:
    """
    Check the environment without modifying anything.

    Returns:
        {'valid': bool, 'warnings': [...], 'errors': [...], 'config': {...}}
        where 'valid' is False only if there are errors.
    """
    errors: List[str] = []
    warnings: List[str] = []
    effective: Dict[str, str] = {}

    for key in TIMEOUT_KEYS:
        raw = get_config(key)
        effective[key.lower()] = raw
        if not raw.strip().lstrip('-').isdigit():
            errors.append(f"{key} is not an integer: {raw}")
        elif int(raw) <= 0:
            errors.append(f"{key} must be positive: {raw}")

    log_level = get_config('NETHEALTH_LOG_LEVEL').upper()
    effective['log_level'] = log_level
    if log_level not in LOG_LEVELS:
        errors.append(f"Invalid NETHEALTH_LOG_LEVEL: {log_level}")

    escalation = get_config('NETHEALTH_ESCALATION')
    effective['escalation'] = escalation
    if not get_config_bool('NETHEALTH_NO_ESCALATION'):
        argv = shlex.split(escalation)
        if not argv:
            warnings.append("NETHEALTH_ESCALATION is empty, privileged retries are disabled")
        elif '-n' not in argv:
            warnings.append("Escalation without -n may prompt for a password and hit the command timeout")

    return {
        'valid': not errors,
        'warnings': warnings,
        'errors': errors,
        'config': effective,
    }


def show_config_summary(console: Optional[Console] = None) -> None:
    """Print every setting with its value and where it came from."""
    console = console or get_console()

    table = Table(title="Effective Settings", header_style="heading")
    table.add_column("Variable")
    table.add_column("Value", style="pass")
    table.add_column("Source", style="dim")
    for key, default in sorted(DEFAULTS.items()):
        from_env = key in os.environ
        table.add_row(key, os.environ[key] if from_env else default,
                      "env var" if from_env else "default")
    console.print(table)

    report = validate_config()
    for message in report['warnings']:
        console.print(f"[warning]⚠ {message}[/warning]")
    for message in report['errors']:
        console.print(f"[error]✗ {message}[/error]")
