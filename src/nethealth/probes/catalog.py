"""
Probe Catalog

The fixed, ordered probe set. Sections run in this order:

    privileges -> systemd-networkd -> systemd-resolved -> interfaces ->
    DHCP -> IPv6 -> connectivity -> DNS -> configuration

Extraction helpers return None when a value cannot be read; classifiers
turn a value into exactly one Outcome.
"""

import re
from typing import Optional, Tuple

from ..config import Settings
from ..models import Outcome, Severity
from .base import ProbeContext, ProbeSection
from .variants import (
    ConfigPresenceProbe,
    ConnectivityProbe,
    LogScanProbe,
    ReachabilityMethod,
    ServiceStateProbe,
    StateInspectionProbe,
)

NDISC_HINT = "Consider setting ManageForeignRoutes=no in networkd.conf"

_STATE_LINE = re.compile(r'^\s*State:\s*(\S+)', re.MULTILINE)
_DNS_LINE = re.compile(r'^(Global|Link \d+ \([^)]*\)):\s*(\S.*)?$')
_NETPLAN_GET = re.compile(r'^\s+get\b', re.MULTILINE)


# === Privileges ===

def _privileges(ctx: ProbeContext):
    return ctx.runner.privileged


def _classify_privileges(is_root, ctx: ProbeContext) -> Outcome:
    if is_root:
        return Outcome(Severity.PASS, "Running as root", "Full access to all system information")
    if ctx.runner.escalation:
        return Outcome(Severity.INFO, "Not running as root",
                       "Privileged commands are retried with: " + " ".join(ctx.runner.escalation))
    return Outcome(Severity.INFO, "Not running as root",
                   "Privilege escalation disabled - some checks may be limited")


# === systemd-resolved ===

def _dns_servers(ctx: ProbeContext) -> Optional[Tuple[int, str]]:
    if not ctx.runner.which('resolvectl'):
        return None
    result = ctx.runner.run(['resolvectl', 'dns'], timeout=ctx.settings.fast_timeout)
    if not result.succeeded:
        return None
    count = 0
    for line in result.lines:
        match = _DNS_LINE.match(line.strip())
        if match and match.group(2):
            count += len(match.group(2).split())
    return count, result.output.strip()


def _classify_dns_servers(value, ctx: ProbeContext) -> Outcome:
    count, listing = value
    if count:
        return Outcome(Severity.PASS, "DNS servers are configured",
                       listing)
    return Outcome(Severity.WARN, "No DNS servers configured")


def _dns_servers_unknown(ctx: ProbeContext) -> Outcome:
    if not ctx.runner.which('resolvectl'):
        return Outcome(Severity.INFO, "Cannot list DNS servers: resolvectl not available")
    return Outcome(Severity.INFO, "Could not query configured DNS servers")


# === Interfaces ===

def _primary(ctx: ProbeContext):
    if not ctx.routing_readable:
        return None
    return ctx.primary_interface or ''


def _classify_primary(iface, ctx: ProbeContext) -> Outcome:
    if iface:
        return Outcome(Severity.PASS, f"Primary interface detected: {iface}")
    return Outcome(Severity.FAIL, "No primary network interface detected",
                   "No IPv4 default route points at an interface")


def _primary_unknown(ctx: ProbeContext) -> Outcome:
    return Outcome(Severity.WARN, "Could not query the routing table",
                   "ip route show default failed")


def _link_state(ctx: ProbeContext) -> Optional[str]:
    if not ctx.runner.which('networkctl'):
        return None
    result = ctx.runner.run(['networkctl', 'status', ctx.primary_interface],
                            timeout=ctx.settings.command_timeout)
    match = _STATE_LINE.search(result.output) if result.succeeded else None
    return match.group(1) if match else None


def _classify_link_state(state: str, ctx: ProbeContext) -> Outcome:
    iface = ctx.primary_interface
    if state in ('routable', 'configured'):
        return Outcome(Severity.PASS, f"Interface {iface} is in {state} state")
    if state == 'configuring':
        return Outcome(Severity.WARN, f"Interface {iface} is still configuring",
                       "This may be temporary")
    if state == 'failed':
        return Outcome(Severity.FAIL, f"Interface {iface} is in failed state")
    return Outcome(Severity.WARN, f"Interface {iface} is in unknown state: {state}")


def _link_state_unknown(ctx: ProbeContext) -> Outcome:
    if not ctx.runner.which('networkctl'):
        return Outcome(Severity.INFO, "Cannot read interface state: networkctl not available")
    return Outcome(Severity.INFO, f"Could not read state of {ctx.primary_interface}")


def _carrier(ctx: ProbeContext) -> Optional[str]:
    raw = ctx.runner.read_text(f"/sys/class/net/{ctx.primary_interface}/carrier")
    return raw.strip() if raw is not None else None


def _classify_carrier(carrier: str, ctx: ProbeContext) -> Outcome:
    iface = ctx.primary_interface
    if carrier == '1':
        return Outcome(Severity.PASS, f"Interface {iface} has physical link (carrier detected)")
    return Outcome(Severity.FAIL, f"Interface {iface} has no physical link (no carrier)")


def _failed_links(ctx: ProbeContext) -> Optional[list]:
    if not ctx.runner.which('networkctl'):
        return None
    result = ctx.runner.run(['networkctl', 'list', '--no-legend'],
                            timeout=ctx.settings.command_timeout)
    if not result.succeeded:
        return None
    return [line.strip() for line in result.lines if 'failed' in line.split()]


def _failed_links_unknown(ctx: ProbeContext) -> Outcome:
    if not ctx.runner.which('networkctl'):
        return Outcome(Severity.INFO, "Cannot list interfaces: networkctl not available")
    return Outcome(Severity.INFO, "Could not list network interfaces")


def _classify_failed_links(failed: list, ctx: ProbeContext) -> Outcome:
    if not failed:
        return Outcome(Severity.PASS, "No failed network interfaces")
    return Outcome(Severity.FAIL, f"{len(failed)} interface(s) in failed state", "\n".join(failed))


# === DHCP ===

def _dhcp_state(ctx: ProbeContext) -> Tuple[str, str]:
    """Try each evidence source in turn: (status, detail)."""
    runner = ctx.runner
    iface = ctx.primary_interface

    leases = runner.glob('/run/systemd/netif/leases/*') + runner.glob('/run/systemd/netif/**/*.lease')
    if leases:
        return 'active', f"Found {len(leases)} DHCP lease file(s)"

    if runner.which('networkctl'):
        result = runner.run(['networkctl', 'status', iface], timeout=ctx.settings.command_timeout)
        for line in result.lines:
            if 'dhcp' in line.lower():
                return 'configured', line.strip()

    result = runner.run(['ip', '-4', 'addr', 'show', 'dev', iface], timeout=ctx.settings.fast_timeout)
    for line in result.lines:
        if line.strip().startswith('inet '):
            return 'configured', f"Interface has IP address: {line.strip()}"

    if runner.which('journalctl'):
        result = runner.run(['journalctl', '-u', ctx.settings.network_unit,
                             '--since', '1 hour ago', '--no-pager'],
                            timeout=ctx.settings.command_timeout)
        lease_lines = [line for line in result.lines
                       if re.search(r'dhcp.*address.*via', line, re.IGNORECASE)]
        if lease_lines:
            return 'active', lease_lines[-1].strip()

    return 'unknown', ''


def _classify_dhcp(value, ctx: ProbeContext) -> Outcome:
    status, detail = value
    if status == 'active':
        return Outcome(Severity.PASS, "DHCP lease active", detail)
    if status == 'configured':
        return Outcome(Severity.PASS, "DHCP configuration detected", detail)
    return Outcome(Severity.INFO, "DHCP status unclear",
                   "May be using static configuration or DHCP not configured")


def _default_route(family: int):
    def extract(ctx: ProbeContext) -> Optional[str]:
        result = ctx.runner.run(['ip', f'-{family}', 'route', 'show', 'default'],
                                timeout=ctx.settings.fast_timeout)
        if not result.succeeded:
            return None
        return result.lines[0].strip() if result.lines else ''
    return extract


def _classify_ipv4_route(route: str, ctx: ProbeContext) -> Outcome:
    if route:
        return Outcome(Severity.PASS, "IPv4 default route is configured",
                       f"Route: {route}")
    return Outcome(Severity.FAIL, "No IPv4 default route configured")


def _classify_ipv6_route(route: str, ctx: ProbeContext) -> Outcome:
    if route:
        return Outcome(Severity.PASS, "IPv6 default route is configured",
                       f"Route: {route}")
    return Outcome(Severity.WARN, "No IPv6 default route",
                   "Normal if IPv6 is not provided by network")


def _route_unknown(family: int):
    def outcome(ctx: ProbeContext) -> Outcome:
        return Outcome(Severity.WARN, f"Could not query the IPv{family} routing table")
    return outcome


# === IPv6 ===

def _ipv6_disabled_flag(ctx: ProbeContext) -> str:
    raw = ctx.runner.read_text('/proc/sys/net/ipv6/conf/all/disable_ipv6')
    # Missing sysctl means the kernel has no IPv6 support
    return raw.strip() if raw is not None else '1'


def _classify_ipv6_flag(flag: str, ctx: ProbeContext) -> Outcome:
    if flag == '0':
        return Outcome(Severity.PASS, "IPv6 is enabled system-wide")
    return Outcome(Severity.WARN, "IPv6 is disabled system-wide", "Some features may not work")


def _ipv6_addresses(ctx: ProbeContext) -> Optional[list]:
    result = ctx.runner.run(['ip', '-6', 'addr', 'show', 'dev', ctx.primary_interface],
                            timeout=ctx.settings.fast_timeout)
    if not result.succeeded:
        return None
    return [line.split()[1] for line in result.lines
            if line.strip().startswith('inet6 ') and len(line.split()) > 1]


def _is_link_local(address: str) -> bool:
    return address.lower().startswith('fe80:')


def _classify_link_local(addresses: list, ctx: ProbeContext) -> Outcome:
    iface = ctx.primary_interface
    if any(_is_link_local(a) for a in addresses):
        return Outcome(Severity.PASS, f"IPv6 link-local address configured on {iface}")
    return Outcome(Severity.FAIL, f"No IPv6 link-local address on {iface}")


def _classify_global(addresses: list, ctx: ProbeContext) -> Outcome:
    iface = ctx.primary_interface
    global_addresses = [a for a in addresses if not _is_link_local(a)]
    if global_addresses:
        return Outcome(Severity.PASS, f"IPv6 global address(es) configured on {iface}",
                       "\n".join(global_addresses))
    return Outcome(Severity.WARN, f"No IPv6 global addresses on {iface}",
                   "May be normal if IPv6 is not provided by network")


def _addresses_unknown(ctx: ProbeContext) -> Outcome:
    return Outcome(Severity.INFO, f"Could not list IPv6 addresses on {ctx.primary_interface}")


# === DNS ===

def _resolv_conf(ctx: ProbeContext) -> Tuple[str, str]:
    path = '/etc/resolv.conf'
    runner = ctx.runner
    if not runner.exists(path):
        return 'missing', ''
    if runner.is_symlink(path):
        return 'symlink', runner.readlink(path) or ''
    return 'file', ''


def _classify_resolv_conf(value, ctx: ProbeContext) -> Outcome:
    kind, target = value
    if kind == 'missing':
        return Outcome(Severity.FAIL, "/etc/resolv.conf does not exist")
    if kind == 'file':
        return Outcome(Severity.WARN, "/etc/resolv.conf is not a symbolic link",
                       "May indicate manual DNS configuration")
    if 'systemd' in target:
        return Outcome(Severity.PASS, "/etc/resolv.conf correctly managed by systemd",
                       f"Target: {target}")
    return Outcome(Severity.WARN, f"/etc/resolv.conf points to unexpected target: {target}")


# === Configuration ===

def _netplan_validate(ctx: ProbeContext) -> bool:
    """
    Parse the netplan configuration, True when it is valid.

    ``netplan get`` only reads /etc/netplan. Releases without it fall back
    to ``netplan generate``, which also renders backend units under /run.
    That is the one write a run can make; /etc is never touched.
    """
    runner = ctx.runner
    usage = runner.run(['netplan', '--help'], timeout=ctx.settings.fast_timeout,
                       escalate=False)
    command = 'get' if _NETPLAN_GET.search(usage.output) else 'generate'
    return runner.run(['netplan', command], timeout=ctx.settings.command_timeout).succeeded


def _classify_netplan(valid: bool, ctx: ProbeContext) -> Outcome:
    if valid:
        return Outcome(Severity.PASS, "Netplan configuration is valid")
    if ctx.runner.privileged:
        return Outcome(Severity.FAIL, "Netplan configuration has errors",
                       "Run 'sudo netplan generate' to see the errors")
    return Outcome(Severity.WARN, "Netplan configuration could not be validated",
                   "Has errors or requires root privileges")


# === Probe Set ===

def build_probe_set(settings: Optional[Settings] = None) -> Tuple[ProbeSection, ...]:
    """Return the ordered probe sections for a run."""
    settings = settings or Settings()
    networkd = settings.network_unit
    resolved = settings.resolver_unit

    return (
        ProbeSection("Privileges", (
            StateInspectionProbe("privileges", _privileges, _classify_privileges),
        )),

        ProbeSection("SystemD NetworkD Status", (
            ServiceStateProbe("networkd-service", networkd, on_inactive=Severity.FAIL, then=(
                LogScanProbe(
                    "networkd-errors", networkd, "1 hour ago", r'error|fail|could not',
                    clean_message=f"No recent {networkd} errors",
                    match_message=f"Found {{count}} recent {networkd} errors"),
                LogScanProbe(
                    "ndisc-route-errors", networkd, "24 hours ago", r'could not set ndisc route',
                    clean_message="No recent NDisc route errors",
                    match_message="Found {count} NDisc route errors in the last 24 hours",
                    on_match=Severity.FAIL, match_detail=NDISC_HINT),
            )),
        )),

        ProbeSection("SystemD Resolved Status", (
            ServiceStateProbe("resolved-service", resolved, on_inactive=Severity.WARN,
                              inactive_detail="DNS resolution may not work properly"),
            StateInspectionProbe("dns-servers", _dns_servers, _classify_dns_servers,
                                 undetermined=_dns_servers_unknown),
        )),

        ProbeSection("Network Interface Status", (
            StateInspectionProbe("primary-interface", _primary, _classify_primary,
                                 undetermined=_primary_unknown),
            StateInspectionProbe("link-state", _link_state, _classify_link_state,
                                 undetermined=_link_state_unknown, requires_interface=True),
            StateInspectionProbe("carrier", _carrier, _classify_carrier, requires_interface=True),
            StateInspectionProbe("failed-interfaces", _failed_links, _classify_failed_links,
                                 undetermined=_failed_links_unknown),
        )),

        ProbeSection("DHCP Status", (
            StateInspectionProbe("dhcp-lease", _dhcp_state, _classify_dhcp,
                                 requires_interface=True),
            LogScanProbe(
                "dhcp-errors", networkd, "1 hour ago", r'dhcp.*(fail|error)',
                clean_message="No recent DHCP errors",
                match_message="{count} DHCP errors in the last hour",
                requires_interface=True),
            StateInspectionProbe("ipv4-default-route", _default_route(4), _classify_ipv4_route,
                                 undetermined=_route_unknown(4)),
        )),

        ProbeSection("IPv6 Status", (
            StateInspectionProbe("ipv6-enabled", _ipv6_disabled_flag, _classify_ipv6_flag, then=(
                StateInspectionProbe("ipv6-link-local", _ipv6_addresses, _classify_link_local,
                                     undetermined=_addresses_unknown, requires_interface=True),
                StateInspectionProbe("ipv6-global", _ipv6_addresses, _classify_global,
                                     undetermined=_addresses_unknown, requires_interface=True),
                StateInspectionProbe("ipv6-default-route", _default_route(6), _classify_ipv6_route,
                                     undetermined=_route_unknown(6)),
                LogScanProbe(
                    "router-advertisements", networkd, "1 hour ago",
                    r'router.*advertisement|ndisc.*router',
                    clean_message="No recent Router Advertisement activity",
                    match_message="Router Advertisement activity detected",
                    on_match=Severity.PASS, on_clean=Severity.INFO,
                    clean_detail="Normal if network doesn't provide IPv6"),
            )),
        )),

        ProbeSection("Connectivity Tests", (
            ConnectivityProbe("ipv4-reachability", f"IPv4 connectivity to {settings.ipv4_target}", (
                ReachabilityMethod('curl', ('curl', '-s', '-o', '/dev/null', '--connect-timeout', '3',
                                            '--max-time', '5', 'http://{ipv4_target}'), 'HTTP'),
                ReachabilityMethod('nc', ('nc', '-z', '-w', '3', '{ipv4_target}', '53'), 'DNS port'),
                ReachabilityMethod('ping', ('ping', '-4', '-c', '1', '-W', '3', '{ipv4_target}'), 'ICMP'),
            ), family=4, on_failure=Severity.FAIL,
                failure_detail="Check the default gateway and upstream link"),
            ConnectivityProbe("ipv4-name-resolution", "IPv4 DNS resolution", (
                ReachabilityMethod('nslookup', ('nslookup', '{dns_name}'), 'nslookup'),
                ReachabilityMethod('getent', ('getent', 'ahostsv4', '{dns_name}'), 'getent',
                                   require_output=True),
            ), family=4, on_failure=Severity.WARN),
            ConnectivityProbe("ipv6-reachability", f"IPv6 connectivity to {settings.ipv6_target}", (
                ReachabilityMethod('nc', ('nc', '-6', '-z', '-w', '3', '{ipv6_target}', '53'), 'DNS port'),
                ReachabilityMethod('curl', ('curl', '-6', '-s', '-o', '/dev/null', '--connect-timeout', '3',
                                            '--max-time', '5', '{http6_url}'), 'HTTP'),
            ), family=6, on_failure=Severity.WARN,
                failure_detail="May be normal if ISP doesn't provide IPv6"),
            ConnectivityProbe("ipv6-name-resolution", "IPv6 DNS resolution", (
                ReachabilityMethod('nslookup', ('nslookup', '{dns6_name}'), 'nslookup'),
                ReachabilityMethod('getent', ('getent', 'ahostsv6', '{dns6_name}'), 'getent',
                                   require_output=True),
            ), family=6, on_failure=Severity.WARN),
        )),

        ProbeSection("DNS Resolution Tests", (
            ConnectivityProbe("dns-basic", "Basic DNS resolution", (
                ReachabilityMethod('nslookup', ('nslookup', '{dns_name}'), 'nslookup'),
                ReachabilityMethod('getent', ('getent', 'hosts', '{dns_name}'), 'getent',
                                   require_output=True),
            ), on_failure=Severity.FAIL),
            ConnectivityProbe("dns-aaaa", "IPv6 DNS (AAAA) resolution", (
                ReachabilityMethod('dig', ('dig', '{dns_name}', 'AAAA', '+short'), 'dig',
                                   require_output=True),
            ), on_failure=Severity.WARN),
            StateInspectionProbe("resolv-conf", _resolv_conf, _classify_resolv_conf),
        )),

        ProbeSection("Network Configuration", (
            ConfigPresenceProbe(
                "netplan", ('/etc/netplan/*.yaml', '/etc/netplan/*.yml'),
                found_message="Netplan configuration files found ({count} files)",
                missing_message="No netplan configuration files found",
                requires_tool='netplan', then=(
                    StateInspectionProbe("netplan-valid", _netplan_validate, _classify_netplan),
                )),
            ConfigPresenceProbe(
                "networkd-config", ('/etc/systemd/network/*.network', '/etc/systemd/network/*.netdev'),
                found_message="systemd-networkd configuration files found ({count} files)",
                missing_message="No systemd-networkd configuration files found"),
            ConfigPresenceProbe(
                "manage-foreign-routes",
                ('/etc/systemd/networkd.conf', '/etc/systemd/networkd.conf.d/*.conf'),
                setting='ManageForeignRoutes',
                found_message="ManageForeignRoutes configuration found",
                found_detail="Good for preventing NDisc route issues",
                missing_message="ManageForeignRoutes not configured",
                missing_detail="Consider setting to 'no' if experiencing NDisc issues"),
        )),
    )
