"""Version information for Network Health Check"""

__version__ = "1.1.0"
__version_info__ = (1, 1, 0)
__release_date__ = "2026-10-18"

# Version history
VERSION_HISTORY = [
    {
        "version": "1.1.0",
        "date": "2026-10-18",
        "changes": [
            "Privileged commands retried once with sudo -n instead of always using sudo",
            "Unreadable journals reported as INFO instead of counting as zero errors",
            "NDisc route errors graded as failures",
            "IPv4 and IPv6 connectivity tests skipped without a global address",
            "Settings from NETHEALTH_* environment variables (--show-config)",
        ]
    },
    {
        "version": "1.0.0",
        "date": "2026-06-02",
        "changes": [
            "Initial release: networkd, resolved, interface, DHCP, IPv6, "
            "connectivity, DNS and configuration checks",
        ]
    },
]


def get_version():
    """Return the current version string"""
    return __version__
