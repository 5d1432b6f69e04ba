"""
Environment metadata collected when a run begins.
"""

import platform
from datetime import datetime, timezone
from importlib import metadata
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Tuple

from rbp_reporter.core.types import EnvironmentInfo, RunConfig
from rbp_reporter.monitoring.logger import get_logger

logger = get_logger(__name__)

OS_NAMES: Mapping[str, str] = MappingProxyType({
    "darwin": "macOS",
    "windows": "Windows",
    "linux": "Linux",
    "freebsd": "FreeBSD",
    "openbsd": "OpenBSD",
    "sunos": "SunOS",
    "aix": "AIX",
})

# Checked in order; the first substring found in a target name wins.
BROWSER_FAMILIES: Tuple[Tuple[str, str], ...] = (
    ("chrom", "Chromium"),
    ("edge", "Microsoft Edge"),
    ("firefox", "Firefox"),
    ("webkit", "Safari/WebKit"),
    ("safari", "Safari/WebKit"),
)

AUTOMATION_DISTRIBUTIONS = ("playwright", "pytest")


def os_name(system: Optional[str] = None) -> str:
    """Display name of the host OS; unknown systems keep their raw name."""
    raw = system if system is not None else platform.system()
    return OS_NAMES.get(raw.lower(), raw)


def browser_family(target_name: str) -> Optional[str]:
    name = target_name.lower()
    for needle, family in BROWSER_FAMILIES:
        if needle in name:
            return family
    return None


def browser_families(target_names: Iterable[str]) -> List[str]:
    """Distinct browser families exercised by the targets, in first-seen order."""
    families: List[str] = []
    for target_name in target_names:
        family = browser_family(target_name)
        if family and family not in families:
            families.append(family)
    return families


def automation_version(preferred: str = "playwright") -> str:
    """Installed version of the automation library, falling back to pytest."""
    candidates = [preferred] + [d for d in AUTOMATION_DISTRIBUTIONS if d != preferred]
    for distribution in candidates:
        try:
            return f"{distribution} {metadata.version(distribution)}"
        except metadata.PackageNotFoundError:
            continue
    return ""


def collect_environment(config: Optional[RunConfig] = None) -> EnvironmentInfo:
    """Describe the host and the execution targets of a run."""
    config = config or RunConfig()
    info = EnvironmentInfo(
        os=os_name(),
        python_version=platform.python_version(),
        automation_version=automation_version(config.automation_library),
        browsers=browser_families(project.name for project in config.projects),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
    logger.debug(f"Collected environment: {info.os}, Python {info.python_version}")
    return info
