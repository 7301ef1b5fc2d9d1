from __future__ import annotations
import logging
import os
import platform
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .errors import DistroNotSupported, TemplateFetchError
from .models import PackageGroup, PackageGroupMap

logger = logging.getLogger(__name__)

ENDEAVOUR_OS = "EndeavourOS"
EOS_PACKAGE_LIST_BASE_URL = "https://raw.githubusercontent.com/endeavouros-team/EndeavourOS-packages-lists/master/"
EOS_BASE_GROUP = "eos-base-group"
HTTP_TIMEOUT = 30
USER_AGENT = "impaccable"

@dataclass(frozen=True)
class SystemConfiguration:
    distro: str
    desktop: str

    def __str__(self) -> str:
        return f"{self.distro} on {self.desktop}"

def read_os_release() -> Dict[str, str]:
    try:
        return platform.freedesktop_os_release()
    except OSError as e:
        raise DistroNotSupported("unknown", f"os-release not readable: {e}") from e

def get_system_configuration(os_release: Optional[Dict[str, str]] = None) -> SystemConfiguration:
    info = os_release if os_release is not None else read_os_release()
    distro = info.get("NAME", "unknown")
    if distro != ENDEAVOUR_OS:
        raise DistroNotSupported(distro)
    desktop = os.environ.get("XDG_CURRENT_DESKTOP", "").strip()
    if not desktop:
        raise DistroNotSupported(distro, "XDG_CURRENT_DESKTOP is not set")
    return SystemConfiguration(distro=distro, desktop=desktop)

def fetch_text(url: str) -> str:
    req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    logger.info("GET %s", url)
    try:
        with urllib.request.urlopen(req, timeout=HTTP_TIMEOUT) as resp:
            if resp.status != 200:
                raise TemplateFetchError(url, f"HTTP {resp.status}")
            return resp.read().decode("utf-8")
    except urllib.error.URLError as e:
        raise TemplateFetchError(url, str(e)) from e
    # read timeouts and connection resets surface as plain OSError
    except (OSError, UnicodeDecodeError) as e:
        raise TemplateFetchError(url, str(e) or type(e).__name__) from e

def generate_configuration(
    system: SystemConfiguration,
    fetch: Callable[[str], str] = fetch_text,
) -> PackageGroupMap:
    """
    One group per upstream package list: the distro base group and the desktop list.
    """
    if system.distro != ENDEAVOUR_OS:
        raise DistroNotSupported(system.distro)
    groups: PackageGroupMap = {}
    for list_name in (EOS_BASE_GROUP, system.desktop):
        body = fetch(EOS_PACKAGE_LIST_BASE_URL + list_name)
        members = [ln.strip() for ln in body.splitlines() if ln.strip()]
        groups[f"{system.distro}-{list_name}"] = PackageGroup.from_members(members)
        logger.info("templated %d packages from %s", len(members), list_name)
    return groups
