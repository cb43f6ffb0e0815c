"""
Runtime detection: host architecture, platform and the agent version string.
"""

import os
import platform

from buildup import AGENT_NAME, __version__
from .models import RuntimeInfo


_ARCH_ALIASES = {
    "amd64": "x86_64",
    "x64": "x86_64",
    "aarch64": "arm64",
}

_PLATFORM_ALIASES = {
    "darwin": "macOS",
}


def detect_arch() -> str:
    arch = platform.machine() or "unknown"
    return _ARCH_ALIASES.get(arch.lower(), arch)


def detect_platform() -> str:
    system = platform.system() or "unknown"
    return _PLATFORM_ALIASES.get(system.lower(), system.title())


def detect_runtime_info() -> RuntimeInfo:
    return RuntimeInfo(arch=detect_arch(), platform=detect_platform())


def version_string(rt_info: RuntimeInfo, wrapper_name: str = None, wrapper_version: str = None) -> str:
    """Agent version line, prefixed by the wrapping tool when both overrides are set."""
    base = f"{AGENT_NAME} {__version__} ({rt_info.platform}/{rt_info.arch})"

    if wrapper_name is None:
        wrapper_name = os.getenv("BUILDUP_WRAPPER_NAME_OVERRIDE", "")
    if wrapper_version is None:
        wrapper_version = os.getenv("BUILDUP_WRAPPER_VERSION_OVERRIDE", "")

    if wrapper_name and wrapper_version:
        return f"{wrapper_name} {wrapper_version} / {base}"

    return base
