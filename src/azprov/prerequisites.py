"""
Prerequisites Checker Module

Verifies the external tools azprov shells out to are installed before
provisioning or deploying.

Security Requirements:
- Read-only system checks
- No shell=True in subprocess calls
"""

import logging
import platform
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar

logger = logging.getLogger(__name__)

_INSTALL_HINTS = {
    "macos": {"az": "brew install azure-cli"},
    "linux": {"az": "curl -sL https://aka.ms/InstallAzureCLIDeb | sudo bash"},
    "windows": {"az": "winget install -e --id Microsoft.AzureCLI"},
}


@dataclass
class PrerequisiteResult:
    """Result of prerequisite checks."""

    all_available: bool
    missing: list[str]
    available: list[str]
    platform_name: str


class PrerequisiteChecker:
    """
    Check required external tools are installed.

    Required tools:
    - az (Azure CLI)
    """

    REQUIRED_TOOLS: ClassVar[list[str]] = ["az"]

    @classmethod
    def check_tool(cls, tool_name: str) -> bool:
        """
        Check if a single tool is available in PATH.

        Security: Uses shutil.which (safe, no subprocess)
        """
        result = shutil.which(tool_name)
        if result:
            logger.debug(f"Found {tool_name} at {result}")
            return True
        logger.debug(f"Tool not found: {tool_name}")
        return False

    @classmethod
    def check_all(cls) -> PrerequisiteResult:
        """
        Check all prerequisites and return comprehensive result.

        Returns:
            PrerequisiteResult: Detailed check results
        """
        missing: list[str] = []
        available: list[str] = []

        for tool in cls.REQUIRED_TOOLS:
            if cls.check_tool(tool):
                available.append(tool)
            else:
                missing.append(tool)

        platform_name = cls.detect_platform()
        result = PrerequisiteResult(
            all_available=(len(missing) == 0),
            missing=missing,
            available=available,
            platform_name=platform_name,
        )

        if result.all_available:
            logger.debug(f"All prerequisites available ({platform_name})")
        else:
            logger.error(f"Missing prerequisites: {', '.join(missing)}")

        return result

    @classmethod
    def detect_platform(cls) -> str:
        """
        Detect the operating system platform.

        Returns:
            str: Platform name (macos, linux, wsl, windows, unknown)
        """
        system = platform.system().lower()

        if system == "darwin":
            return "macos"
        if system == "linux":
            if cls._is_wsl():
                return "wsl"
            return "linux"
        if system == "windows":
            return "windows"
        return "unknown"

    @classmethod
    def _is_wsl(cls) -> bool:
        """Check if running in Windows Subsystem for Linux."""
        try:
            with open("/proc/version") as f:
                version = f.read().lower()
                return "microsoft" in version or "wsl" in version
        except (FileNotFoundError, PermissionError) as e:
            logger.debug(f"Failed to check for WSL: {e}")
            return False

    @classmethod
    def format_missing_message(cls, missing: list[str], platform_name: str) -> str:
        """Format user-friendly installation instructions for missing tools."""
        if not missing:
            return "All prerequisites are installed."

        hints = _INSTALL_HINTS.get("linux" if platform_name == "wsl" else platform_name, {})
        lines: list[str] = ["Missing required tools:", ""]
        for tool in missing:
            hint = hints.get(tool)
            lines.append(f"  - {tool}" + (f"  ({hint})" if hint else ""))
        lines.append("")
        lines.append(f"Platform: {platform_name}")
        return "\n".join(lines)


def to_native_path(path: Path) -> str:
    """Path as the az executable expects it.

    Under WSL the Windows build of az may be on PATH and needs a Windows
    path, which ``wslpath -w`` produces. Elsewhere the path is returned
    unchanged.
    """
    if PrerequisiteChecker.detect_platform() != "wsl" or not shutil.which("wslpath"):
        return str(path)
    try:
        result = subprocess.run(
            ["wslpath", "-w", str(path)], capture_output=True, text=True, check=True, timeout=10
        )
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired) as e:
        logger.warning(f"wslpath failed, using POSIX path: {e}")
        return str(path)
    return result.stdout.strip() or str(path)
