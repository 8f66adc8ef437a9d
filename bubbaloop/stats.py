"""Information about the user, the machine and its resources."""

from __future__ import annotations

import getpass
import logging
import os
import platform
import socket
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

import psutil

logger = logging.getLogger(__name__)

_OS_RELEASE_PATHS = (Path("/etc/os-release"), Path("/usr/lib/os-release"))
_MACHINE_INFO_PATH = Path("/etc/machine-info")
_CPUINFO_PATH = Path("/proc/cpuinfo")
_DESKTOP_VARIABLES = ("XDG_CURRENT_DESKTOP", "XDG_SESSION_DESKTOP", "DESKTOP_SESSION")


class WhoamiArch(Enum):
    """The processor architecture of the current system."""

    ARM64 = "Arm64"
    ARMV5 = "Armv5"
    ARMV6 = "Armv6"
    ARMV7 = "Armv7"
    I386 = "I386"
    I586 = "I586"
    I686 = "I686"
    X64 = "X64"
    MIPS = "Mips"
    MIPSEL = "Mipsel"
    MIPS64 = "Mips64"
    MIPS64EL = "Mips64el"
    POWERPC = "Powerpc"
    POWERPC64 = "Powerpc64"
    POWERPC64LE = "Powerpc64le"
    RISCV32 = "Riscv32"
    RISCV64 = "Riscv64"
    S390X = "S390x"
    SPARC = "Sparc"
    SPARC64 = "Sparc64"
    WASM32 = "Wasm32"
    WASM64 = "Wasm64"
    UNKNOWN = "Unknown"

    @classmethod
    def from_machine(cls, machine: str) -> WhoamiArch:
        """Map a machine name such as ``platform.machine()`` to an architecture."""
        name = machine.strip().lower()
        if name in _ARCH_ALIASES:
            return cls[_ARCH_ALIASES[name]]
        for prefix, member in (("armv5", "ARMV5"), ("armv6", "ARMV6"), ("armv7", "ARMV7")):
            if name.startswith(prefix):
                return cls[member]
        return cls.UNKNOWN


_ARCH_ALIASES = {
    "aarch64": "ARM64",
    "arm64": "ARM64",
    "i386": "I386",
    "i586": "I586",
    "i686": "I686",
    "x86_64": "X64",
    "amd64": "X64",
    "x64": "X64",
    "mips": "MIPS",
    "mipsel": "MIPSEL",
    "mips64": "MIPS64",
    "mips64el": "MIPS64EL",
    "ppc": "POWERPC",
    "powerpc": "POWERPC",
    "ppc64": "POWERPC64",
    "powerpc64": "POWERPC64",
    "ppc64le": "POWERPC64LE",
    "powerpc64le": "POWERPC64LE",
    "riscv32": "RISCV32",
    "riscv64": "RISCV64",
    "s390x": "S390X",
    "sparc": "SPARC",
    "sparc64": "SPARC64",
    "wasm32": "WASM32",
    "wasm64": "WASM64",
}


class WhoamiPlatform(Enum):
    """The operating system family of the current system."""

    LINUX = "Linux"
    BSD = "Bsd"
    WINDOWS = "Windows"
    MACOS = "Macos"
    ILLUMOS = "Illumos"
    IOS = "Ios"
    ANDROID = "Android"
    NINTENDO = "Nintendo"
    XBOX = "Xbox"
    PLAYSTATION = "PlayStation"
    FUCHSIA = "Fuchsia"
    REDOX = "Redox"
    UNKNOWN = "Unknown"

    @classmethod
    def from_system(cls, system: str) -> WhoamiPlatform:
        """Map a system name such as ``platform.system()`` to a platform."""
        return cls[_PLATFORM_ALIASES.get(system.strip().lower(), "UNKNOWN")]


_PLATFORM_ALIASES = {
    "linux": "LINUX",
    "freebsd": "BSD",
    "openbsd": "BSD",
    "netbsd": "BSD",
    "dragonfly": "BSD",
    "windows": "WINDOWS",
    "darwin": "MACOS",
    "sunos": "ILLUMOS",
    "ios": "IOS",
    "ipados": "IOS",
    "android": "ANDROID",
    "fuchsia": "FUCHSIA",
    "redox": "REDOX",
}


class WhoamiDesktopEnv(Enum):
    """The desktop environment of the current session."""

    GNOME = "Gnome"
    WINDOWS = "Windows"
    LXDE = "Lxde"
    OPENBOX = "Openbox"
    MATE = "Mate"
    XFCE = "Xfce"
    KDE = "Kde"
    CINNAMON = "Cinnamon"
    I3 = "I3"
    AQUA = "Aqua"
    IOS = "Ios"
    ANDROID = "Android"
    WEB_BROWSER = "WebBrowser"
    CONSOLE = "Console"
    UBUNTU = "Ubuntu"
    ERMINE = "Ermine"
    ORBITAL = "Orbital"
    UNKNOWN = "Unknown"

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> WhoamiDesktopEnv:
        """Detect the desktop from the session variables of an environment."""
        for variable in _DESKTOP_VARIABLES:
            value = environ.get(variable, "")
            for token in value.replace(";", ":").split(":"):
                member = _DESKTOP_ALIASES.get(token.strip().lower())
                if member is not None:
                    return cls[member]
        return cls.UNKNOWN


_DESKTOP_ALIASES = {
    "gnome": "GNOME",
    "gnome-classic": "GNOME",
    "gnome-xorg": "GNOME",
    "lxde": "LXDE",
    "openbox": "OPENBOX",
    "mate": "MATE",
    "xfce": "XFCE",
    "xfce4": "XFCE",
    "kde": "KDE",
    "plasma": "KDE",
    "cinnamon": "CINNAMON",
    "x-cinnamon": "CINNAMON",
    "i3": "I3",
    "ubuntu": "UBUNTU",
    "ermine": "ERMINE",
    "orbital": "ORBITAL",
}


def _read_key_values(path: Path) -> dict[str, str]:
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return {}
    entries = {}
    for line in text.splitlines():
        key, sep, value = line.strip().partition("=")
        if sep and not key.startswith("#"):
            entries[key.strip()] = value.strip().strip("\"'")
    return entries


def _os_release() -> dict[str, str]:
    for path in _OS_RELEASE_PATHS:
        entries = _read_key_values(path)
        if entries:
            return entries
    return {}


def _hostname() -> str:
    try:
        return socket.gethostname()
    except OSError:
        return "unknown"


def _username() -> str:
    try:
        return getpass.getuser()
    except (OSError, KeyError, ImportError):
        return "unknown"


def _realname(username: str) -> str:
    try:
        import pwd

        gecos = pwd.getpwuid(os.getuid()).pw_gecos
    except (ImportError, KeyError, AttributeError):
        return username
    return gecos.split(",")[0].strip() or username


def _distro(system: str) -> str:
    if system == "Linux":
        release = _os_release()
        return release.get("PRETTY_NAME") or release.get("NAME") or "Unknown"
    if system == "Darwin":
        return f"macOS {platform.mac_ver()[0]}".strip()
    if system == "Windows":
        return f"Windows {platform.release()}".strip()
    return f"{system} {platform.release()}".strip() or "Unknown"


def _device_name(system: str, hostname: str) -> str:
    if system == "Linux":
        pretty = _read_key_values(_MACHINE_INFO_PATH).get("PRETTY_HOSTNAME")
        if pretty:
            return pretty
    return hostname


def _desktop_env(user_platform: WhoamiPlatform) -> WhoamiDesktopEnv:
    if user_platform is WhoamiPlatform.WINDOWS:
        return WhoamiDesktopEnv.WINDOWS
    if user_platform is WhoamiPlatform.MACOS:
        return WhoamiDesktopEnv.AQUA
    if user_platform is WhoamiPlatform.IOS:
        return WhoamiDesktopEnv.IOS
    if user_platform is WhoamiPlatform.ANDROID:
        return WhoamiDesktopEnv.ANDROID
    return WhoamiDesktopEnv.from_environ(os.environ)


def get_whoami() -> dict[str, Any]:
    """Describe the current user and the machine they are on."""
    logger.debug("🤖 Received request for whoami")
    system = platform.system()
    user_platform = WhoamiPlatform.from_system(system)
    hostname = _hostname()
    username = _username()
    return {
        "arch": WhoamiArch.from_machine(platform.machine()).value,
        "distro": _distro(system),
        "desktop_env": _desktop_env(user_platform).value,
        "device_name": _device_name(system, hostname),
        "hostname": hostname,
        "platform": user_platform.value,
        "realname": _realname(username),
        "username": username,
    }


def _system_name(system: str) -> str:
    if system == "Linux":
        return _os_release().get("NAME", "")
    return system


def _os_version(system: str) -> str:
    if system == "Linux":
        return _os_release().get("VERSION_ID", "")
    if system == "Darwin":
        return platform.mac_ver()[0]
    if system == "Windows":
        return platform.version()
    return ""


def _cpu_brand() -> str:
    for line in _read_lines(_CPUINFO_PATH):
        key, sep, value = line.partition(":")
        if sep and key.strip() == "model name":
            return value.strip()
    return platform.processor()


def _read_lines(path: Path) -> list[str]:
    try:
        return path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        return []


def _cpu_frequencies(count: int) -> list[int]:
    try:
        freqs = psutil.cpu_freq(percpu=True) or []
    except (AttributeError, OSError, NotImplementedError):
        freqs = []
    values = [int(freq.current) for freq in freqs]
    if len(values) == count:
        return values
    return [values[0] if values else 0] * count


def _disks() -> list[dict[str, Any]]:
    disks = []
    for part in psutil.disk_partitions(all=False):
        try:
            usage = psutil.disk_usage(part.mountpoint)
        except OSError:
            continue
        disks.append(
            {
                "name": part.device,
                "file_system": part.fstype,
                "mount_point": part.mountpoint,
                "total_space": usage.total,
                "available_space": usage.free,
            }
        )
    return disks


def get_sysinfo() -> dict[str, Any]:
    """Report memory, processor, disk and operating system details."""
    logger.debug("🤖 Received request for sysinfo")
    system = platform.system()
    memory = psutil.virtual_memory()
    swap = psutil.swap_memory()
    global_usage = float(psutil.cpu_percent())
    usages = psutil.cpu_percent(percpu=True)
    brand = _cpu_brand()
    cpus = [
        {"name": f"cpu{number}", "brand": brand, "frequency": frequency, "usage": float(usage)}
        for number, (usage, frequency) in enumerate(zip(usages, _cpu_frequencies(len(usages))))
    ]
    return {
        "total_memory": memory.total,
        "free_memory": memory.free,
        "used_memory": memory.used,
        "available_memory": memory.available,
        "total_swap": swap.total,
        "name": _system_name(system),
        "kernel_version": platform.release(),
        "os_version": _os_version(system),
        "host_name": _hostname(),
        "cpus": cpus,
        "disks": _disks(),
        "global_cpu_usage": global_usage,
    }