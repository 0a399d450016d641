"""
Browser discovery and launching.

Finds a Chromium-family executable, starts it detached with remote debugging
enabled on a dedicated profile, and waits for the debugging endpoint.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import socket
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from cdp_mcp.cdp.discovery import DiscoveryClient
from cdp_mcp.cdp.errors import CDPConnectionError
from cdp_mcp.config import DEFAULT_CHROMIUM_FLAGS, HEADLESS_CHROMIUM_FLAGS, LaunchOptions
from cdp_mcp.config.defaults import DEFAULT_HOME_DIR
from cdp_mcp.models import LaunchResult

logger = logging.getLogger(__name__)

BROWSER_PATHS: dict[str, list[str]] = {
    "linux": [
        "/usr/bin/google-chrome",
        "/usr/bin/google-chrome-stable",
        "/opt/google/chrome/chrome",
        "/usr/bin/chromium",
        "/usr/bin/chromium-browser",
        "/snap/bin/chromium",
        "/usr/bin/microsoft-edge",
        "/usr/bin/brave-browser",
    ],
    "darwin": [
        "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
        "/Applications/Chromium.app/Contents/MacOS/Chromium",
        "/Applications/Microsoft Edge.app/Contents/MacOS/Microsoft Edge",
        "/Applications/Brave Browser.app/Contents/MacOS/Brave Browser",
    ],
    "win32": [
        "C:\\Program Files\\Google\\Chrome\\Application\\chrome.exe",
        "C:\\Program Files (x86)\\Google\\Chrome\\Application\\chrome.exe",
        "C:\\Program Files\\Microsoft\\Edge\\Application\\msedge.exe",
        "C:\\Program Files (x86)\\Microsoft\\Edge\\Application\\msedge.exe",
        "C:\\Program Files\\BraveSoftware\\Brave-Browser\\Application\\brave.exe",
    ],
}

BROWSER_COMMANDS = [
    "google-chrome",
    "google-chrome-stable",
    "chromium",
    "chromium-browser",
    "microsoft-edge",
]

BROWSER_NAMES = {
    "chrome": "Google Chrome",
    "chromium": "Chromium",
    "edge": "Microsoft Edge",
    "brave": "Brave",
}


@dataclass(frozen=True)
class BrowserInfo:
    """A discovered browser executable."""

    name: str
    path: str
    kind: str


def browser_kind(path: str) -> str:
    lowered = path.lower()
    if "chromium" in lowered:
        return "chromium"
    if "edge" in lowered or "msedge" in lowered:
        return "edge"
    if "brave" in lowered:
        return "brave"
    return "chrome"


def _browser_info(path: str) -> BrowserInfo:
    kind = browser_kind(path)
    return BrowserInfo(name=BROWSER_NAMES[kind], path=path, kind=kind)


def platform_paths(platform: Optional[str] = None) -> list[str]:
    return list(BROWSER_PATHS.get(platform or sys.platform, []))


def find_browser(preferred: Optional[str] = None) -> Optional[BrowserInfo]:
    """Locate a browser executable.

    Order: ``$CHROME_PATH``, a known path matching ``preferred``, common
    commands on ``PATH``, then every known path for the platform.

    Returns:
        The first browser found, or None.
    """
    env_path = os.environ.get("CHROME_PATH")
    if env_path and os.path.exists(env_path):
        return _browser_info(env_path)

    paths = platform_paths()

    if preferred:
        for path in paths:
            if preferred.lower() in path.lower() and os.path.exists(path):
                return _browser_info(path)

    for command in BROWSER_COMMANDS:
        path = shutil.which(command)
        if path and os.path.exists(path):
            return _browser_info(path)

    for path in paths:
        if os.path.exists(path):
            return _browser_info(path)

    return None


def searched_paths() -> list[str]:
    """Locations ``find_browser`` looks at, for error reports."""
    paths = []
    env_path = os.environ.get("CHROME_PATH")
    if env_path:
        paths.append(f"$CHROME_PATH: {env_path}")
    paths.extend(platform_paths())
    return paths


def profile_dir(name: str, home_dir: str = DEFAULT_HOME_DIR) -> Path:
    """Directory of a named browser profile."""
    return Path(home_dir).expanduser() / "profiles" / name


def default_flags(port: int, profile_path: Path | str, headless: bool) -> list[str]:
    """Command-line flags for a debuggable browser on a dedicated profile."""
    flags = [
        f"--remote-debugging-port={port}",
        f"--user-data-dir={profile_path}",
        *DEFAULT_CHROMIUM_FLAGS,
    ]
    if headless:
        flags.extend(HEADLESS_CHROMIUM_FLAGS)
    return flags


def is_port_in_use(port: int, host: str = "127.0.0.1") -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind((host, port))
        except OSError:
            return True
    return False


class BrowserLauncher:
    """Launches and owns one browser process.

    Example:
        launcher = BrowserLauncher()
        result = await launcher.launch(LaunchOptions(headless=True))
        if result.launched:
            ...
        await launcher.close()
    """

    def __init__(
        self,
        *,
        discovery_factory: Optional[Callable[[int], DiscoveryClient]] = None,
        popen: Callable[..., Any] = subprocess.Popen,
    ) -> None:
        self._discovery_factory = discovery_factory or (
            lambda port: DiscoveryClient("localhost", port)
        )
        self._popen = popen
        self._process: Optional[Any] = None
        self._port: Optional[int] = None

    @property
    def process(self) -> Optional[Any]:
        return self._process

    @property
    def port(self) -> Optional[int]:
        return self._port

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    async def _port_conflict(self, port: int) -> Optional[LaunchResult]:
        if not is_port_in_use(port):
            return None

        try:
            await self._discovery_factory(port).version()
        except CDPConnectionError:
            return LaunchResult(
                launched=False,
                error="port_in_use",
                message=f"Port {port} is already in use by another process.",
                suggestion=f"cdp_launch(port={port + 1})",
            )

        return LaunchResult(
            launched=False,
            error="port_in_use",
            message=f"Port {port} is already in use by a CDP instance. Use cdp_connect instead.",
            suggestion=f"cdp_connect(port={port}) or cdp_launch(port={port + 1})",
        )

    async def launch(self, options: Optional[LaunchOptions] = None) -> LaunchResult:
        """Start a browser and wait until its debugging endpoint answers.

        Expected failures (port taken, no browser, endpoint never ready) are
        reported in the result rather than raised.
        """
        options = options or LaunchOptions()
        port = options.port

        conflict = await self._port_conflict(port)
        if conflict is not None:
            return conflict

        if options.executable_path:
            browser: Optional[BrowserInfo] = _browser_info(options.executable_path)
        else:
            browser = find_browser(options.preferred_browser)
        if browser is None:
            return LaunchResult(
                launched=False,
                error="no_browser_found",
                message="Could not find Chrome, Chromium, or Edge. Install one or set $CHROME_PATH.",
                searched=searched_paths(),
            )

        profile_path = profile_dir(options.profile, options.home_dir)
        profile_path.mkdir(parents=True, exist_ok=True)

        flags = default_flags(port, profile_path, options.headless)
        flags.append(f"--window-size={options.width},{options.height}")
        flags.extend(options.args)
        flags.append(options.start_url)

        logger.debug(f"Launching browser: {browser.path}")
        logger.debug(f"Browser flags: {flags}")

        try:
            self._process = self._popen(
                [browser.path, *flags],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            return LaunchResult(
                launched=False,
                error="spawn_failed",
                message=f"Could not start {browser.path}: {e}",
            )
        self._port = port

        version = await self._discovery_factory(port).wait_until_ready(
            timeout=options.ready_timeout,
            interval=options.ready_interval,
        )
        if version is None:
            return LaunchResult(
                launched=False,
                error="cdp_timeout",
                message="Browser launched but CDP did not respond within timeout.",
                pid=self._process.pid,
            )

        return LaunchResult(
            launched=True,
            browser=browser.name,
            version=version.browser,
            port=port,
            pid=self._process.pid,
            profile=options.profile,
            profile_path=str(profile_path),
            flags=flags,
        )

    async def close(self, timeout: float = 5.0) -> bool:
        """Terminate the launched browser.

        Returns:
            True if a process was running.
        """
        process = self._process
        self._process = None
        self._port = None
        if process is None:
            return False

        try:
            process.terminate()
            try:
                await asyncio.wait_for(
                    asyncio.get_running_loop().run_in_executor(None, process.wait),
                    timeout=timeout,
                )
            except asyncio.TimeoutError:
                process.kill()
                process.wait()
        except (OSError, ProcessLookupError) as e:
            logger.debug(f"Browser process already gone: {e}")

        return True
