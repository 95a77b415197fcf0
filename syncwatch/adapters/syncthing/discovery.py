"""
Syncthing config discovery.

Reads the GUI section of Syncthing's ``config.xml`` so the watcher can reach
the REST API without any explicit configuration on a default install.
"""

import os
import sys
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from infra.exceptions import FatalValidationError
from infra.logger import get_logger

log = get_logger("syncwatch.discovery")

DEFAULT_GUI_ADDRESS = "localhost:8384"


@dataclass
class GuiSettings:
    address: str = DEFAULT_GUI_ADDRESS
    tls: bool = False
    api_key: str = ""
    user: str = ""

    @property
    def target(self) -> str:
        if "://" in self.address:
            return self.address
        scheme = "https" if self.tls else "http"
        return f"{scheme}://{self.address}"


def default_config_dir() -> Path:
    if sys.platform == "win32":
        return Path(os.environ.get("LocalAppData", "")) / "Syncthing"
    if sys.platform == "darwin":
        return Path("~/Library/Application Support/Syncthing").expanduser()
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / "syncthing"
    return Path("~/.config/syncthing").expanduser()


def discover_gui_settings(config_dir: Optional[Path] = None) -> GuiSettings:
    """
    Load GUI settings from ``<config_dir>/config.xml``.

    A missing file yields the defaults; an unreadable one is fatal.
    """
    path = Path(config_dir or default_config_dir()) / "config.xml"
    try:
        tree = ET.parse(path)
    except FileNotFoundError:
        log.debug("discovery.config_missing", path=str(path))
        return GuiSettings()
    except ET.ParseError as e:
        raise FatalValidationError(f"Cannot parse Syncthing config {path}: {e}") from e

    gui = tree.getroot().find("gui")
    if gui is None:
        return GuiSettings()

    settings = GuiSettings(
        address=(gui.findtext("address") or DEFAULT_GUI_ADDRESS).strip(),
        tls=(gui.get("tls") or "").lower() == "true",
        api_key=(gui.findtext("apikey") or "").strip(),
        user=(gui.findtext("user") or "").strip(),
    )
    log.info("discovery.config_loaded", path=str(path), target=settings.target)
    return settings
