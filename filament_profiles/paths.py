"""
Locations of the Bambu Studio data directory and the files inside it.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import BaseModel

APP_DIR_NAME = "BambuStudio"

# System vendor whose manifest (BBL.json) lists the installed filament profiles.
SYSTEM_VENDOR = "BBL"


def default_app_dir() -> Path:
    """
    Return the platform's default Bambu Studio data directory.

        Windows: %APPDATA%/BambuStudio
        macOS:   ~/Library/Application Support/BambuStudio
        other:   ~/.config/BambuStudio
    """
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        base = Path(appdata) if appdata else Path.home() / "AppData" / "Roaming"
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        xdg = os.environ.get("XDG_CONFIG_HOME")
        base = Path(xdg) if xdg else Path.home() / ".config"
    return base / APP_DIR_NAME


class AppPaths(BaseModel):
    """Paths derived from the application data directory."""

    app_dir: Path

    @property
    def system_dir(self) -> Path:
        return self.app_dir / "system"

    @property
    def manifest_path(self) -> Path:
        return self.system_dir / f"{SYSTEM_VENDOR}.json"

    @property
    def profiles_dir(self) -> Path:
        """Directory that manifest ``sub_path`` values are relative to."""
        return self.system_dir / SYSTEM_VENDOR
