"""
Walks the repository's profile tree: profiles/<printer>/<vendor>/.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from pydantic import ValidationError

from .models import ENTRIES_FILENAME, ManifestEntry

logger = logging.getLogger(__name__)

# Directories under the profile root that are never printers.
EXCLUDED_DIRS = frozenset({"tests"})


class EntriesFileError(ValueError):
    """Raised when a vendor's bbl_json_entries.json cannot be read."""


@dataclass
class VendorDir:
    """One profiles/<printer>/<vendor>/ directory."""

    printer: str
    vendor: str
    path: Path

    @property
    def entries_file(self) -> Path:
        return self.path / ENTRIES_FILENAME

    def has_entries(self) -> bool:
        return self.entries_file.is_file()

    def source_file(self, entry: ManifestEntry) -> Path:
        """Profile file for *entry*; files sit flat in the vendor directory."""
        return self.path / PurePosixPath(entry.sub_path.replace("\\", "/")).name

    def profile_files(self) -> list[Path]:
        return sorted(
            p for p in self.path.glob("*.json")
            if p.is_file() and p.name != ENTRIES_FILENAME
        )


def _is_excluded(path: Path) -> bool:
    return path.name in EXCLUDED_DIRS or path.name.startswith(".")


def discover_vendor_dirs(profiles_root: Path) -> list[VendorDir]:
    """
    Find every (printer, vendor) directory under *profiles_root*.

    Sorted by printer then vendor so that callers see a stable order.
    """
    if not profiles_root.is_dir():
        raise FileNotFoundError(f"Profiles directory not found: {profiles_root}")

    found: list[VendorDir] = []
    for printer_dir in sorted(profiles_root.iterdir()):
        if not printer_dir.is_dir() or _is_excluded(printer_dir):
            continue
        for vendor_dir in sorted(printer_dir.iterdir()):
            if not vendor_dir.is_dir() or vendor_dir.name.startswith("."):
                continue
            found.append(VendorDir(printer_dir.name, vendor_dir.name, vendor_dir))

    logger.debug("Discovered %d vendor directories under %s", len(found), profiles_root)
    return found


def find_vendor_dir(profiles_root: Path, printer: str, vendor: str) -> VendorDir:
    return VendorDir(printer, vendor, profiles_root / printer / vendor)


def read_entries_file(path: Path) -> list[ManifestEntry]:
    """Parse a vendor's ``{"entries": [{"name", "sub_path"}, ...]}`` file."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise EntriesFileError(f"{path}: invalid JSON ({e})") from e

    if not isinstance(data, dict) or not isinstance(data.get("entries"), list):
        raise EntriesFileError(f"{path}: missing 'entries' list")

    try:
        return [ManifestEntry.model_validate(item) for item in data["entries"]]
    except ValidationError as e:
        raise EntriesFileError(f"{path}: malformed entry ({e.error_count()} errors)") from e
