from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator

from pydantic import BaseModel, Field, RootModel

# Per-vendor manifest shipped in every profiles/<printer>/<vendor>/ directory.
ENTRIES_FILENAME = "bbl_json_entries.json"

# Top-level key of the application manifest that this tool reads and edits.
FILAMENT_LIST_KEY = "filament_list"


class VendorEntry(BaseModel):
    """
    Registry record for one (printer, vendor) pair.

    Unknown keys are kept so that hand-edited fields survive a
    load/save cycle.
    """

    model_config = {"extra": "allow"}

    description: str = ""
    count: int = 0
    entries_file: str = ""
    materials: list[str] | None = None
    name_pattern: str
    setting_id_pattern: str = ""
    destination_path: str
    profiles: list[str] = Field(default_factory=list)


class RegistryDocument(RootModel[dict[str, dict[str, VendorEntry]]]):
    """printer -> vendor -> VendorEntry, in file order."""

    root: dict[str, dict[str, VendorEntry]] = Field(default_factory=dict)

    def printers(self) -> list[str]:
        return list(self.root)

    def iter_entries(self) -> Iterator[tuple[str, str, VendorEntry]]:
        for printer, vendors in self.root.items():
            for vendor, entry in vendors.items():
                yield printer, vendor, entry


class ManifestEntry(BaseModel):
    """One {name, sub_path} record, either from BBL.json or a vendor entries file."""

    model_config = {"extra": "allow"}

    name: str
    sub_path: str


class InstalledProfile(BaseModel):
    """A registry-declared profile found in the application manifest."""

    printer: str
    vendor: str
    profile_name: str
    resolved_file_path: Path
    exists: bool
    metadata: ProfileMetadata | None = None


class OrphanedFile(BaseModel):
    """A profile file on disk that no manifest entry points at."""

    printer: str
    vendor: str
    path: Path


class PatternMatch(BaseModel):
    """A manifest entry claimed only by a vendor's wildcard patterns."""

    printer: str
    vendor: str
    name: str


class ProfileMetadata(BaseModel):
    """Provenance block optionally embedded in a profile file."""

    model_config = {"extra": "allow"}

    repository: str | None = None
    repository_url: str | None = None
    version: str | None = None
    printer: str | None = None
    vendor: str | None = None
    last_updated: str | None = None
    testing_status: str | None = None


class ScanReport(BaseModel):
    """Result of a read-only scan of installed state."""

    printer: str | None = None
    vendor: str | None = None
    installed: list[InstalledProfile] = Field(default_factory=list)
    orphans_checked: bool = False
    orphaned_entries: list[InstalledProfile] = Field(default_factory=list)
    orphaned_files: list[OrphanedFile] = Field(default_factory=list)
    pattern_matches: list[PatternMatch] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    def grouped(self) -> dict[tuple[str, str], list[InstalledProfile]]:
        """Group installed records by (printer, vendor), keeping first-seen order."""
        groups: dict[tuple[str, str], list[InstalledProfile]] = {}
        for item in self.installed:
            groups.setdefault((item.printer, item.vendor), []).append(item)
        return groups


class InstallReport(BaseModel):
    """Outcome of installing a selection of profiles for one vendor."""

    printer: str
    vendor: str
    dry_run: bool = False
    backup_path: Path | None = None
    copied: list[str] = Field(default_factory=list)
    skipped_files: list[str] = Field(default_factory=list)
    added: list[str] = Field(default_factory=list)
    skipped_entries: list[str] = Field(default_factory=list)
    manifest_written: bool = False
    warnings: list[str] = Field(default_factory=list)


class UninstallReport(BaseModel):
    """Outcome of removing a selection of profiles for one vendor."""

    printer: str
    vendor: str
    dry_run: bool = False
    backup_path: Path | None = None
    removed_entries: list[str] = Field(default_factory=list)
    deleted_files: list[str] = Field(default_factory=list)
    missing_files: list[str] = Field(default_factory=list)
    manifest_written: bool = False
    warnings: list[str] = Field(default_factory=list)

    @property
    def nothing_to_do(self) -> bool:
        return not self.removed_entries and not self.deleted_files and not self.missing_files


class RegenerationReport(BaseModel):
    """What changed while rebuilding the registry from the profile tree."""

    created: list[str] = Field(default_factory=list)
    updated: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)


class ValidationReport(BaseModel):
    """Per-file errors and warnings collected while auditing the profile tree."""

    files_checked: int = 0
    errors: dict[str, list[str]] = Field(default_factory=dict)
    warnings: dict[str, list[str]] = Field(default_factory=dict)

    def add_error(self, key: str, message: str) -> None:
        self.errors.setdefault(key, []).append(message)

    def add_warning(self, key: str, message: str) -> None:
        self.warnings.setdefault(key, []).append(message)

    @property
    def ok(self) -> bool:
        return not self.errors

    def summary(self) -> dict[str, Any]:
        return {
            "files_checked": self.files_checked,
            "errors": sum(len(v) for v in self.errors.values()),
            "warnings": sum(len(v) for v in self.warnings.values()),
        }


InstalledProfile.model_rebuild()
