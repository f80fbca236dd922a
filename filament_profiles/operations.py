"""
Install, uninstall and scan drivers.

Each operation is a single read -> compute -> mutate pass.  The application
manifest is always backed up before anything on disk is changed; there is
no rollback beyond restoring that backup by hand.
"""

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from .manifest import AppManifest, ManifestNotFoundError
from .matching import is_declared_member
from .metadata import read_metadata
from .models import (
    InstalledProfile,
    InstallReport,
    ManifestEntry,
    RegistryDocument,
    ScanReport,
    UninstallReport,
    VendorEntry,
)
from .paths import AppPaths
from .progress import NullProgressReporter, ProgressReporter
from .reconcile import (
    installed,
    orphaned_entries,
    orphaned_files,
    select_entries,
    unclaimed_matches,
)
from .registry import ProfileRegistry
from .scanner import EntriesFileError, find_vendor_dir, read_entries_file
from .selection import group_by_material

logger = logging.getLogger(__name__)


class PrerequisiteError(Exception):
    """Raised when the application directory or its manifest is missing."""


class RegistryLookupError(LookupError):
    """Raised when a printer/vendor pair is not in the registry."""


class SelectionError(ValueError):
    """Raised when a selection leaves nothing to act on."""


@dataclass
class PlannedProfile:
    """One profile an install would copy and register."""

    name: str
    entry: ManifestEntry
    source: Path
    destination: Path
    file_exists: bool
    listed: bool


@dataclass
class InstallPlan:
    printer: str
    vendor: str
    items: list[PlannedProfile] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class ProfileManager:
    """
    Applies registry selections to a Bambu Studio data directory.

    Usage:
        registry = ProfileRegistry("registry.json")
        manager = ProfileManager(
            registry.load(),
            AppPaths(app_dir=default_app_dir()),
            profiles_root=Path("profiles"),
        )

        report = manager.install("H2D", "SUNLU", ["SUNLU PLA @BBL H2D"])
        report = manager.uninstall("H2D", "SUNLU")
        scan = manager.scan(check_orphans=True)
    """

    def __init__(
        self,
        document: RegistryDocument,
        paths: AppPaths,
        profiles_root: Path,
        reporter: ProgressReporter | None = None,
    ):
        self.document = document
        self.paths = paths
        self.profiles_root = profiles_root
        self.reporter: ProgressReporter = reporter or NullProgressReporter()

    def load_manifest(self) -> AppManifest:
        if not self.paths.app_dir.is_dir():
            raise PrerequisiteError(
                f"Bambu Studio data directory not found: {self.paths.app_dir}"
            )
        try:
            return AppManifest.load(self.paths)
        except ManifestNotFoundError as e:
            raise PrerequisiteError(str(e)) from e

    def vendor_entry(self, printer: str, vendor: str) -> VendorEntry:
        entry = ProfileRegistry.entries_for_vendor(self.document, printer, vendor)
        if entry is None:
            raise RegistryLookupError(f"No registry entry for {printer}/{vendor}")
        return entry

    def menu(self, printer: str, vendor: str) -> list[tuple[str, list[str]]]:
        """The vendor's declared profiles grouped by material, in menu order."""
        entry = self.vendor_entry(printer, vendor)
        return group_by_material(entry.profiles, entry.materials)

    def _warn(self, sink: list[str], message: str) -> None:
        logger.debug("%s", message)
        sink.append(message)
        self.reporter.warning(message)

    # --- Install ---

    def plan_install(
        self,
        printer: str,
        vendor: str,
        profiles: list[str],
        manifest: AppManifest,
    ) -> InstallPlan:
        entry = self.vendor_entry(printer, vendor)
        plan = InstallPlan(printer, vendor)
        vendor_dir = find_vendor_dir(self.profiles_root, printer, vendor)

        sources: dict[str, ManifestEntry] = {}
        if vendor_dir.has_entries():
            try:
                sources = {e.name: e for e in read_entries_file(vendor_dir.entries_file)}
            except EntriesFileError as e:
                self._warn(plan.warnings, str(e))

        listed = manifest.names()
        seen: set[str] = set()
        for name in profiles:
            if name in seen:
                continue
            seen.add(name)
            if not is_declared_member(name, entry):
                self._warn(plan.warnings, f"'{name}' is not declared for {printer}/{vendor}")
                continue

            item = sources.get(name) or ManifestEntry(
                name=name, sub_path=f"{entry.destination_path}/{name}.json"
            )
            source = vendor_dir.source_file(item)
            if not source.is_file():
                self._warn(plan.warnings, f"Source file missing for '{name}': {source}")
                continue

            destination = manifest.resolve(item)
            plan.items.append(PlannedProfile(
                name=name,
                entry=item,
                source=source,
                destination=destination,
                file_exists=destination.exists(),
                listed=name in listed,
            ))

        if not plan.items:
            raise SelectionError(f"No installable profiles selected for {printer}/{vendor}")
        return plan

    def install(
        self,
        printer: str,
        vendor: str,
        profiles: list[str],
        overwrite: bool = False,
        dry_run: bool = False,
    ) -> InstallReport:
        """
        Copy the selected profiles into the application and register them.

        Existing destination files are kept unless *overwrite* is set; names
        already in the manifest are not added twice.  The manifest is only
        written when at least one entry was appended.
        """
        manifest = self.load_manifest()
        plan = self.plan_install(printer, vendor, profiles, manifest)
        report = InstallReport(
            printer=printer, vendor=vendor, dry_run=dry_run, warnings=list(plan.warnings)
        )

        if dry_run:
            for item in plan.items:
                if item.file_exists and not overwrite:
                    report.skipped_files.append(item.name)
                else:
                    report.copied.append(item.name)
                if item.listed:
                    report.skipped_entries.append(item.name)
                else:
                    report.added.append(item.name)
            return report

        report.backup_path = manifest.backup()
        entry = self.vendor_entry(printer, vendor)
        (self.paths.profiles_dir / entry.destination_path).mkdir(parents=True, exist_ok=True)

        total = len(plan.items)
        for i, item in enumerate(plan.items, 1):
            self.reporter.step(f"Installing {item.name}", i, total)
            item.destination.parent.mkdir(parents=True, exist_ok=True)
            if item.destination.exists() and not overwrite:
                self._warn(report.warnings, f"{item.destination.name} already exists, not overwriting")
                report.skipped_files.append(item.name)
            else:
                shutil.copy2(item.source, item.destination)
                report.copied.append(item.name)

            if manifest.append(item.entry):
                report.added.append(item.name)
            else:
                self._warn(report.warnings, f"'{item.name}' is already in the manifest")
                report.skipped_entries.append(item.name)

        if report.added:
            manifest.save()
            report.manifest_written = True
        logger.info(
            "Installed %s/%s: %d copied, %d registered",
            printer, vendor, len(report.copied), len(report.added),
        )
        return report

    # --- Uninstall ---

    def installed_for(self, printer: str, vendor: str) -> list[InstalledProfile]:
        self.vendor_entry(printer, vendor)
        return installed(self.document, self.load_manifest(), printer, vendor)

    def uninstall(
        self,
        printer: str,
        vendor: str,
        profiles: list[str] | None = None,
        dry_run: bool = False,
    ) -> UninstallReport:
        """
        Remove installed profiles of one vendor, or only those named in *profiles*.

        When nothing is installed this returns without a backup or a write.
        """
        self.vendor_entry(printer, vendor)
        manifest = self.load_manifest()
        records = installed(self.document, manifest, printer, vendor)
        report = UninstallReport(printer=printer, vendor=vendor, dry_run=dry_run)

        if profiles is not None:
            wanted = set(profiles)
            present = {r.profile_name for r in records}
            for name in profiles:
                if name not in present:
                    self._warn(report.warnings, f"'{name}' is not installed")
            filtered = [r for r in records if r.profile_name in wanted]
            if records and not filtered:
                raise SelectionError(
                    f"None of the selected profiles are installed for {printer}/{vendor}"
                )
            records = filtered

        if not records:
            self.reporter.update_status(f"Nothing installed for {printer}/{vendor}")
            return report

        names = list(dict.fromkeys(r.profile_name for r in records))
        files = list(dict.fromkeys(r.resolved_file_path for r in records))

        if dry_run:
            report.removed_entries = names
            for path in files:
                (report.deleted_files if path.is_file() else report.missing_files).append(str(path))
            return report

        report.backup_path = manifest.backup()

        for i, path in enumerate(files, 1):
            self.reporter.step(f"Removing {path.name}", i, len(files))
            if path.is_file():
                path.unlink()
                report.deleted_files.append(str(path))
            else:
                report.missing_files.append(str(path))

        removed = manifest.remove_names(names)
        report.removed_entries = list(dict.fromkeys(removed))
        if removed:
            manifest.save()
            report.manifest_written = True
        logger.info(
            "Uninstalled %s/%s: %d entries, %d files",
            printer, vendor, len(report.removed_entries), len(report.deleted_files),
        )
        return report

    # --- Scan ---

    def scan(
        self,
        printer: str | None = None,
        vendor: str | None = None,
        check_orphans: bool = False,
        details: bool = False,
    ) -> ScanReport:
        """Read-only report of what from the registry is installed."""
        manifest = self.load_manifest()
        report = ScanReport(printer=printer, vendor=vendor)

        if printer is not None and printer not in self.document.root:
            report.warnings.append(f"Printer '{printer}' not found in registry")
        elif vendor is not None and not select_entries(self.document, printer, vendor):
            where = f" for printer '{printer}'" if printer else ""
            report.warnings.append(f"Vendor '{vendor}' not found{where} in registry")

        report.installed = installed(self.document, manifest, printer, vendor)

        if details:
            for record in report.installed:
                if not record.exists:
                    continue
                try:
                    record.metadata = read_metadata(record.resolved_file_path)
                except (OSError, ValueError) as e:
                    report.warnings.append(f"{record.resolved_file_path}: {e}")

        if printer is None and vendor is None:
            report.pattern_matches = unclaimed_matches(self.document, manifest)

        if check_orphans:
            report.orphans_checked = True
            report.orphaned_entries = orphaned_entries(report.installed)
            report.orphaned_files = orphaned_files(self.document, manifest, printer, vendor)

        return report
