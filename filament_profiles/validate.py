"""
Audit of the repository's profile tree against the registry.

A broken file is recorded against that file and the walk carries on.
"""

import json
import logging
from pathlib import Path

from .matching import matches_pattern
from .metadata import first_value
from .models import ENTRIES_FILENAME, RegistryDocument, ValidationReport
from .scanner import EntriesFileError, discover_vendor_dirs, read_entries_file

logger = logging.getLogger(__name__)


def validate_profiles(
    profiles_root: Path, document: RegistryDocument | None = None
) -> ValidationReport:
    """
    Check every vendor directory under *profiles_root*.

    Errors: unparsable JSON, entries pointing at missing files, registry
    ``count`` out of step with ``profiles``, declared profiles absent from
    the entries file.  Warnings: names or setting ids that do not fit the
    vendor's patterns, vendor directories the registry does not know about.
    """
    report = ValidationReport()
    seen: set[tuple[str, str]] = set()

    for vendor_dir in discover_vendor_dirs(profiles_root):
        key = f"{vendor_dir.printer}/{vendor_dir.vendor}"
        seen.add((vendor_dir.printer, vendor_dir.vendor))
        entry = None
        if document is not None:
            entry = document.root.get(vendor_dir.printer, {}).get(vendor_dir.vendor)

        entry_names: set[str] | None = None
        if vendor_dir.has_entries():
            report.files_checked += 1
            try:
                entries = read_entries_file(vendor_dir.entries_file)
            except EntriesFileError as e:
                report.add_error(str(vendor_dir.entries_file), str(e))
            else:
                entry_names = {e.name for e in entries}
                for item in entries:
                    if not vendor_dir.source_file(item).is_file():
                        report.add_error(key, f"entry '{item.name}' points at a missing file")
        else:
            report.add_warning(key, f"no {ENTRIES_FILENAME}")

        for path in vendor_dir.profile_files():
            report.files_checked += 1
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                report.add_error(str(path), f"invalid JSON: {e}")
                continue
            if not isinstance(data, dict):
                report.add_error(str(path), "expected a JSON object")
                continue
            if entry is None:
                continue

            name = data.get("name")
            if name and not matches_pattern(name, entry.name_pattern):
                report.add_warning(
                    str(path), f"name '{name}' does not match '{entry.name_pattern}'"
                )
            setting_id = first_value(data.get("setting_id"))
            if (
                isinstance(setting_id, str)
                and entry.setting_id_pattern
                and not matches_pattern(setting_id, entry.setting_id_pattern)
            ):
                report.add_warning(
                    str(path),
                    f"setting_id '{setting_id}' does not match '{entry.setting_id_pattern}'",
                )

        if entry is not None:
            if entry.count != len(entry.profiles):
                report.add_error(
                    key, f"count is {entry.count} but {len(entry.profiles)} profiles are listed"
                )
            if entry_names is not None:
                for name in entry.profiles:
                    if name not in entry_names:
                        report.add_error(key, f"declared profile '{name}' is not in {ENTRIES_FILENAME}")
        elif document is not None and entry_names is not None:
            report.add_warning(key, "not in registry (run update-registry)")

    if document is not None:
        for printer, vendor, _ in document.iter_entries():
            if (printer, vendor) not in seen:
                report.add_warning(f"{printer}/{vendor}", "registry entry has no profile directory")

    logger.info(
        "Validated %d files: %d with errors", report.files_checked, len(report.errors)
    )
    return report
