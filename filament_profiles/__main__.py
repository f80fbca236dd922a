"""
filament_profiles CLI - Install, remove and audit Bambu Studio filament profiles.

Usage:
    filament-profiles <command> [options]
    python -m filament_profiles <command> [options]
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from filament_profiles import (
    AppPaths,
    PrerequisiteError,
    ProfileManager,
    ProfileRegistry,
    RegistryDocument,
    RegistryFormatError,
    RegistryLookupError,
    RegistryNotFoundError,
    SelectionError,
    default_app_dir,
    menu_order,
    parse_selection,
    validate_profiles,
)

logger = logging.getLogger(__name__)


def _find_project_root() -> Path:
    """Find the project root by looking for pyproject.toml."""
    current = Path(__file__).resolve().parent
    while current != current.parent:
        if (current / "pyproject.toml").exists():
            return current
        current = current.parent
    return Path.cwd()


project_root = _find_project_root()


def _add_location_args(parser: argparse.ArgumentParser, app_dir: bool = True) -> None:
    parser.add_argument(
        "--registry",
        default=None,
        help="Registry file (default: $FILAMENT_PROFILES_REGISTRY or 'registry.json')",
    )
    parser.add_argument(
        "--profiles",
        default=None,
        help="Profile tree (default: $FILAMENT_PROFILES_ROOT or 'profiles')",
    )
    if app_dir:
        parser.add_argument(
            "--app-dir",
            default=None,
            help="Bambu Studio data directory (default: $FILAMENT_PROFILES_APP_DIR or the platform default)",
        )
    parser.add_argument(
        "--json", action="store_true", help="Output report as JSON"
    )


def _add_selection_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--printer", "-p", default=None, help="Printer model (e.g. H2D)")
    parser.add_argument("--vendor", "-m", default=None, help="Filament vendor (e.g. SUNLU)")
    parser.add_argument(
        "--profile",
        action="append",
        default=None,
        metavar="NAME",
        help="Profile name to act on (repeatable; skips the menu)",
    )
    parser.add_argument(
        "--all", "-a", action="store_true", help="Select every profile, skip the menu"
    )
    parser.add_argument(
        "--dry-run", "-n", action="store_true", help="Show the plan without changing anything"
    )
    parser.add_argument(
        "--yes", "-y", action="store_true", help="Do not ask for confirmation"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="filament-profiles",
        description="Install, remove and audit third-party filament profiles for Bambu Studio",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  filament-profiles scan --orphans
  filament-profiles install --printer H2D --vendor SUNLU --all
  filament-profiles uninstall -p H2D -m SUNLU --profile "SUNLU PLA @BBL H2D"
  filament-profiles update-registry
  filament-profiles validate
  filament-profiles list

Environment variables:
  FILAMENT_PROFILES_APP_DIR    Bambu Studio data directory
  FILAMENT_PROFILES_REGISTRY   Registry file (instead of "registry.json")
  FILAMENT_PROFILES_ROOT       Profile tree (instead of "profiles")
        """,
    )

    parser.add_argument(
        "--verbose", "-V", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--quiet", "-q", action="store_true",
        help="Suppress non-error output (logging only)",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        dest="command",
        required=True,
        metavar="<command>",
    )

    # --- scan ---
    scan_parser = subparsers.add_parser(
        "scan",
        help="Show which registry profiles are installed",
    )
    scan_parser.add_argument("--printer", "-p", default=None, help="Only this printer")
    scan_parser.add_argument("--vendor", "-m", default=None, help="Only this vendor")
    scan_parser.add_argument(
        "--orphans", action="store_true",
        help="Also report entries with missing files and files without entries",
    )
    scan_parser.add_argument(
        "--details", action="store_true",
        help="Read each installed file's provenance metadata",
    )
    _add_location_args(scan_parser)
    scan_parser.set_defaults(func=run_scan)

    # --- install ---
    install_parser = subparsers.add_parser(
        "install",
        help="Copy profiles into Bambu Studio and register them",
    )
    _add_selection_args(install_parser)
    install_parser.add_argument(
        "--force", "-f", action="store_true",
        help="Overwrite profile files that already exist",
    )
    _add_location_args(install_parser)
    install_parser.set_defaults(func=run_install)

    # --- uninstall ---
    uninstall_parser = subparsers.add_parser(
        "uninstall",
        help="Remove installed profiles and their manifest entries",
    )
    _add_selection_args(uninstall_parser)
    _add_location_args(uninstall_parser)
    uninstall_parser.set_defaults(func=run_uninstall)

    # --- update-registry ---
    update_parser = subparsers.add_parser(
        "update-registry",
        help="Rebuild registry entries from the profile tree",
    )
    update_parser.add_argument(
        "--dry-run", "-n", action="store_true", help="Report changes without writing"
    )
    _add_location_args(update_parser, app_dir=False)
    update_parser.set_defaults(func=run_update_registry)

    # --- validate ---
    validate_parser = subparsers.add_parser(
        "validate",
        help="Check profile files and entries against the registry",
    )
    _add_location_args(validate_parser, app_dir=False)
    validate_parser.set_defaults(func=run_validate)

    # --- list ---
    list_parser = subparsers.add_parser(
        "list",
        help="List printers and vendors declared in the registry",
    )
    list_parser.add_argument("--printer", "-p", default=None, help="Only this printer")
    _add_location_args(list_parser, app_dir=False)
    list_parser.set_defaults(func=run_list)

    return parser


# --- Configuration ---


def _resolve(value: str | None, env_var: str, default: str) -> Path:
    path = Path(value or os.environ.get(env_var, default))
    return path if path.is_absolute() else project_root / path


def _registry_path(args: argparse.Namespace) -> Path:
    return _resolve(args.registry, "FILAMENT_PROFILES_REGISTRY", "registry.json")


def _profiles_root(args: argparse.Namespace) -> Path:
    return _resolve(args.profiles, "FILAMENT_PROFILES_ROOT", "profiles")


def _app_paths(args: argparse.Namespace) -> AppPaths:
    value = getattr(args, "app_dir", None) or os.environ.get("FILAMENT_PROFILES_APP_DIR")
    return AppPaths(app_dir=Path(value) if value else default_app_dir())


def _make_reporter(use_json: bool):
    """Create the appropriate progress reporter."""
    from filament_profiles.progress import RichProgressReporter, NullProgressReporter
    return NullProgressReporter() if use_json else RichProgressReporter()


def _make_manager(args: argparse.Namespace) -> ProfileManager:
    registry = ProfileRegistry(_registry_path(args))
    return ProfileManager(
        registry.load(),
        _app_paths(args),
        _profiles_root(args),
        reporter=_make_reporter(getattr(args, "json", False)),
    )


# --- Interactive helpers ---


def _choose(label: str, options: list[str]) -> str:
    """Ask the user to pick exactly one option from a numbered list."""
    from rich.prompt import Prompt

    if not options:
        raise RegistryLookupError(f"No {label}s in registry")
    if len(options) == 1:
        return options[0]

    print(f"\nAvailable {label}s:")
    for i, option in enumerate(options, 1):
        print(f"  {i:>3}. {option}")
    answer = Prompt.ask(f"Select a {label}")
    result = parse_selection(answer, len(options))
    if len(result.indices) != 1:
        raise SelectionError(f"Expected exactly one {label}")
    return options[result.indices[0]]


def _resolve_target(manager: ProfileManager, args: argparse.Namespace) -> tuple[str, str]:
    printer = args.printer or _choose("printer", manager.document.printers())
    vendor = args.vendor or _choose(
        "vendor", [v for v, _ in ProfileRegistry.entries_for_printer(manager.document, printer)]
    )
    return printer, vendor


def _select_names(groups: list[tuple[str, list[str]]], args: argparse.Namespace) -> list[str]:
    """Resolve the profile selection from --profile/--all or the numbered menu."""
    from rich.prompt import Prompt

    names = menu_order(groups)
    if args.profile:
        return list(args.profile)
    if args.all:
        return names

    number = 1
    for material, group in groups:
        print(f"\n  {material}:")
        for name in group:
            print(f"    {number:>3}. {name}")
            number += 1
    answer = Prompt.ask("\nSelect profiles (numbers separated by commas/spaces, or 'all')")
    result = parse_selection(answer, len(names))
    if not result.indices:
        raise SelectionError("No valid profiles selected")
    return result.pick(names)


def _confirm(args: argparse.Namespace, question: str) -> bool:
    from rich.prompt import Confirm

    if args.yes or args.dry_run:
        return True
    return Confirm.ask(question, default=False)


# --- Commands ---


def run_scan(args: argparse.Namespace) -> int:
    """Execute the scan command."""
    manager = _make_manager(args)
    report = manager.scan(
        printer=args.printer,
        vendor=args.vendor,
        check_orphans=args.orphans,
        details=args.details,
    )

    if getattr(args, "json", False):
        print(json.dumps(report.model_dump(mode="json"), indent=2))
        return 0

    for warning in report.warnings:
        logger.warning("%s", warning)

    groups = report.grouped()
    if not groups:
        print("No profiles from this repository are installed.")
    for (printer, vendor), records in groups.items():
        print(f"\n{printer} / {vendor} ({len(records)} installed):")
        for r in records:
            mark = "ok" if r.exists else "MISSING FILE"
            line = f"  [{mark}] {r.profile_name}"
            if r.metadata and r.metadata.version:
                line += f" (v{r.metadata.version})"
            print(line)

    if report.pattern_matches:
        print(f"\nUnregistered profiles matching vendor patterns: {len(report.pattern_matches)}")
        for m in report.pattern_matches[:20]:
            print(f"  ? {m.name} ({m.printer}/{m.vendor})")
        if len(report.pattern_matches) > 20:
            print(f"  ... and {len(report.pattern_matches) - 20} more")

    if report.orphans_checked:
        print(f"\nOrphaned entries (listed, file missing): {len(report.orphaned_entries)}")
        for r in report.orphaned_entries:
            print(f"  - {r.profile_name} -> {r.resolved_file_path}")
        print(f"Orphaned files (present, not listed): {len(report.orphaned_files)}")
        for f in report.orphaned_files:
            print(f"  - {f.path}")

    total = len(report.installed)
    print(f"\nTotal installed: {total}")
    return 0


def run_install(args: argparse.Namespace) -> int:
    """Execute the install command."""
    manager = _make_manager(args)
    manager.load_manifest()
    printer, vendor = _resolve_target(manager, args)
    names = _select_names(manager.menu(printer, vendor), args)

    action = "Would install" if args.dry_run else "Installing"
    if not getattr(args, "json", False):
        print(f"\n{action} {len(names)} profile(s) for {printer}/{vendor}")
    if not _confirm(args, "Proceed?"):
        print("Aborted.")
        return 0

    report = manager.install(
        printer, vendor, names, overwrite=args.force, dry_run=args.dry_run
    )

    if getattr(args, "json", False):
        print(json.dumps(report.model_dump(mode="json"), indent=2))
        return 0

    prefix = "Would copy" if report.dry_run else "Copied"
    print(f"\n{prefix}:     {len(report.copied)}")
    print(f"Kept existing:  {len(report.skipped_files)}")
    print(f"Registered:     {len(report.added)}")
    print(f"Already listed: {len(report.skipped_entries)}")
    if report.backup_path:
        print(f"Backup:         {report.backup_path}")
    if report.manifest_written:
        print("Restart Bambu Studio to load the new profiles.")
    return 0


def run_uninstall(args: argparse.Namespace) -> int:
    """Execute the uninstall command."""
    manager = _make_manager(args)
    manager.load_manifest()
    printer, vendor = _resolve_target(manager, args)

    records = manager.installed_for(printer, vendor)
    if not records:
        if getattr(args, "json", False):
            print(json.dumps({"printer": printer, "vendor": vendor, "removed_entries": []}, indent=2))
        else:
            print(f"Nothing installed for {printer}/{vendor}.")
        return 0

    installed_names = list(dict.fromkeys(r.profile_name for r in records))
    names = _select_names([("Installed", installed_names)], args)

    action = "Would remove" if args.dry_run else "Removing"
    if not getattr(args, "json", False):
        print(f"\n{action} {len(names)} profile(s) for {printer}/{vendor}")
    if not _confirm(args, "Proceed?"):
        print("Aborted.")
        return 0

    report = manager.uninstall(printer, vendor, names, dry_run=args.dry_run)

    if getattr(args, "json", False):
        print(json.dumps(report.model_dump(mode="json"), indent=2))
        return 0

    prefix = "Would remove" if report.dry_run else "Removed"
    print(f"\n{prefix} entries: {len(report.removed_entries)}")
    print(f"Files deleted:   {len(report.deleted_files)}")
    print(f"Files missing:   {len(report.missing_files)}")
    if report.backup_path:
        print(f"Backup:          {report.backup_path}")
    return 0


def run_update_registry(args: argparse.Namespace) -> int:
    """Execute the update-registry command."""
    registry = ProfileRegistry(_registry_path(args))
    profiles_root = _profiles_root(args)
    if not profiles_root.is_dir():
        logger.error("Profiles directory '%s' does not exist", profiles_root)
        return 1

    document, report = registry.regenerate_from_disk(profiles_root, registry.load_or_empty())
    if not args.dry_run:
        registry.save(document)

    if getattr(args, "json", False):
        print(json.dumps(report.model_dump(mode="json"), indent=2))
    else:
        print(f"Registry {'preview' if args.dry_run else 'updated'}: {registry.path}")
        print(f"  Created: {len(report.created)}")
        print(f"  Updated: {len(report.updated)}")
        print(f"  Skipped: {len(report.skipped)}")
        for key in report.skipped:
            print(f"    - {key} (no entries file)")
        for key, err in report.errors.items():
            print(f"  Error in {key}: {err}")
    return 1 if report.errors else 0


def run_validate(args: argparse.Namespace) -> int:
    """Execute the validate command."""
    profiles_root = _profiles_root(args)
    if not profiles_root.is_dir():
        logger.error("Profiles directory '%s' does not exist", profiles_root)
        return 1

    document: RegistryDocument | None
    try:
        document = ProfileRegistry(_registry_path(args)).load()
    except RegistryNotFoundError:
        logger.warning("No registry found, checking files only")
        document = None

    report = validate_profiles(profiles_root, document)

    if getattr(args, "json", False):
        print(json.dumps({**report.summary(), "details": report.model_dump(mode="json")}, indent=2))
    else:
        for path, messages in report.errors.items():
            for message in messages:
                print(f"  ERROR   {path}: {message}")
        for path, messages in report.warnings.items():
            for message in messages:
                print(f"  WARNING {path}: {message}")
        summary = report.summary()
        print(
            f"\nChecked {summary['files_checked']} files: "
            f"{summary['errors']} error(s), {summary['warnings']} warning(s)"
        )
    return 0 if report.ok else 2


def run_list(args: argparse.Namespace) -> int:
    """Execute the list command."""
    document = ProfileRegistry(_registry_path(args)).load()
    if args.printer:
        rows = [(args.printer, v, e) for v, e in ProfileRegistry.entries_for_printer(document, args.printer)]
    else:
        rows = ProfileRegistry.all_entries(document)

    if getattr(args, "json", False):
        print(json.dumps([
            {
                "printer": printer,
                "vendor": vendor,
                "count": entry.count,
                "materials": entry.materials or [],
                "description": entry.description,
            }
            for printer, vendor, entry in rows
        ], indent=2))
    elif not rows:
        print("Registry is empty.")
    else:
        current = None
        for printer, vendor, entry in rows:
            if printer != current:
                print(f"{printer}:")
                current = printer
            materials = f" [{', '.join(entry.materials)}]" if entry.materials else ""
            print(f"  {vendor}: {entry.count} profiles{materials}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    # Configure logging
    if getattr(args, "verbose", False):
        log_level = logging.DEBUG
    elif getattr(args, "quiet", False):
        log_level = logging.ERROR
    else:
        log_level = logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    if hasattr(args, "func"):
        try:
            return args.func(args)
        except (
            PrerequisiteError,
            RegistryNotFoundError,
            RegistryFormatError,
            RegistryLookupError,
            SelectionError,
        ) as e:
            logger.error("%s", e)
            return 1
        except KeyboardInterrupt:
            logger.error("Interrupted")
            return 1
        except Exception as e:
            logger.error("%s", e)
            if getattr(args, "verbose", False):
                logger.debug("Traceback:", exc_info=True)
            return 1
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
