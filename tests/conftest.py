import json
from pathlib import Path

import pytest

from filament_profiles import AppPaths, RegistryDocument, VendorEntry

PRINTER = "H2D"
VENDOR = "SUNLU"
PLA = "SUNLU PLA @BBL H2D"
PETG = "SUNLU PETG @BBL H2D"
BUNDLED = "Bambu PLA Basic @BBL H2D"


def write_json(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


def read_json(path: Path):
    return json.loads(path.read_text(encoding="utf-8"))


def sub_path(vendor: str, name: str) -> str:
    return f"filament/{vendor}/{name}.json"


def make_vendor_dir(
    profiles_root: Path,
    printer: str,
    vendor: str,
    names: list[str],
    with_entries: bool = True,
) -> Path:
    vendor_dir = profiles_root / printer / vendor
    vendor_dir.mkdir(parents=True, exist_ok=True)
    for name in names:
        material = name.split()[1]
        write_json(vendor_dir / f"{name}.json", {
            "type": "filament",
            "name": name,
            "inherits": f"Generic {material} @BBL {printer}",
            "setting_id": f"{vendor}_{material}_{printer}",
            "from": "system",
        })
    if with_entries:
        write_json(vendor_dir / "bbl_json_entries.json", {
            "entries": [{"name": n, "sub_path": sub_path(vendor, n)} for n in names],
        })
    return vendor_dir


def vendor_entry(printer: str, vendor: str, names: list[str], **overrides) -> VendorEntry:
    fields = dict(
        description=f"{vendor} filament profiles for Bambu Lab {printer}",
        count=len(names),
        entries_file=f"profiles/{printer}/{vendor}/bbl_json_entries.json",
        materials=["PLA", "PETG"],
        name_pattern=f"*@BBL {printer}*",
        setting_id_pattern=f"*_{printer}*",
        destination_path=f"filament/{vendor}",
        profiles=list(names),
    )
    fields.update(overrides)
    return VendorEntry(**fields)


def set_filament_list(paths: AppPaths, entries: list[dict]) -> None:
    data = read_json(paths.manifest_path)
    data["filament_list"] = entries
    write_json(paths.manifest_path, data)


def install_file(paths: AppPaths, rel: str, content: dict | None = None) -> Path:
    return write_json(paths.profiles_dir / rel, content or {"name": Path(rel).stem})


@pytest.fixture
def profiles_root(tmp_path) -> Path:
    root = tmp_path / "repo" / "profiles"
    make_vendor_dir(root, PRINTER, VENDOR, [PLA, PETG])
    return root


@pytest.fixture
def document() -> RegistryDocument:
    return RegistryDocument({PRINTER: {VENDOR: vendor_entry(PRINTER, VENDOR, [PLA, PETG])}})


@pytest.fixture
def app_paths(tmp_path) -> AppPaths:
    """A Bambu Studio data dir with one bundled profile installed."""
    paths = AppPaths(app_dir=tmp_path / "BambuStudio")
    bundled_rel = f"filament/{BUNDLED}.json"
    write_json(paths.manifest_path, {
        "name": "Bambu Lab",
        "version": "02.02.00.04",
        "force_update": "0",
        "machine_model_list": [{"name": "H2D", "sub_path": "machine/H2D.json"}],
        "filament_list": [{"name": BUNDLED, "sub_path": bundled_rel}],
    })
    install_file(paths, bundled_rel)
    return paths


def backups(paths: AppPaths) -> list[Path]:
    return sorted(paths.system_dir.glob("BBL.json.backup-*"))
