from datetime import datetime

import pytest

from filament_profiles import AppManifest, AppPaths, ManifestEntry, ManifestFormatError, ManifestNotFoundError

from conftest import BUNDLED, PLA, read_json, set_filament_list, sub_path


def test_load_missing_manifest(tmp_path) -> None:
    paths = AppPaths(app_dir=tmp_path / "BambuStudio")
    with pytest.raises(ManifestNotFoundError):
        AppManifest.load(paths)


def test_load_invalid_manifest(app_paths) -> None:
    app_paths.manifest_path.write_text("{", encoding="utf-8")
    with pytest.raises(ManifestFormatError):
        AppManifest.load(app_paths)


def test_filament_list_must_be_a_list(app_paths) -> None:
    set_filament_list(app_paths, {"name": "oops"})
    with pytest.raises(ManifestFormatError):
        AppManifest.load(app_paths)


def test_resolve_and_exists(app_paths) -> None:
    manifest = AppManifest.load(app_paths)
    bundled = manifest.entries[0]
    assert manifest.resolve(bundled) == app_paths.profiles_dir / f"filament/{BUNDLED}.json"
    assert manifest.exists(bundled)

    missing = ManifestEntry(name=PLA, sub_path=sub_path("SUNLU", PLA))
    assert not manifest.exists(missing)


def test_malformed_items_are_ignored(app_paths) -> None:
    set_filament_list(app_paths, [{"name": BUNDLED, "sub_path": "a.json"}, {"name": "no path"}, "junk"])
    manifest = AppManifest.load(app_paths)
    assert [e.name for e in manifest.entries] == [BUNDLED]


def test_append_skips_duplicates(app_paths) -> None:
    manifest = AppManifest.load(app_paths)
    assert manifest.append(ManifestEntry(name=PLA, sub_path=sub_path("SUNLU", PLA)))
    assert not manifest.append(ManifestEntry(name=PLA, sub_path="elsewhere.json"))
    assert [e.name for e in manifest.entries] == [BUNDLED, PLA]


def test_save_preserves_other_fields_and_order(app_paths) -> None:
    set_filament_list(app_paths, [
        {"name": "A", "sub_path": "a.json", "extra": 1},
        {"name": "B", "sub_path": "b.json"},
        {"name": "C", "sub_path": "c.json"},
    ])
    before = read_json(app_paths.manifest_path)

    manifest = AppManifest.load(app_paths)
    assert manifest.remove_names(["B", "missing"]) == ["B"]
    manifest.append(ManifestEntry(name="D", sub_path="d.json"))
    manifest.save()

    after = read_json(app_paths.manifest_path)
    assert [e["name"] for e in after["filament_list"]] == ["A", "C", "D"]
    assert after["filament_list"][0] == {"name": "A", "sub_path": "a.json", "extra": 1}
    for key in before:
        if key != "filament_list":
            assert after[key] == before[key]
    assert list(after) == list(before)


def test_backup_never_overwrites(app_paths) -> None:
    manifest = AppManifest.load(app_paths)
    now = datetime(2026, 10, 16, 12, 30, 0)

    first = manifest.backup(now)
    second = manifest.backup(now)

    assert first.name == "BBL.json.backup-20261016-123000"
    assert second.name == "BBL.json.backup-20261016-123000-1"
    assert first.read_bytes() == app_paths.manifest_path.read_bytes()
