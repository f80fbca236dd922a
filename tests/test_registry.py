import logging

import pytest

from filament_profiles import (
    ProfileRegistry,
    RegistryDocument,
    RegistryFormatError,
    RegistryNotFoundError,
)

from conftest import PETG, PLA, PRINTER, VENDOR, make_vendor_dir, read_json, vendor_entry, write_json


def test_load_missing_registry(tmp_path) -> None:
    registry = ProfileRegistry(tmp_path / "registry.json")
    with pytest.raises(RegistryNotFoundError):
        registry.load()
    assert registry.load_or_empty().root == {}


def test_load_malformed_registry(tmp_path) -> None:
    path = tmp_path / "registry.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(RegistryFormatError):
        ProfileRegistry(path).load()


def test_save_and_load_keeps_order_and_extra_fields(tmp_path, document) -> None:
    document.root["X1C"] = {"Polymaker": vendor_entry("X1C", "Polymaker", ["Polymaker PLA @BBL X1C"])}
    document.root[PRINTER][VENDOR] = vendor_entry(PRINTER, VENDOR, [PLA], notes="hand edited")

    registry = ProfileRegistry(tmp_path / "registry.json")
    registry.save(document)
    loaded = registry.load()

    assert loaded.printers() == [PRINTER, "X1C"]
    assert read_json(registry.path)[PRINTER][VENDOR]["notes"] == "hand edited"
    assert registry.dumps(loaded) == registry.path.read_text(encoding="utf-8")


def test_save_keeps_null_extra_fields_and_omits_unset_materials(tmp_path, document) -> None:
    document.root[PRINTER][VENDOR] = vendor_entry(PRINTER, VENDOR, [PLA], materials=None, retired=None)

    registry = ProfileRegistry(tmp_path / "registry.json")
    registry.save(document)
    saved = read_json(registry.path)[PRINTER][VENDOR]

    assert "retired" in saved and saved["retired"] is None
    assert "materials" not in saved


def test_all_entries_flattens_in_insertion_order(document) -> None:
    document.root["A1"] = {"eSUN": vendor_entry("A1", "eSUN", [])}
    flat = ProfileRegistry.all_entries(document)
    assert [(p, v) for p, v, _ in flat] == [(PRINTER, VENDOR), ("A1", "eSUN")]


def test_entries_for_unknown_printer_warns(document, caplog) -> None:
    with caplog.at_level(logging.WARNING):
        assert ProfileRegistry.entries_for_printer(document, "P1S") == []
    assert "P1S" in caplog.text


def test_entries_for_vendor(document) -> None:
    assert ProfileRegistry.entries_for_vendor(document, PRINTER, VENDOR).profiles == [PLA, PETG]
    assert ProfileRegistry.entries_for_vendor(document, PRINTER, "eSUN") is None


def test_regenerate_creates_entries(tmp_path, profiles_root) -> None:
    registry = ProfileRegistry(tmp_path / "registry.json")
    doc, report = registry.regenerate_from_disk(profiles_root)

    entry = doc.root[PRINTER][VENDOR]
    assert report.created == [f"{PRINTER}/{VENDOR}"]
    assert entry.profiles == [PLA, PETG]
    assert entry.count == 2
    assert entry.name_pattern == "*@BBL H2D*"
    assert entry.setting_id_pattern == "*_H2D*"
    assert entry.destination_path == "filament/SUNLU"
    assert entry.entries_file == "profiles/H2D/SUNLU/bbl_json_entries.json"
    assert entry.materials == ["PLA", "PETG"]


def test_regenerate_updates_only_count_and_profiles(tmp_path, profiles_root) -> None:
    existing = vendor_entry(
        PRINTER, VENDOR, [PLA],
        description="Curated",
        name_pattern="SUNLU*",
        materials=["PLA"],
        count=7,
    )
    document = RegistryDocument({PRINTER: {VENDOR: existing}})

    doc, report = ProfileRegistry(tmp_path / "r.json").regenerate_from_disk(profiles_root, document)

    entry = doc.root[PRINTER][VENDOR]
    assert report.updated == [f"{PRINTER}/{VENDOR}"]
    assert entry.profiles == [PLA, PETG]
    assert entry.count == 2
    assert entry.description == "Curated"
    assert entry.name_pattern == "SUNLU*"
    assert entry.materials == ["PLA"]
    # input document is not mutated
    assert document.root[PRINTER][VENDOR].count == 7


def test_regenerate_keeps_entries_for_vendors_without_manifest(tmp_path, profiles_root) -> None:
    make_vendor_dir(profiles_root, PRINTER, "eSUN", ["eSUN PLA @BBL H2D"], with_entries=False)
    document = RegistryDocument({PRINTER: {"eSUN": vendor_entry(PRINTER, "eSUN", ["eSUN PLA @BBL H2D"])}})

    doc, report = ProfileRegistry(tmp_path / "r.json").regenerate_from_disk(profiles_root, document)

    assert report.skipped == [f"{PRINTER}/eSUN"]
    assert doc.root[PRINTER]["eSUN"].profiles == ["eSUN PLA @BBL H2D"]
    assert VENDOR in doc.root[PRINTER]


def test_regenerate_ignores_excluded_dirs(tmp_path, profiles_root) -> None:
    make_vendor_dir(profiles_root, "tests", VENDOR, [PLA])
    make_vendor_dir(profiles_root, ".cache", VENDOR, [PLA])

    doc, _ = ProfileRegistry(tmp_path / "r.json").regenerate_from_disk(profiles_root)
    assert doc.printers() == [PRINTER]


def test_regenerate_records_malformed_entries_file(tmp_path, profiles_root) -> None:
    bad = make_vendor_dir(profiles_root, PRINTER, "eSUN", ["eSUN PLA @BBL H2D"])
    (bad / "bbl_json_entries.json").write_text("[", encoding="utf-8")

    doc, report = ProfileRegistry(tmp_path / "r.json").regenerate_from_disk(profiles_root)

    assert f"{PRINTER}/eSUN" in report.errors
    assert list(doc.root[PRINTER]) == [VENDOR]


def test_regenerate_is_idempotent(tmp_path, profiles_root) -> None:
    make_vendor_dir(profiles_root, "X1C", "Polymaker", ["Polymaker PLA @BBL X1C"])
    registry = ProfileRegistry(tmp_path / "registry.json")

    doc, _ = registry.regenerate_from_disk(profiles_root, registry.load_or_empty())
    registry.save(doc)
    first = registry.path.read_bytes()

    doc, _ = registry.regenerate_from_disk(profiles_root, registry.load())
    registry.save(doc)
    assert registry.path.read_bytes() == first


def test_count_matches_profiles_after_regenerate(tmp_path, profiles_root) -> None:
    write_json(profiles_root / PRINTER / VENDOR / "bbl_json_entries.json", {
        "entries": [{"name": PLA, "sub_path": f"filament/SUNLU/{PLA}.json"}],
    })
    document = RegistryDocument({PRINTER: {VENDOR: vendor_entry(PRINTER, VENDOR, [PLA, PETG])}})

    doc, _ = ProfileRegistry(tmp_path / "r.json").regenerate_from_disk(profiles_root, document)

    for _, _, entry in doc.iter_entries():
        assert entry.count == len(entry.profiles)
