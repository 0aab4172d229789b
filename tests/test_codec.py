"""Tests for bundle wire-shape detection, decoding and file I/O."""

import json
from datetime import datetime
from pathlib import Path

import pytest

from biz_backup.backup.codec import (
    decode_bundle,
    default_filename,
    detect_shape,
    encode_bundle,
    read_bundle,
    write_bundle,
)
from biz_backup.backup.errors import BundleFormatError

MANIFEST = {
    "version": "1.0.0",
    "timestamp": "2026-01-15T09:30:00+00:00",
    "tables": ["customers", "sales"],
    "recordCounts": {"customers": 1, "sales": 0},
}
CUSTOMERS = [{"id": "c1", "name": "Rahim"}]


# ============================================================================
# Shape detection
# ============================================================================


class TestDetectShape:
    """detect_shape recognizes every producer's document."""

    def test_current(self) -> None:
        assert detect_shape({"manifest": MANIFEST, "files": {}}) == "current"

    def test_browser(self) -> None:
        doc = {"manifest": MANIFEST, "backup": {}, "exportedAt": "2026-01-15"}
        assert detect_shape(doc) == "browser"

    def test_legacy(self) -> None:
        assert detect_shape({"manifest.json": MANIFEST, "customers.json": []}) == "legacy"

    def test_nested_legacy(self) -> None:
        doc = {
            "success": True,
            "filename": "backup-2026-01-15_09-30-00.json",
            "files": {"manifest.json": MANIFEST, "customers.json": CUSTOMERS},
            "manifest": MANIFEST,
        }
        assert detect_shape(doc) == "nested_legacy"

    def test_no_manifest(self) -> None:
        with pytest.raises(BundleFormatError, match="missing manifest"):
            detect_shape({"customers": CUSTOMERS})

    def test_files_without_manifest(self) -> None:
        with pytest.raises(BundleFormatError, match="missing manifest"):
            detect_shape({"files": {"customers": CUSTOMERS}})


# ============================================================================
# Decoding
# ============================================================================


class TestDecodeBundle:
    """decode_bundle normalizes all shapes to the same Bundle."""

    def test_current_shape(self) -> None:
        doc = {
            "manifest": MANIFEST,
            "files": {"customers": CUSTOMERS, "sales": []},
            "exportedAt": "2026-01-15T09:30:00+00:00",
        }
        bundle = decode_bundle(json.dumps(doc))
        assert bundle.manifest == MANIFEST
        assert bundle.files == {"customers": CUSTOMERS, "sales": []}
        assert bundle.exported_at == "2026-01-15T09:30:00+00:00"

    def test_browser_shape(self) -> None:
        doc = {
            "backup": {"customers": CUSTOMERS, "sales": []},
            "manifest": MANIFEST,
            "exportedAt": "2026-01-15T09:30:00+00:00",
        }
        bundle = decode_bundle(doc)
        assert bundle.files == {"customers": CUSTOMERS, "sales": []}
        assert bundle.manifest == MANIFEST

    def test_legacy_shape_strips_suffix(self) -> None:
        doc = {
            "manifest.json": MANIFEST,
            "customers.json": CUSTOMERS,
            "sales.json": [],
        }
        bundle = decode_bundle(doc)
        assert bundle.files == {"customers": CUSTOMERS, "sales": []}
        assert bundle.manifest == MANIFEST
        assert bundle.exported_at is None

    def test_legacy_ignores_non_json_keys(self) -> None:
        doc = {"manifest.json": MANIFEST, "customers.json": CUSTOMERS, "README": "x"}
        assert list(decode_bundle(doc).files) == ["customers"]

    def test_export_function_response(self) -> None:
        doc = {
            "success": True,
            "filename": "backup-2026-01-15_09-30-00.json",
            "files": {"manifest.json": MANIFEST, "customers.json": CUSTOMERS},
            "manifest": MANIFEST,
        }
        bundle = decode_bundle(doc)
        assert bundle.files == {"customers": CUSTOMERS}

    def test_all_shapes_decode_equal(self) -> None:
        files = {"customers": CUSTOMERS, "sales": []}
        shapes = [
            {"manifest": MANIFEST, "files": files},
            {"manifest": MANIFEST, "backup": files},
            {"manifest.json": MANIFEST, "customers.json": CUSTOMERS, "sales.json": []},
        ]
        decoded = [decode_bundle(doc) for doc in shapes]
        assert all(b.files == files for b in decoded)
        assert all(b.manifest == MANIFEST for b in decoded)

    def test_bytes_input(self) -> None:
        raw = json.dumps({"manifest": MANIFEST, "files": {}}).encode()
        assert decode_bundle(raw).manifest == MANIFEST

    def test_invalid_json(self) -> None:
        with pytest.raises(BundleFormatError, match="invalid JSON document"):
            decode_bundle("{not json")

    def test_top_level_array(self) -> None:
        with pytest.raises(BundleFormatError, match="missing manifest"):
            decode_bundle("[1, 2, 3]")

    def test_manifest_not_object(self) -> None:
        with pytest.raises(BundleFormatError, match="missing manifest"):
            decode_bundle({"manifest": "1.0.0", "files": {}})

    def test_backup_not_object(self) -> None:
        with pytest.raises(BundleFormatError, match="'backup' is not an object"):
            decode_bundle({"manifest": MANIFEST, "backup": []})

    def test_manifest_contents_not_validated(self) -> None:
        bundle = decode_bundle({"manifest": {"version": "9.9.9"}, "files": {}})
        assert bundle.manifest == {"version": "9.9.9"}


# ============================================================================
# Encoding and files
# ============================================================================


class TestEncodeBundle:
    """encode_bundle writes the current or legacy shape."""

    def test_current_shape(self, bundle) -> None:
        doc = json.loads(encode_bundle(bundle))
        assert set(doc) == {"manifest", "files"}
        assert doc["files"]["customers"] == [{"id": "c1", "name": "Rahim"}]

    def test_exported_at_written(self, bundle) -> None:
        bundle.exported_at = "2026-01-15T09:30:00+00:00"
        doc = json.loads(encode_bundle(bundle))
        assert doc["exportedAt"] == "2026-01-15T09:30:00+00:00"

    def test_legacy_shape(self, bundle) -> None:
        doc = json.loads(encode_bundle(bundle, legacy=True))
        assert doc["manifest.json"] == bundle.manifest
        assert doc["customers.json"] == bundle.files["customers"]
        assert "manifest" not in doc

    def test_legacy_decodes_back(self, bundle) -> None:
        decoded = decode_bundle(encode_bundle(bundle, legacy=True))
        assert decoded.files == bundle.files

    def test_non_json_values_stringified(self) -> None:
        from biz_backup.backup.models import Bundle

        when = datetime(2026, 1, 15, 9, 30)
        doc = json.loads(
            encode_bundle(Bundle(manifest=MANIFEST, files={"sales": [{"at": when}]}))
        )
        assert doc["files"]["sales"][0]["at"] == str(when)


class TestBundleFiles:
    """write_bundle / read_bundle / default_filename."""

    def test_default_filename(self) -> None:
        name = default_filename(datetime(2026, 1, 5, 7, 8, 9))
        assert name == "backup-2026-01-05_07-08-09.json"

    def test_write_explicit_path(self, bundle, tmp_path) -> None:
        target = tmp_path / "nested" / "shop.json"
        path = write_bundle(bundle, output_path=str(target))
        assert path == str(target)
        assert target.exists()

    def test_write_default_path(self, bundle, monkeypatch, tmp_path) -> None:
        monkeypatch.chdir(tmp_path)
        path = write_bundle(bundle)
        assert Path(path).parent.resolve() == (tmp_path / "backups").resolve()
        assert Path(path).name.startswith("backup-")
        assert path.endswith(".json")

    def test_write_custom_output_dir(self, bundle, monkeypatch, tmp_path) -> None:
        monkeypatch.chdir(tmp_path)
        path = write_bundle(bundle, output_dir="archive")
        assert Path(path).parent.resolve() == (tmp_path / "archive").resolve()

    def test_read_back(self, bundle, tmp_path) -> None:
        path = write_bundle(bundle, output_path=str(tmp_path / "b.json"))
        decoded = read_bundle(path)
        assert decoded.files == bundle.files
        assert decoded.manifest == bundle.manifest

    def test_read_missing_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            read_bundle(tmp_path / "nope.json")
