"""Tests for manifest building, validation and consistency checks."""

from datetime import datetime, timezone

import pytest

from biz_backup.backup.errors import (
    BundleFormatError,
    ManifestFormatError,
    UnsupportedVersionError,
)
from biz_backup.backup.manifest import build_manifest, check_consistency, validate_manifest
from biz_backup.backup.models import Manifest


def _manifest(**overrides) -> dict:
    raw = {
        "version": "1.0.0",
        "timestamp": "2026-01-15T09:30:00+00:00",
        "tables": ["customers", "sales"],
        "recordCounts": {"customers": 2, "sales": 1},
    }
    raw.update(overrides)
    return raw


class TestBuildManifest:
    """build_manifest derives tables and counts from the exported data."""

    def test_counts_match_arrays(self) -> None:
        manifest = build_manifest({"customers": [{"id": 1}, {"id": 2}], "sales": []})
        assert manifest.tables == ["customers", "sales"]
        assert manifest.record_counts == {"customers": 2, "sales": 0}

    def test_current_version(self) -> None:
        assert build_manifest({}).version == "1.0.0"

    def test_timestamp_is_utc_iso(self) -> None:
        manifest = build_manifest({})
        parsed = datetime.fromisoformat(manifest.timestamp)
        assert parsed.utcoffset().total_seconds() == 0

    def test_explicit_timestamp(self) -> None:
        ts = datetime(2026, 1, 15, 9, 30, tzinfo=timezone.utc)
        assert build_manifest({}, timestamp=ts).timestamp == "2026-01-15T09:30:00+00:00"

    def test_errors_omitted_when_empty(self) -> None:
        wire = build_manifest({"customers": []}, errors=[]).to_wire()
        assert "errors" not in wire

    def test_errors_kept(self) -> None:
        manifest = build_manifest({}, errors=["sales: timeout"])
        assert manifest.to_wire()["errors"] == ["sales: timeout"]

    def test_wire_uses_camel_case(self) -> None:
        wire = build_manifest({"customers": [{}]}).to_wire()
        assert wire["recordCounts"] == {"customers": 1}
        assert "record_counts" not in wire


class TestValidateManifest:
    """validate_manifest rejects malformed and unsupported manifests."""

    def test_valid(self) -> None:
        manifest = validate_manifest(_manifest())
        assert isinstance(manifest, Manifest)
        assert manifest.tables == ["customers", "sales"]
        assert manifest.record_counts == {"customers": 2, "sales": 1}

    @pytest.mark.parametrize("field", ["version", "timestamp", "tables"])
    def test_missing_required_field(self, field) -> None:
        raw = _manifest()
        del raw[field]
        with pytest.raises(ManifestFormatError, match="invalid manifest format"):
            validate_manifest(raw)

    def test_empty_version(self) -> None:
        with pytest.raises(ManifestFormatError):
            validate_manifest(_manifest(version=""))

    def test_tables_not_a_list(self) -> None:
        with pytest.raises(ManifestFormatError):
            validate_manifest(_manifest(tables="customers"))

    def test_not_a_mapping(self) -> None:
        with pytest.raises(ManifestFormatError):
            validate_manifest(["1.0.0"])

    def test_format_error_is_bundle_format_error(self) -> None:
        with pytest.raises(BundleFormatError):
            validate_manifest({})

    def test_unsupported_version(self) -> None:
        with pytest.raises(UnsupportedVersionError) as exc_info:
            validate_manifest(_manifest(version="9.9.9"))
        assert exc_info.value.version == "9.9.9"
        assert exc_info.value.supported == ["1.0.0"]
        assert "unsupported backup version: 9.9.9" in str(exc_info.value)
        assert "1.0.0" in str(exc_info.value)

    def test_custom_supported_versions(self) -> None:
        manifest = validate_manifest(
            _manifest(version="2.0.0"), supported_versions=["1.0.0", "2.0.0"]
        )
        assert manifest.version == "2.0.0"

    def test_missing_record_counts_allowed(self) -> None:
        raw = _manifest()
        del raw["recordCounts"]
        assert validate_manifest(raw).record_counts == {}

    def test_errors_carried(self) -> None:
        manifest = validate_manifest(_manifest(errors=["products: timeout"]))
        assert manifest.errors == ["products: timeout"]


class TestCheckConsistency:
    """check_consistency reports mismatches as warnings."""

    def test_consistent(self) -> None:
        manifest = validate_manifest(_manifest())
        files = {"customers": [{"id": 1}, {"id": 2}], "sales": [{"id": 3}]}
        assert check_consistency(manifest, files) == []

    def test_count_mismatch(self) -> None:
        manifest = validate_manifest(_manifest())
        files = {"customers": [{"id": 1}], "sales": [{"id": 3}]}
        warnings = check_consistency(manifest, files)
        assert warnings == ["customers: manifest records 2 rows, document has 1"]

    def test_missing_document(self) -> None:
        manifest = validate_manifest(_manifest())
        warnings = check_consistency(manifest, {"customers": [{}, {}]})
        assert any(w.startswith("sales: listed in manifest") for w in warnings)

    def test_unlisted_document(self) -> None:
        manifest = validate_manifest(_manifest())
        files = {"customers": [{}, {}], "sales": [{}], "coupons": []}
        warnings = check_consistency(manifest, files)
        assert warnings == ["coupons: data document not listed in manifest (ignored)"]

    def test_missing_count(self) -> None:
        manifest = validate_manifest(_manifest(recordCounts={"customers": 2}))
        warnings = check_consistency(manifest, {"customers": [{}, {}], "sales": [{}]})
        assert warnings == ["sales: no record count in manifest"]
