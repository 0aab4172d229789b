"""Bundle encoding and decoding.

A bundle travels as one JSON document.  ``encode_bundle`` writes the
current shape::

    {"manifest": {...}, "files": {"customers": [...], ...}, "exportedAt": "..."}

``decode_bundle`` detects the producer's shape and normalizes it into a
``Bundle``; nothing downstream looks at the wire shape again.  Accepted:

- ``{"manifest": ..., "files": {...}}``: current shape.
- ``{"manifest": ..., "backup": {...}}``: browser export shape.
- ``{"manifest.json": ..., "<table>.json": [...]}``: legacy flat shape.
- ``{"files": {"manifest.json": ..., ...}, ...}``: legacy flat shape nested
  in an export function response.

Usage:
    from biz_backup.backup.codec import read_bundle, write_bundle

    path = write_bundle(bundle, output_dir="backups")
    same = read_bundle(path)
"""

import json
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any, Literal

from biz_backup.backup.errors import BundleFormatError
from biz_backup.backup.models import Bundle

MISSING_MANIFEST = "invalid backup format: missing manifest"
LEGACY_MANIFEST_KEY = "manifest.json"
LEGACY_SUFFIX = ".json"

Shape = Literal["current", "browser", "legacy", "nested_legacy"]


def detect_shape(content: Mapping[str, Any]) -> Shape:
    """Name the wire shape of a parsed document.

    Raises:
        BundleFormatError: If no manifest can be found.
    """
    if content.get("manifest") is not None and "backup" in content:
        return "browser"
    if content.get(LEGACY_MANIFEST_KEY) is not None:
        return "legacy"
    files = content.get("files")
    if isinstance(files, Mapping):
        if files.get(LEGACY_MANIFEST_KEY) is not None:
            return "nested_legacy"
        if content.get("manifest") is not None:
            return "current"
    raise BundleFormatError(MISSING_MANIFEST)


def _require_manifest(value: Any) -> dict[str, Any]:
    if not isinstance(value, Mapping):
        raise BundleFormatError(MISSING_MANIFEST)
    return dict(value)


def _from_legacy(flat: Mapping[str, Any]) -> Bundle:
    files: dict[str, Any] = {}
    for key, value in flat.items():
        if key == LEGACY_MANIFEST_KEY or not key.endswith(LEGACY_SUFFIX):
            continue
        files[key[: -len(LEGACY_SUFFIX)]] = value
    return Bundle(manifest=_require_manifest(flat[LEGACY_MANIFEST_KEY]), files=files)


def _from_two_part(content: Mapping[str, Any], data_key: str) -> Bundle:
    data = content[data_key]
    if not isinstance(data, Mapping):
        raise BundleFormatError(
            f"invalid backup format: '{data_key}' is not an object"
        )
    exported_at = content.get("exportedAt")
    return Bundle(
        manifest=_require_manifest(content["manifest"]),
        files=dict(data),
        exported_at=str(exported_at) if exported_at is not None else None,
    )


def decode_bundle(raw: str | bytes | Mapping[str, Any]) -> Bundle:
    """Parse an uploaded document into a ``Bundle``.

    Only the presence of a manifest is checked here; its contents are
    validated by the importer.

    Raises:
        BundleFormatError: Invalid JSON, or no manifest in any known shape.
    """
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            content = json.loads(raw)
        except json.JSONDecodeError as e:
            raise BundleFormatError(f"invalid JSON document: {e}") from e
    else:
        content = raw

    if not isinstance(content, Mapping):
        raise BundleFormatError(MISSING_MANIFEST)

    shape = detect_shape(content)
    if shape == "legacy":
        return _from_legacy(content)
    if shape == "nested_legacy":
        return _from_legacy(content["files"])
    if shape == "browser":
        return _from_two_part(content, "backup")
    return _from_two_part(content, "files")


def encode_bundle(bundle: Bundle, legacy: bool = False, indent: int | None = 2) -> str:
    """Serialize a bundle to JSON text.

    Args:
        bundle: Bundle to encode.
        legacy: Write the flat ``"<table>.json"`` shape instead of the
            current one.
        indent: JSON indentation (``None`` for compact output).
    """
    if legacy:
        document: dict[str, Any] = {LEGACY_MANIFEST_KEY: bundle.manifest}
        for table, rows in bundle.files.items():
            document[f"{table}{LEGACY_SUFFIX}"] = rows
    else:
        document = {"manifest": bundle.manifest, "files": bundle.files}
        if bundle.exported_at is not None:
            document["exportedAt"] = bundle.exported_at

    return json.dumps(document, indent=indent, default=str)


def default_filename(now: datetime | None = None) -> str:
    """``backup-YYYY-MM-DD_HH-MM-SS.json`` for the given (or current) time."""
    now = now or datetime.now()
    return f"backup-{now.strftime('%Y-%m-%d_%H-%M-%S')}.json"


def write_bundle(
    bundle: Bundle,
    output_path: str | None = None,
    output_dir: str = "backups",
    legacy: bool = False,
) -> str:
    """Write a bundle to disk.

    Args:
        bundle: Bundle to write.
        output_path: Target file.  When ``None``, a timestamped file is
            created under ``output_dir`` (relative to the working directory).
        output_dir: Directory for generated file names.
        legacy: Write the legacy flat shape.

    Returns:
        Path of the written file.
    """
    if output_path is None:
        output_path = str(Path.cwd() / output_dir / default_filename())

    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(encode_bundle(bundle, legacy=legacy))
    return output_path


def read_bundle(path: str | Path) -> Bundle:
    """Read and decode a bundle file.

    Raises:
        FileNotFoundError: If the file does not exist.
        BundleFormatError: If the file is not a bundle.
    """
    return decode_bundle(Path(path).read_bytes())
