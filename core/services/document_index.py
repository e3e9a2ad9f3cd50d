"""
Lookup of stored artifacts by sequence number.

DocumentStore resolves every "which files belong to this sequence" question
through a DocumentIndex. DirectoryScanIndex answers from directory listings,
which is adequate for small deployments; a persistent index can replace it
without touching the store.
"""

import re
from pathlib import Path
from typing import Protocol

INVOICE_PREFIX = "FACTURA_"
SEND_RECORD_PREFIX = "ENVIO_"

# FACTURA_<seq>_<timestamp>.json | FACTURA_<seq>.xml | ENVIO_<seq>_<timestamp>.json
_ARTIFACT_RE = re.compile(
    r"^(?P<prefix>FACTURA|ENVIO)_(?P<sequence>[0-9]{20})(?:_(?P<stamp>[0-9A-Za-z_-]+))?\.(?P<ext>json|xml)$"
)


def json_filename(sequence: str, timestamp: str) -> str:
    return f"{INVOICE_PREFIX}{sequence}_{timestamp}.json"


def xml_filename(sequence: str) -> str:
    return f"{INVOICE_PREFIX}{sequence}.xml"


def send_record_filename(sequence: str, timestamp: str) -> str:
    return f"{SEND_RECORD_PREFIX}{sequence}_{timestamp}.json"


def parse_artifact_name(filename: str) -> tuple[str, str, str] | None:
    """
    Parse an artifact filename.

    Returns:
        (prefix, sequence, extension), or None for unrelated files.
        Invoice JSON must carry a timestamp and invoice XML must not.
    """
    match = _ARTIFACT_RE.match(filename)
    if match is None:
        return None

    prefix, ext, stamp = match["prefix"], match["ext"], match["stamp"]
    if prefix == "FACTURA" and (ext == "json") != (stamp is not None):
        return None
    if prefix == "ENVIO" and (ext != "json" or stamp is None):
        return None

    return prefix, match["sequence"], ext


def extract_sequence(filename: str) -> str | None:
    """Sequence number of an invoice artifact (FACTURA_*), else None."""
    parsed = parse_artifact_name(filename)
    if parsed is None or parsed[0] != "FACTURA":
        return None
    return parsed[1]


class DocumentIndex(Protocol):
    """Maps sequence numbers to artifact paths within one directory."""

    def invoice_files(self, directory: Path, sequence: str) -> list[Path]:
        """FACTURA_ artifacts (JSON and XML) for a sequence."""
        ...

    def all_files(self, directory: Path, sequence: str) -> list[Path]:
        """Every artifact for a sequence, send records included."""
        ...

    def invoice_json_files(self, directory: Path) -> list[Path]:
        """All invoice JSON artifacts in a directory."""
        ...

    def record(self, path: Path) -> None:
        """Notify the index that an artifact was written."""
        ...

    def forget(self, path: Path) -> None:
        """Notify the index that an artifact was removed."""
        ...


class DirectoryScanIndex:
    """DocumentIndex backed by directory listings. Stateless."""

    def _scan(self, directory: Path) -> list[tuple[Path, tuple[str, str, str]]]:
        if not directory.is_dir():
            return []

        entries = []
        for path in sorted(directory.iterdir()):
            if not path.is_file():
                continue
            parsed = parse_artifact_name(path.name)
            if parsed is not None:
                entries.append((path, parsed))
        return entries

    def invoice_files(self, directory: Path, sequence: str) -> list[Path]:
        return [
            path for path, (prefix, seq, _) in self._scan(directory)
            if prefix == "FACTURA" and seq == sequence
        ]

    def all_files(self, directory: Path, sequence: str) -> list[Path]:
        return [path for path, (_, seq, _) in self._scan(directory) if seq == sequence]

    def invoice_json_files(self, directory: Path) -> list[Path]:
        return [
            path for path, (prefix, _, ext) in self._scan(directory)
            if prefix == "FACTURA" and ext == "json"
        ]

    def record(self, path: Path) -> None:
        pass

    def forget(self, path: Path) -> None:
        pass
