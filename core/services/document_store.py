"""
Filesystem document store for issued invoices.

Layout under the invoices directory:

    FACTURA_<seq>_<timestamp>.json   full issuance result + save metadata
    FACTURA_<seq>.xml                XML rendition (one per sequence)
    sent/                            copies of the above once sent,
                                     plus ENVIO_<seq>_<timestamp>.json records

Marking as sent copies rather than moves: the pending originals stay in
place as an audit trail. No operation holds a lock across calls, so a
concurrent mark_sent and delete for the same sequence can leave partial state.
"""

import json
import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from core.exceptions import DocumentNotFoundError, StorageIOError
from core.models import (
    AreaStats,
    DeleteResult,
    DocumentStatus,
    DocumentSummary,
    FileInfo,
    StatusFilter,
    StorageStats,
    StoredDocument,
    TransferResult,
)
from core.services.document_index import (
    DirectoryScanIndex,
    DocumentIndex,
    extract_sequence,
    json_filename,
    send_record_filename,
    xml_filename,
)
from core.services.sequence_service import is_valid_sequence
from utils.timezone import file_timestamp, now_utc

logger = logging.getLogger(__name__)

SENT_DIRNAME = "sent"


def _require_sequence(sequence: str) -> None:
    if not is_valid_sequence(sequence):
        raise ValueError(f"Invalid sequence number: {sequence!r}")


def _write_json(path: Path, data: Any) -> None:
    path.write_text(
        json.dumps(data, indent=2, ensure_ascii=False, default=str),
        encoding="utf-8",
    )


def _file_info(path: Path) -> FileInfo:
    st = path.stat()
    return FileInfo(
        path=path,
        size=st.st_size,
        created_at=datetime.fromtimestamp(st.st_ctime, tz=timezone.utc),
        modified_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
    )


class DocumentStore:
    """Persistence and lifecycle tracking for issued documents, by sequence number."""

    def __init__(self, invoices_dir: Path, index: DocumentIndex | None = None):
        self.invoices_dir = Path(invoices_dir).resolve()
        self.sent_dir = self.invoices_dir / SENT_DIRNAME
        self.index = index or DirectoryScanIndex()

        try:
            self.invoices_dir.mkdir(parents=True, exist_ok=True)
            self.sent_dir.mkdir(exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create invoice directories: {e}")
            raise StorageIOError(f"Failed to create invoice directories: {e}") from e

        logger.info(f"Document store ready at {self.invoices_dir}")

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def save_json(self, sequence: str, document: dict) -> Path:
        """
        Save the full document with save metadata to the pending area.

        Args:
            sequence: 20-digit sequence number
            document: JSON-compatible document (issuance result)

        Returns:
            Path of the written file

        Raises:
            StorageIOError: If the file cannot be written
        """
        _require_sequence(sequence)
        filename = json_filename(sequence, file_timestamp())
        path = self.invoices_dir / filename

        data = {
            **document,
            "metadata": {
                **(document.get("metadata") or {}),
                "savedAt": now_utc().isoformat(),
                "filename": filename,
                "filePath": str(path),
                "format": "JSON",
            },
        }

        try:
            _write_json(path, data)
        except (OSError, TypeError) as e:
            logger.error(f"Failed to save invoice JSON {filename}: {e}")
            raise StorageIOError(f"Failed to save invoice JSON: {e}") from e

        self.index.record(path)
        logger.info(f"Invoice JSON saved: {filename}")
        return path

    def save_xml(self, sequence: str, xml_text: str) -> Path:
        """
        Save the XML rendition. One XML per sequence; later writes overwrite.

        Raises:
            StorageIOError: If the file cannot be written
        """
        _require_sequence(sequence)
        filename = xml_filename(sequence)
        path = self.invoices_dir / filename

        try:
            path.write_text(xml_text, encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to save invoice XML {filename}: {e}")
            raise StorageIOError(f"Failed to save invoice XML: {e}") from e

        self.index.record(path)
        logger.info(f"Invoice XML saved: {filename}")
        return path

    def mark_sent(self, sequence: str, send_meta: dict | None = None) -> TransferResult:
        """
        Copy every pending artifact for a sequence into the sent area.

        Idempotent: a second call copies again and writes another send
        record. Per-file copy failures are collected in ``errors`` and do not
        stop the remaining copies.

        Args:
            sequence: 20-digit sequence number
            send_meta: Authority response and other send details

        Returns:
            TransferResult with copied paths (send record last) and errors

        Raises:
            DocumentNotFoundError: If no pending files exist
            StorageIOError: If no file could be copied at all
        """
        _require_sequence(sequence)
        files = self.index.invoice_files(self.invoices_dir, sequence)
        if not files:
            raise DocumentNotFoundError(sequence)

        result = TransferResult()
        sent_at = now_utc().isoformat()
        record = {
            "consecutivo": sequence,
            "envioAt": sent_at,
            "respuesta": send_meta or {},
            "archivosCopiados": [],
        }

        for source in files:
            dest = self.sent_dir / source.name
            try:
                shutil.copy2(source, dest)
            except OSError as e:
                message = f"Failed to copy {source.name}: {e}"
                result.errors.append(message)
                logger.error(message)
                continue

            self.index.record(dest)
            record["archivosCopiados"].append({
                "original": str(source),
                "enviado": str(dest),
                "timestamp": now_utc().isoformat(),
            })
            result.moved.append(dest)
            logger.info(f"Copied to sent: {source.name}")

        if not result.moved:
            raise StorageIOError(
                f"Could not copy any file for {sequence}: {'; '.join(result.errors)}"
            )

        record_path = self.sent_dir / send_record_filename(sequence, file_timestamp())
        try:
            _write_json(record_path, record)
        except (OSError, TypeError) as e:
            message = f"Failed to write send record {record_path.name}: {e}"
            result.errors.append(message)
            logger.error(message)
        else:
            self.index.record(record_path)
            result.moved.append(record_path)

        logger.info(f"Invoice marked as sent: {sequence}")
        return result

    def delete(self, sequence: str) -> DeleteResult:
        """
        Remove every pending and sent artifact for a sequence.

        Raises:
            DocumentNotFoundError: If nothing was found to remove
        """
        _require_sequence(sequence)
        result = DeleteResult()

        targets = (
            self.index.all_files(self.invoices_dir, sequence)
            + self.index.all_files(self.sent_dir, sequence)
        )
        for path in targets:
            try:
                path.unlink()
            except FileNotFoundError:
                # Removed concurrently; nothing left to do for this file
                continue
            except OSError as e:
                message = f"Failed to delete {path.name}: {e}"
                result.errors.append(message)
                logger.error(message)
                continue

            self.index.forget(path)
            result.deleted.append(path)

        if not result.deleted and not result.errors:
            raise DocumentNotFoundError(sequence)

        logger.info(f"Invoice deleted: {sequence} ({len(result.deleted)} files)")
        return result

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, sequence: str) -> StoredDocument:
        """
        Read a document's pending artifacts.

        JSON content is parsed, XML returned as text. Sent copies are only
        counted, not read.

        Raises:
            DocumentNotFoundError: If no pending files exist
        """
        _require_sequence(sequence)
        files = self.index.invoice_files(self.invoices_dir, sequence)
        if not files:
            raise DocumentNotFoundError(sequence)

        stored = StoredDocument(sequence=sequence, found_at=now_utc())

        # Index order is chronological, so the newest JSON wins
        for path in files:
            ext = path.suffix.lstrip(".").lower()
            try:
                text = path.read_text(encoding="utf-8")
                stored.files[ext] = json.loads(text) if ext == "json" else text
                stored.file_info[ext] = _file_info(path)
            except (OSError, ValueError) as e:
                logger.warning(f"Could not read {path.name}: {e}")

        sent_files = self.index.all_files(self.sent_dir, sequence)
        stored.sent = bool(sent_files)
        stored.sent_files = len(sent_files)

        return stored

    def exists(self, sequence: str) -> bool:
        _require_sequence(sequence)
        return bool(self.index.invoice_files(self.invoices_dir, sequence))

    def list(
        self,
        status: StatusFilter = StatusFilter.ALL,
        include_content: bool = False,
    ) -> list[DocumentSummary]:
        """
        Enumerate stored invoice JSON documents.

        Pending entries come first, then sent ones. Unreadable files are
        skipped with a warning. Pagination is the caller's job.
        """
        areas = []
        if status in (StatusFilter.ALL, StatusFilter.PENDING):
            areas.append((self.invoices_dir, DocumentStatus.ISSUED))
        if status in (StatusFilter.ALL, StatusFilter.SENT):
            areas.append((self.sent_dir, DocumentStatus.SENT))

        documents = []
        for directory, area_status in areas:
            for path in self.index.invoice_json_files(directory):
                try:
                    info = _file_info(path)
                    content = None
                    if include_content:
                        content = json.loads(path.read_text(encoding="utf-8"))
                except (OSError, ValueError) as e:
                    logger.warning(f"Skipping unreadable invoice {path.name}: {e}")
                    continue

                documents.append(DocumentSummary(
                    sequence=extract_sequence(path.name),
                    status=area_status,
                    filename=path.name,
                    size=info.size,
                    created_at=info.created_at,
                    modified_at=info.modified_at,
                    content=content,
                ))

        logger.info(f"Listed {len(documents)} stored invoices (status={status.value})")
        return documents

    def stats(self) -> StorageStats:
        """Count and total size of invoice JSON documents per area."""
        stats = StorageStats(invoices_dir=self.invoices_dir, sent_dir=self.sent_dir)

        for directory, attr in ((self.invoices_dir, "pending"), (self.sent_dir, "sent")):
            count = 0
            size = 0
            for path in self.index.invoice_json_files(directory):
                try:
                    size += path.stat().st_size
                except OSError as e:
                    logger.warning(f"Could not stat {path.name}: {e}")
                    continue
                count += 1
            setattr(stats.counts, attr, count)
            setattr(stats.sizes, attr, size)

        stats.counts.total = stats.counts.pending + stats.counts.sent
        stats.sizes.total = stats.sizes.pending + stats.sizes.sent
        return stats
