"""
Sequence number (consecutivo) allocation.

Format: establishment(3) + point of sale(3) + document type(2) + counter(12),
always 20 digits. The counter lives in a JSON file that is rewritten
atomically on every allocation.

Allocation is serialized per counter file with an in-process lock, so
concurrent requests never read the same counter value. If the counter file
cannot be read or written, a timestamp-derived id is returned instead and the
allocation is tagged as degraded; the counter file is left untouched.
"""

import json
import logging
import os
import secrets
import tempfile
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

from core.exceptions import ResetNotAllowedError
from core.models import SequenceCounter, SequenceStats
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

ESTABLISHMENT = "001"
POINT_OF_SALE = "001"
DOCUMENT_TYPE = "01"

SEQUENCE_LENGTH = 20
COUNTER_DIGITS = 12
MAX_COUNTER = 10 ** COUNTER_DIGITS - 1


@dataclass(frozen=True)
class Allocation:
    """An allocated sequence number, flagged when it came from the fallback path."""

    sequence: str
    degraded: bool = False


@dataclass(frozen=True)
class SequenceParts:
    establishment: str
    point_of_sale: str
    document_type: str
    counter: int


def format_sequence(
    number: int,
    establishment: str = ESTABLISHMENT,
    point_of_sale: str = POINT_OF_SALE,
    document_type: str = DOCUMENT_TYPE,
) -> str:
    """
    Render a counter value as a 20-digit sequence number.

    Raises:
        ValueError: If the counter is out of range
    """
    if not 1 <= number <= MAX_COUNTER:
        raise ValueError(f"Sequence counter out of range: {number}")
    return f"{establishment}{point_of_sale}{document_type}{number:0{COUNTER_DIGITS}d}"


def is_valid_sequence(sequence: object) -> bool:
    return isinstance(sequence, str) and len(sequence) == SEQUENCE_LENGTH and sequence.isdigit()


def parse_sequence(sequence: str) -> SequenceParts:
    """
    Split a sequence number into its fields.

    Raises:
        ValueError: If the value is not a 20-digit string
    """
    if not is_valid_sequence(sequence):
        raise ValueError(f"Invalid sequence number: {sequence!r}")

    return SequenceParts(
        establishment=sequence[0:3],
        point_of_sale=sequence[3:6],
        document_type=sequence[6:8],
        counter=int(sequence[8:20]),
    )


def timestamp_sequence() -> str:
    """
    Fallback id: fixed prefix + last 10 digits of epoch millis + 2 random digits.

    Weaker uniqueness than the persisted counter.
    """
    millis = str(time.time_ns() // 1_000_000)[-10:]
    return f"{ESTABLISHMENT}{POINT_OF_SALE}{DOCUMENT_TYPE}{millis}{secrets.randbelow(100):02d}"


class SequenceGenerator:
    """
    Persisted monotonic sequence generator.

    One lock per counter file path, shared by every instance in the process.
    """

    _locks: Dict[Path, threading.Lock] = {}
    _locks_guard = threading.Lock()

    def __init__(self, counter_path: Path, is_production: bool = False):
        self.counter_path = Path(counter_path).resolve()
        self.is_production = is_production

        with self._locks_guard:
            if self.counter_path not in self._locks:
                self._locks[self.counter_path] = threading.Lock()
            self._lock = self._locks[self.counter_path]

    def allocate(self) -> Allocation:
        """
        Allocate the next sequence number.

        The new counter value is flushed to disk before the id is returned.
        Never raises for I/O problems; see Allocation.degraded.
        """
        with self._lock:
            try:
                counter = self._load(create=True)
                sequence = format_sequence(counter.current)

                counter.current += 1
                counter.last_updated = now_utc().isoformat()
                counter.last_generated = sequence
                self._write(counter)
            except (OSError, ValueError) as e:
                fallback = timestamp_sequence()
                logger.warning(
                    f"Sequence counter unavailable ({e}); using timestamp id {fallback}"
                )
                return Allocation(sequence=fallback, degraded=True)

        logger.info(f"Allocated sequence {sequence}")
        return Allocation(sequence=sequence)

    def stats(self) -> SequenceStats:
        """Current counter state without allocating."""
        try:
            counter = self._load(create=False)
        except (OSError, ValueError) as e:
            return SequenceStats(
                current_number=1,
                last_updated=None,
                last_generated=None,
                next_sequence=format_sequence(1),
                file_exists=self.counter_path.exists(),
                file_path=self.counter_path,
                error=str(e),
            )

        return SequenceStats(
            current_number=counter.current,
            last_updated=counter.last_updated,
            last_generated=counter.last_generated,
            next_sequence=format_sequence(counter.current),
            file_exists=True,
            file_path=self.counter_path,
        )

    def reset(self, start_number: int = 1) -> SequenceCounter:
        """
        Rewrite the counter from scratch.

        Raises:
            ResetNotAllowedError: In production
            ValueError: If start_number is out of range
        """
        if self.is_production:
            raise ResetNotAllowedError()

        format_sequence(start_number)
        now = now_utc().isoformat()
        counter = SequenceCounter(current=start_number, last_updated=now, reset_at=now)

        with self._lock:
            self._write(counter)

        logger.warning(f"Sequence counter reset to {start_number}")
        return counter

    def _load(self, create: bool) -> SequenceCounter:
        if not self.counter_path.exists():
            if not create:
                raise FileNotFoundError(f"Counter file not found: {self.counter_path}")
            counter = SequenceCounter()
            self._write(counter)
            logger.info(f"Sequence counter created at {self.counter_path}")
            return counter

        return SequenceCounter.model_validate_json(self.counter_path.read_text(encoding="utf-8"))

    def _write(self, counter: SequenceCounter) -> None:
        """Atomic replace: a crash never leaves a half-written counter."""
        self.counter_path.parent.mkdir(parents=True, exist_ok=True)
        data = json.dumps(counter.model_dump(by_alias=True, exclude_none=False), indent=2)

        fd, tmp_name = tempfile.mkstemp(
            dir=self.counter_path.parent, prefix=".consecutivo-", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
            os.replace(tmp_name, self.counter_path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
