# services/behavior_tracker.py
"""Per-identity behaviour tracking for the anti-spam checks.

State is in-process and advisory: losing it on restart only weakens burst and
duplicate detection until the window refills. Identities are spread across a
fixed number of shards, each guarded by its own lock, so a check-then-record
for one identity is atomic while unrelated identities rarely contend. Idle
identities are evicted by ``sweep``, which a background thread runs on a
fixed interval one shard at a time.
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
import zlib
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class BehaviorRecord:
    history: Deque[Tuple[float, str]]
    violation_count: int = 0
    last_seen: float = 0.0
    suspicious: bool = False


@dataclass(frozen=True)
class BehaviorCheck:
    is_duplicate_recent: bool = False
    is_burst: bool = False
    violation_count: int = 0
    is_new: bool = False
    suspicious: bool = False
    seconds_since_last: Optional[float] = None


@dataclass
class _Shard:
    lock: threading.Lock = field(default_factory=threading.Lock)
    records: Dict[str, BehaviorRecord] = field(default_factory=dict)


def content_hash(text: str) -> str:
    return hashlib.sha256((text or "").strip().lower().encode("utf-8")).hexdigest()


class BehaviorTracker:
    def __init__(
        self,
        min_spacing_seconds: float = 10,
        duplicate_window_seconds: float = 300,
        history_size: int = 10,
        idle_ttl_seconds: float = 3600,
        shards: int = 32,
        suspicious_violations: int = 3,
        sweep_interval_seconds: float = 300,
    ):
        self.min_spacing_seconds = min_spacing_seconds
        self.duplicate_window_seconds = duplicate_window_seconds
        self.history_size = history_size
        self.idle_ttl_seconds = idle_ttl_seconds
        self.suspicious_violations = suspicious_violations
        self.sweep_interval_seconds = sweep_interval_seconds
        self._shards = [_Shard() for _ in range(max(1, shards))]
        self._stop = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

    @classmethod
    def from_config(cls, config) -> "BehaviorTracker":
        return cls(
            min_spacing_seconds=config["MIN_SECONDS_BETWEEN_COMMENTS"],
            duplicate_window_seconds=config["DUPLICATE_WINDOW_SECONDS"],
            history_size=config["BEHAVIOR_HISTORY_SIZE"],
            idle_ttl_seconds=config["BEHAVIOR_IDLE_TTL_SECONDS"],
            shards=config["BEHAVIOR_SHARDS"],
            suspicious_violations=config["BEHAVIOR_SUSPICIOUS_VIOLATIONS"],
            sweep_interval_seconds=config["BEHAVIOR_SWEEP_INTERVAL_SECONDS"],
        )

    def _shard_for(self, identity: str) -> _Shard:
        return self._shards[zlib.crc32(identity.encode("utf-8")) % len(self._shards)]

    def _new_record(self) -> BehaviorRecord:
        return BehaviorRecord(history=deque(maxlen=self.history_size))

    def _register_violation(self, record: BehaviorRecord):
        record.violation_count += 1
        if record.violation_count >= self.suspicious_violations:
            record.suspicious = True

    # -- public API ----------------------------------------------------------

    def record_and_check(self, identity: str, digest: str, now: Optional[float] = None) -> BehaviorCheck:
        """Check a submission against the identity's window and record it.

        A burst is counted as a violation and is not added to the history.
        """
        now = time.time() if now is None else now
        shard = self._shard_for(identity)
        with shard.lock:
            record = shard.records.get(identity)
            is_new = record is None
            if record is None:
                record = self._new_record()
                shard.records[identity] = record

            since_last = None
            is_burst = False
            if record.history:
                since_last = now - record.history[-1][0]
                is_burst = since_last < self.min_spacing_seconds

            is_duplicate = any(
                h == digest and now - ts < self.duplicate_window_seconds
                for ts, h in record.history
            )

            record.last_seen = now
            if is_burst:
                self._register_violation(record)
            else:
                record.history.append((now, digest))

            return BehaviorCheck(
                is_duplicate_recent=is_duplicate,
                is_burst=is_burst,
                violation_count=record.violation_count,
                is_new=is_new,
                suspicious=record.suspicious,
                seconds_since_last=since_last,
            )

    def record_violation(self, identity: str, now: Optional[float] = None) -> int:
        now = time.time() if now is None else now
        shard = self._shard_for(identity)
        with shard.lock:
            record = shard.records.get(identity)
            if record is None:
                record = self._new_record()
                shard.records[identity] = record
            record.last_seen = now
            self._register_violation(record)
            return record.violation_count

    def snapshot(self, identity: str) -> Optional[BehaviorCheck]:
        """Read-only view of an identity's state, without recording anything."""
        shard = self._shard_for(identity)
        with shard.lock:
            record = shard.records.get(identity)
            if record is None:
                return None
            return BehaviorCheck(violation_count=record.violation_count, suspicious=record.suspicious)

    def sweep(self, now: Optional[float] = None) -> int:
        """Prune stale history and drop idle identities; returns how many were dropped."""
        now = time.time() if now is None else now
        cutoff = now - self.idle_ttl_seconds
        evicted = 0
        for shard in self._shards:
            with shard.lock:
                for identity in list(shard.records):
                    record = shard.records[identity]
                    while record.history and record.history[0][0] < cutoff:
                        record.history.popleft()
                    if not record.history and record.last_seen < cutoff:
                        del shard.records[identity]
                        evicted += 1
        if evicted:
            logger.info("behaviour sweep evicted %d idle identities", evicted)
        return evicted

    def __len__(self) -> int:
        return sum(len(shard.records) for shard in self._shards)

    # -- background sweep ----------------------------------------------------

    def start(self):
        if self._sweeper and self._sweeper.is_alive():
            return
        self._stop.clear()
        self._sweeper = threading.Thread(target=self._run, name="behavior-sweeper", daemon=True)
        self._sweeper.start()

    def stop(self, timeout: float = 1.0):
        self._stop.set()
        if self._sweeper:
            self._sweeper.join(timeout)
            self._sweeper = None

    def _run(self):
        while not self._stop.wait(self.sweep_interval_seconds):
            try:
                self.sweep()
            except Exception:
                logger.exception("behaviour sweep failed")
