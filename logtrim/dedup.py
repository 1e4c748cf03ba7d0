"""Deduplication engine: merges near-duplicate records within each level.

Small inputs run sequentially. At or above DedupConfig.parallel_threshold,
messages are normalized by a worker pool and large level groups are
clustered in their own threads.
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Sequence

import psutil

from logtrim.config import DedupConfig
from logtrim.models import LogRecord
from logtrim.normalize import normalize_message
from logtrim.similarity import is_similar_message, sources_similar

# progress(processed, total, removed)
ProgressCallback = Callable[[int, int, int], None]


@dataclass(frozen=True)
class DedupStats:
    input_count: int
    output_count: int
    removed: int
    strategy: str  # "empty", "sequential" or "parallel"
    elapsed: float


@dataclass
class _SharedState:
    """Structures shared by group threads, one lock each."""
    claimed: bytearray
    results: list[LogRecord] = field(default_factory=list)
    removed: int = 0
    claimed_lock: threading.Lock = field(default_factory=threading.Lock)
    results_lock: threading.Lock = field(default_factory=threading.Lock)
    removed_lock: threading.Lock = field(default_factory=threading.Lock)


def level_groups(records: Sequence[LogRecord]) -> dict[str, list[int]]:
    """Indices of records per case-insensitive level, in input order."""
    groups: dict[str, list[int]] = {}
    for idx, record in enumerate(records):
        groups.setdefault(record.level.lower(), []).append(idx)
    return groups


class Deduplicator:
    """Collapses records with similar messages into one counted representative."""

    def __init__(
        self,
        config: DedupConfig | None = None,
        logger: logging.Logger | None = None,
        progress: ProgressCallback | None = None,
    ):
        self.config = config or DedupConfig()
        self._logger = logger or logging.getLogger(__name__)
        self._progress = progress
        self.last_stats: DedupStats | None = None

    def deduplicate(self, records: Sequence[LogRecord]) -> list[LogRecord]:
        """Return one record per cluster, each carrying its cluster size.

        Input records are never modified.
        """
        start = time.monotonic()
        if not records:
            strategy, result = "empty", []
        elif len(records) < self.config.parallel_threshold:
            strategy, result = "sequential", self._deduplicate_sequential(records)
        else:
            strategy, result = "parallel", self._deduplicate_parallel(records)

        self.last_stats = DedupStats(
            input_count=len(records),
            output_count=len(result),
            removed=len(records) - len(result),
            strategy=strategy,
            elapsed=time.monotonic() - start,
        )
        self._logger.info(
            "Deduplicated %d records to %d (%d removed, %s, %.3fs)",
            self.last_stats.input_count, self.last_stats.output_count,
            self.last_stats.removed, strategy, self.last_stats.elapsed,
        )
        return result

    def _report(self, processed: int, total: int, removed: int):
        if self._progress is None:
            return
        try:
            self._progress(processed, total, removed)
        except Exception as e:
            self._logger.warning("Progress callback failed: %s", e)

    def _is_duplicate(self, rep: LogRecord, rep_msg: str, rep_words: list[str],
                      other: LogRecord, other_msg: str) -> bool:
        if not sources_similar(rep.source, other.source, self.config.source_threshold):
            return False
        return is_similar_message(rep_msg, other_msg, rep_words, self.config.similarity_threshold)

    # ------------------------------------------------------------------
    # Sequential
    # ------------------------------------------------------------------

    def _deduplicate_sequential(self, records: Sequence[LogRecord]) -> list[LogRecord]:
        cfg = self.config
        total = len(records)
        claimed = bytearray(total)
        cache: dict[int, str] = {}

        # Level group of each index and its position in that group
        group_of: list[list[int]] = [[] for _ in range(total)]
        position = [0] * total
        for members in level_groups(records).values():
            for pos, idx in enumerate(members):
                group_of[idx] = members
                position[idx] = pos

        def normalized(idx: int) -> str:
            msg = cache.get(idx)
            if msg is None:
                msg = normalize_message(records[idx].message)
                cache[idx] = msg
            return msg

        result: list[LogRecord] = []
        removed = 0
        for i, record in enumerate(records):
            if i % cfg.progress_interval == 0:
                self._report(i, total, removed)
            if i and i % cfg.cache_evict_interval == 0:
                # Everything behind i is already claimed
                for stale in [k for k in cache if k < i]:
                    del cache[stale]

            if claimed[i]:
                continue
            claimed[i] = 1

            base = normalized(i)
            base_words = base.split()
            count = 1
            for j in group_of[i][position[i] + 1:]:
                if claimed[j]:
                    continue
                if self._is_duplicate(record, base, base_words, records[j], normalized(j)):
                    claimed[j] = 1
                    count += 1

            removed += count - 1
            result.append(record.with_duplicate_count(count))

        self._report(total, total, removed)
        return result

    # ------------------------------------------------------------------
    # Parallel
    # ------------------------------------------------------------------

    def _worker_count(self, total: int) -> int:
        workers = self.config.workers or psutil.cpu_count(logical=True) or 1
        return max(1, min(workers, total))

    def _normalize_all(self, records: Sequence[LogRecord]) -> list[str]:
        """Normalize every message with a pool draining a shared index queue."""
        normalized = [""] * len(records)
        lock = threading.Lock()
        work: queue.Queue = queue.Queue()
        for idx in range(len(records)):
            work.put(idx)

        def worker():
            while True:
                try:
                    idx = work.get_nowait()
                except queue.Empty:
                    return
                msg = normalize_message(records[idx].message)
                with lock:
                    normalized[idx] = msg

        count = self._worker_count(len(records))
        self._logger.debug("Normalizing %d messages with %d workers", len(records), count)
        threads = [threading.Thread(target=worker, name=f"normalize-{n}") for n in range(count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return normalized

    def _cluster_group(self, records: Sequence[LogRecord], normalized: list[str],
                       members: list[int], state: _SharedState):
        """Cluster one level group. Comparisons run outside every lock."""
        for pos, i in enumerate(members):
            with state.claimed_lock:
                if state.claimed[i]:
                    continue
                state.claimed[i] = 1

            record = records[i]
            base = normalized[i]
            base_words = base.split()
            count = 1
            for j in members[pos + 1:]:
                with state.claimed_lock:
                    if state.claimed[j]:
                        continue
                if not self._is_duplicate(record, base, base_words, records[j], normalized[j]):
                    continue
                with state.claimed_lock:
                    if state.claimed[j]:
                        continue
                    state.claimed[j] = 1
                count += 1

            if count > 1:
                with state.removed_lock:
                    state.removed += count - 1
            with state.results_lock:
                state.results.append(record.with_duplicate_count(count))

    def _deduplicate_parallel(self, records: Sequence[LogRecord]) -> list[LogRecord]:
        total = len(records)
        normalized = self._normalize_all(records)
        self._report(0, total, 0)

        state = _SharedState(claimed=bytearray(total))
        groups = level_groups(records)
        threads = []
        for level, members in groups.items():
            if len(members) < self.config.inline_group_threshold:
                self._cluster_group(records, normalized, members, state)
                continue
            t = threading.Thread(
                target=self._cluster_group,
                args=(records, normalized, members, state),
                name=f"dedup-{level}",
            )
            threads.append(t)
            t.start()

        self._logger.debug("Clustering %d level groups, %d in threads",
                           len(groups), len(threads))
        for t in threads:
            t.join()

        self._report(total, total, state.removed)
        return state.results


def deduplicate(records: Sequence[LogRecord], config: DedupConfig | None = None) -> list[LogRecord]:
    """Deduplicate with a default-configured engine."""
    return Deduplicator(config).deduplicate(records)
