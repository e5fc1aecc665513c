"""Delta log reader.

Reconstructs TableState from the commit records under ``_delta_log/``:

1. List the log and find the requested (or latest) version.
2. Start from the newest checkpoint at or below it, if there is one.
3. Replay every commit after the checkpoint in version order, verifying
   that no version is missing and that schema changes agree with the
   statistics of files still live at that point.

The reader never writes. Replaying the same log twice yields equal states.
"""

from __future__ import annotations

import time

from delta_append.domain.entities import CommitRecord, TableState, find_schema_conflicts
from delta_append.domain.services.checkpoint import decode_checkpoint, decode_last_checkpoint
from delta_append.domain.value_objects import (
    LAST_CHECKPOINT_PATH,
    LOG_DIR,
    Version,
    checkpoint_path,
    commit_path,
    parse_checkpoint_version,
    parse_commit_version,
)
from delta_append.errors import CorruptLog, MissingLog, SchemaConflict, UnsupportedProtocol
from delta_append.infrastructure.logging import get_logger
from delta_append.infrastructure.metrics import MetricsRegistry, get_metrics
from delta_append.infrastructure.tracing import ATTR_TABLE_URI, ATTR_VERSION, trace_span
from delta_append.ports.outbound.storage_backend import StorageBackend


logger = get_logger(__name__)


class DeltaLogReader:
    """Implementation of the LogReader protocol over a StorageBackend.

    Example:
        >>> reader = DeltaLogReader(LocalStorageBackend("/data/weather"))
        >>> state = reader.load_state()
        >>> state.version, state.num_files
        (2, 2)
    """

    def __init__(self, storage: StorageBackend, metrics: MetricsRegistry | None = None) -> None:
        self._storage = storage
        self._metrics = metrics or get_metrics()

    @property
    def storage(self) -> StorageBackend:
        return self._storage

    def latest_version(self) -> Version:
        commits, checkpoints = self._list_log()
        if not commits and not checkpoints:
            raise MissingLog(self._storage.uri)
        return max(commits[-1:] + checkpoints[-1:])

    def load_state(self, version: Version | None = None) -> TableState:
        if version is not None and version < 0:
            raise ValueError(f"version must be non-negative, got {version}")

        with trace_span("delta.load_state", {ATTR_TABLE_URI: self._storage.uri}) as span:
            started = time.perf_counter()
            # The hint is read before listing. A checkpoint file is written before
            # the hint naming it, so the listing always contains a hinted checkpoint.
            hint = self._read_last_checkpoint()
            commits, checkpoints = self._list_log()
            if not commits and not checkpoints:
                raise MissingLog(self._storage.uri)

            latest = max(commits[-1:] + checkpoints[-1:])
            target = latest if version is None else version
            if target > latest:
                raise ValueError(f"Version {target} does not exist; latest is {latest}")

            self._check_last_checkpoint(hint, checkpoints)

            base = TableState.empty()
            usable = [v for v in checkpoints if v <= target]
            if usable:
                base = self._read_checkpoint(usable[-1])

            state = self._replay(base, commits, target)

            span.set_attribute(ATTR_VERSION, state.version)
            self._metrics.log_replay_seconds.observe(time.perf_counter() - started)
            if version is None:
                self._metrics.table_version.set(state.version)

            logger.debug(
                "table_state_loaded",
                table=self._storage.uri,
                version=state.version,
                checkpoint=base.version if usable else None,
                files=state.num_files,
            )
            return state

    def update(self, state: TableState) -> TableState:
        if state.is_empty:
            return self.load_state()

        with trace_span("delta.update_state", {ATTR_TABLE_URI: self._storage.uri}):
            commits, _ = self._list_log()
            newer = [v for v in commits if v > state.version]
            if not newer:
                return state
            updated = self._replay(state, commits, newer[-1])
            self._metrics.table_version.set(updated.version)
            return updated

    def _list_log(self) -> tuple[list[Version], list[Version]]:
        commits: list[Version] = []
        checkpoints: list[Version] = []
        for name in self._storage.list(LOG_DIR):
            commit_version = parse_commit_version(name)
            if commit_version is not None:
                commits.append(commit_version)
                continue
            checkpoint_version = parse_checkpoint_version(name)
            if checkpoint_version is not None:
                checkpoints.append(checkpoint_version)
        return sorted(commits), sorted(checkpoints)

    def _read_last_checkpoint(self) -> bytes | None:
        try:
            return self._storage.read(LAST_CHECKPOINT_PATH)
        except FileNotFoundError:
            return None

    def _check_last_checkpoint(self, data: bytes | None, checkpoints: list[Version]) -> None:
        """Validate the checkpoint hint against the listed checkpoints."""
        if data is None:
            return
        try:
            hinted, _ = decode_last_checkpoint(data)
        except ValueError as e:
            raise CorruptLog(str(e), path=LAST_CHECKPOINT_PATH) from e
        if hinted not in checkpoints:
            raise CorruptLog(
                f"_last_checkpoint points at version {hinted}, which has no checkpoint",
                path=checkpoint_path(hinted),
                version=hinted,
            )

    def _read_checkpoint(self, version: Version) -> TableState:
        path = checkpoint_path(version)
        try:
            data = self._storage.read(path)
        except FileNotFoundError as e:
            raise CorruptLog(f"Checkpoint {version} disappeared", path=path, version=version) from e
        try:
            state = decode_checkpoint(version, data)
        except ValueError as e:
            raise CorruptLog(str(e), path=path, version=version) from e
        self._check_protocol(state)
        return state

    def _replay(self, state: TableState, commits: list[Version], target: Version) -> TableState:
        available = set(commits)
        needed = range(state.version + 1, target + 1)
        missing = [v for v in needed if v not in available]
        if missing:
            raise CorruptLog(
                f"Log is missing versions {missing[:10]}",
                path=commit_path(Version(missing[0])),
                version=missing[0],
            )

        for v in needed:
            record = self._read_commit(Version(v))
            state = self._apply(state, record)
            self._metrics.log_records_replayed_total.inc()
        return state

    def _read_commit(self, version: Version) -> CommitRecord:
        path = commit_path(version)
        try:
            data = self._storage.read(path)
        except FileNotFoundError as e:
            raise CorruptLog(f"Commit {version} disappeared", path=path, version=version) from e
        try:
            return CommitRecord.from_bytes(version, data)
        except ValueError as e:
            raise CorruptLog(f"Commit {version} is malformed: {e}", path=path, version=version) from e

    def _apply(self, state: TableState, record: CommitRecord) -> TableState:
        if state.is_empty and (record.protocol is None or record.metadata is None):
            raise CorruptLog(
                "First commit must declare protocol and metadata",
                path=commit_path(record.version),
                version=record.version,
            )

        metadata = record.metadata
        if metadata is not None:
            removed = {r.path for r in record.removes}
            survivors = [f for path, f in state.files.items() if path not in removed]
            conflicts = find_schema_conflicts(metadata.schema, survivors + record.adds)
            if conflicts:
                raise SchemaConflict(
                    f"Schema declared at version {record.version} conflicts with "
                    f"{len(conflicts)} live file statistic(s)",
                    version=record.version,
                    conflicts=conflicts,
                )

        updated = state.apply(record)
        self._check_protocol(updated)
        return updated

    @staticmethod
    def _check_protocol(state: TableState) -> None:
        if state.protocol is not None and not state.protocol.readable:
            raise UnsupportedProtocol(
                min_reader_version=state.protocol.min_reader_version,
                min_writer_version=state.protocol.min_writer_version,
            )
