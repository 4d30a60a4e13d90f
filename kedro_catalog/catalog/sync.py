"""Keep the catalog index in step with the catalog files on disk.

Work never runs on the caller's stack.  ``initialize`` and
``on_files_changed`` only enqueue a task on the project's
:class:`DeferredTaskQueue`; the host drains the queue once it is allowed to
touch files and trees again (an event loop callback in the language server,
an explicit ``run_pending()`` in tests).

Each changed file is one unit of work: extract its current records, upsert
them, then remove the records previously attributed to that file that are
no longer declared.  Files not named by an event are never touched.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Deque, Dict, Iterable, List, Optional, Tuple

from kedro_catalog.catalog.discovery import discover_catalog_files, is_catalog_file, source_id
from kedro_catalog.catalog.extractor import extract_text
from kedro_catalog.catalog.models import DatasetRecord
from kedro_catalog.errors import CatalogError, CatalogReadError, ProjectDisposedError
from kedro_catalog.observability import log_catalog_event

if TYPE_CHECKING:  # pragma: no cover
    from kedro_catalog.project import ProjectContext

logger = logging.getLogger(__name__)

Task = Callable[[], object]


class ChangeKind(Enum):
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    MOVED = "moved"
    COPIED = "copied"


@dataclass(frozen=True)
class FileChange:
    """One file-system event.

    ``old_path`` is the previous location for ``MOVED`` and the origin for
    ``COPIED`` (the origin itself is unaffected by a copy).
    """

    kind: ChangeKind
    path: Path
    old_path: Optional[Path] = None


@dataclass(frozen=True)
class CatalogProblem:
    """Something wrong with the catalog that the user should see."""

    kind: str
    source: str
    message: str
    name: Optional[str] = None
    line: int = 0
    column: int = 0


@dataclass(frozen=True)
class IndexUpdate:
    """Published after each sync task that touched at least one file."""

    sources: Tuple[str, ...] = ()
    upserted: Tuple[str, ...] = ()
    removed: Tuple[str, ...] = ()
    duplicates: Tuple[str, ...] = ()


@dataclass
class _UpdateBuilder:
    sources: List[str] = field(default_factory=list)
    upserted: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    duplicates: List[str] = field(default_factory=list)

    def build(self) -> IndexUpdate:
        return IndexUpdate(
            sources=tuple(self.sources),
            upserted=tuple(self.upserted),
            removed=tuple(self.removed),
            duplicates=tuple(dict.fromkeys(self.duplicates)),
        )


def read_catalog_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise CatalogReadError(f"Unable to read catalog file: {exc}", path=str(path)) from exc


class DeferredTaskQueue:
    """FIFO of deferred work, replayed when the host allows it.

    *call_later* schedules a callback on the host's event loop; without one
    the queue only runs when :meth:`run_pending` is called.  When
    *is_restricted* reports that the host currently forbids index mutation,
    the replay is rescheduled through *call_later* instead of spinning.
    """

    def __init__(
        self,
        call_later: Optional[Callable[[Callable[[], None]], object]] = None,
        is_restricted: Optional[Callable[[], bool]] = None,
    ) -> None:
        self._call_later = call_later
        self._is_restricted = is_restricted or (lambda: False)
        self._pending: Deque[Task] = deque()
        self._lock = threading.Lock()
        self._scheduled = False
        self._closed = False

    def attach(self, call_later: Optional[Callable[[Callable[[], None]], object]]) -> None:
        self._call_later = call_later
        if self.pending:
            self._schedule()

    def submit(self, task: Task) -> None:
        with self._lock:
            if self._closed:
                return
            self._pending.append(task)
        self._schedule()

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    def run_pending(self) -> int:
        """Run queued tasks in order; return how many ran."""

        with self._lock:
            self._scheduled = False
        if self._is_restricted():
            logger.debug("Host restriction active; deferring %d catalog task(s)", self.pending)
            self._schedule()
            return 0
        ran = 0
        while True:
            with self._lock:
                if self._closed or not self._pending:
                    break
                task = self._pending.popleft()
            try:
                task()
            except ProjectDisposedError:
                log_catalog_event("sync_abandoned", "Project disposed; dropping catalog tasks", level=logging.DEBUG)
                self.close()
                break
            except Exception:  # noqa: BLE001 - one failed task must not stall the queue
                logger.exception("Deferred catalog task failed")
            ran += 1
        return ran

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._pending.clear()

    def _schedule(self) -> None:
        if self._call_later is None:
            return
        with self._lock:
            if self._scheduled or self._closed:
                return
            self._scheduled = True
        self._call_later(self.run_pending)


class CatalogSynchronizer:
    """Builds and incrementally maintains a project's catalog index."""

    def __init__(self, context: "ProjectContext") -> None:
        self.context = context
        self.logger = logging.getLogger("kedro_catalog.catalog.sync")
        self._declared: Dict[str, Dict[str, DatasetRecord]] = {}
        self._errors: Dict[str, CatalogError] = {}

    # ------------------------------------------------------------------
    # Scheduling entry points
    # ------------------------------------------------------------------
    def initialize(self) -> None:
        """Queue a full scan of the project's catalog files."""

        if self.context.disposed:
            return
        self.context.tasks.submit(self._scan)

    def on_files_changed(self, changes: Iterable[FileChange]) -> None:
        """Queue a re-sync for the catalog files named by *changes*."""

        if self.context.disposed:
            return
        relevant = self.relevant_changes(changes)
        if relevant:
            self.context.tasks.submit(partial(self.apply_changes, relevant))

    def relevant_changes(self, changes: Iterable[FileChange]) -> List[FileChange]:
        relevant: List[FileChange] = []
        for change in changes:
            candidates = [change.path]
            if change.kind is ChangeKind.MOVED and change.old_path is not None:
                candidates.append(change.old_path)
            if any(self.is_catalog_file(path) or self.is_tracked(path) for path in candidates):
                relevant.append(change)
        return relevant

    def is_catalog_file(self, path: Path) -> bool:
        return is_catalog_file(path, self.context.root, self.context.settings)

    def is_tracked(self, path: Path) -> bool:
        return source_id(path) in self._declared

    # ------------------------------------------------------------------
    # Synchronous work
    #
    # The public calls do nothing once the project is disposed.  The queued
    # variants let ProjectDisposedError escape so the task queue can drop
    # the rest of its work.
    # ------------------------------------------------------------------
    def rescan(self) -> IndexUpdate:
        """Sync every catalog file and forget tracked files that disappeared."""

        try:
            return self._scan()
        except ProjectDisposedError:
            return IndexUpdate()

    def _scan(self) -> IndexUpdate:
        self.context.ensure_active()
        update = _UpdateBuilder()
        files = discover_catalog_files(self.context.root, self.context.settings)
        present = {source_id(path) for path in files}
        for source in sorted(set(self._declared) - present):
            self._forget(source, update)
        for path in files:
            self._sync(path, None, update)
        result = update.build()
        self.logger.info("Catalog index built from %d file(s), %d dataset(s)", len(files), len(self.context.index))
        self.context.notify(result)
        return result

    def apply_changes(self, changes: Iterable[FileChange]) -> IndexUpdate:
        """Queued work for :meth:`on_files_changed`; raises once disposed."""

        self.context.ensure_active()
        update = _UpdateBuilder()
        for change in changes:
            if change.kind is ChangeKind.DELETED:
                self._forget(source_id(change.path), update)
                continue
            if change.kind is ChangeKind.MOVED and change.old_path is not None:
                self._forget(source_id(change.old_path), update)
            if self.is_catalog_file(change.path):
                self._sync(change.path, None, update)
            elif self.is_tracked(change.path):
                self._forget(source_id(change.path), update)
        result = update.build()
        if result.sources:
            self.context.notify(result)
        return result

    def sync_file(self, path: Path, text: Optional[str] = None) -> IndexUpdate:
        """Re-extract one file, from *text* when given (an unsaved buffer)."""

        if self.context.disposed:
            return IndexUpdate()
        update = _UpdateBuilder()
        try:
            self._sync(path, text, update)
        except ProjectDisposedError:
            return IndexUpdate()
        result = update.build()
        self.context.notify(result)
        return result

    def forget_file(self, path: Path) -> IndexUpdate:
        update = _UpdateBuilder()
        try:
            self._forget(source_id(path), update)
        except ProjectDisposedError:
            return IndexUpdate()
        result = update.build()
        if result.sources:
            self.context.notify(result)
        return result

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def tracked_files(self) -> List[str]:
        return sorted(self._declared)

    def duplicates(self) -> Dict[str, List[str]]:
        """Dataset names declared by more than one tracked file."""

        owners: Dict[str, List[str]] = {}
        for source, names in sorted(self._declared.items()):
            for name in names:
                owners.setdefault(name, []).append(source)
        return {name: sources for name, sources in sorted(owners.items()) if len(sources) > 1}

    def problems(self, source: Optional[str] = None) -> List[CatalogProblem]:
        problems: List[CatalogProblem] = []
        for error_source, error in sorted(self._errors.items()):
            if source is not None and error_source != source:
                continue
            problems.append(
                CatalogProblem(
                    kind="malformed",
                    source=error_source,
                    message=error.message,
                    line=max((error.line or 1) - 1, 0),
                    column=max((error.column or 1) - 1, 0),
                )
            )
        for name, sources in self.duplicates().items():
            for owner in sources:
                if source is not None and owner != source:
                    continue
                others = ", ".join(Path(other).name for other in sources if other != owner)
                declared = self._declared.get(owner, {}).get(name)
                anchor = declared.anchor if declared is not None else None
                problems.append(
                    CatalogProblem(
                        kind="duplicate",
                        source=owner,
                        name=name,
                        message=f"Dataset '{name}' is also declared in {others}",
                        line=anchor.line if anchor else 0,
                        column=anchor.column if anchor else 0,
                    )
                )
        return problems

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _sync(self, path: Path, text: Optional[str], update: _UpdateBuilder) -> None:
        source = source_id(path)
        error: Optional[CatalogError] = None
        records: List[DatasetRecord] = []
        try:
            if text is None:
                text = self.context.reader(path)
            records = extract_text(text, source)
        except CatalogError as exc:
            error = exc
            log_catalog_event(
                "catalog_unreadable",
                "Catalog file %s contributes no datasets: %s",
                source,
                exc.format(),
                level=logging.WARNING,
                source=source,
            )

        with self.context.mutation():
            known = set(self._clashes(source, self._declared.get(source, {})))
            upserted, removed = self.context.index.apply_file(source, records)
            removed = self._restore_shadowed(source, removed)
            names = {record.key: record for record in records}
            self._declared[source] = names
            if error is None:
                self._errors.pop(source, None)
            else:
                self._errors[source] = error
            # Names that already clashed before this sync were announced then.
            clashes = {
                name: others for name, others in self._clashes(source, names).items() if name not in known
            }

        for name, others in clashes.items():
            log_catalog_event(
                "duplicate_dataset",
                "There are multiple datasets named %r: %s",
                name,
                ", ".join([source, *others]),
                level=logging.WARNING,
                name=name,
                sources=[source, *others],
            )
        log_catalog_event(
            "catalog_indexed",
            "Indexed %s: %d upserted, %d removed",
            source,
            len(upserted),
            len(removed),
            level=logging.DEBUG,
            source=source,
        )
        update.sources.append(source)
        update.upserted.extend(record.name for record in upserted)
        update.removed.extend(record.name for record in removed)
        update.duplicates.extend(clashes)

    def _forget(self, source: str, update: _UpdateBuilder) -> None:
        with self.context.mutation():
            _, removed = self.context.index.apply_file(source, [])
            removed = self._restore_shadowed(source, removed)
            known = self._declared.pop(source, None)
            self._errors.pop(source, None)
        if known is None and not removed:
            return
        self.logger.debug("Forgot catalog file %s (%d dataset(s) removed)", source, len(removed))
        update.sources.append(source)
        update.removed.extend(record.name for record in removed)

    def _restore_shadowed(self, source: str, removed: List[DatasetRecord]) -> List[DatasetRecord]:
        """Rebind names that another tracked file still declares.

        A duplicate keeps only one binding in the index; when the winning
        file drops the name, the last known declaration from another file
        takes its place instead of the name disappearing.
        """

        gone: List[DatasetRecord] = []
        for record in removed:
            fallback = None
            for other, declared in self._declared.items():
                if other != source and record.key in declared:
                    fallback = declared[record.key]
            if fallback is None:
                gone.append(record)
            else:
                self.context.index.upsert(fallback)
        return gone

    def _clashes(self, source: str, names: Iterable[str]) -> Dict[str, List[str]]:
        clashes: Dict[str, List[str]] = {}
        for other, other_names in self._declared.items():
            if other == source:
                continue
            for name in set(names) & set(other_names):
                clashes.setdefault(name, []).append(other)
        return {name: sorted(others) for name, others in sorted(clashes.items())}


__all__ = [
    "CatalogProblem",
    "CatalogSynchronizer",
    "ChangeKind",
    "DeferredTaskQueue",
    "FileChange",
    "IndexUpdate",
    "read_catalog_text",
]
