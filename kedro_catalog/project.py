"""Per-project state shared by the synchronizer and the query façade."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from kedro_catalog.catalog.index import CatalogIndex
from kedro_catalog.catalog.sync import (
    CatalogSynchronizer,
    DeferredTaskQueue,
    IndexUpdate,
    read_catalog_text,
)
from kedro_catalog.config import CatalogSettings, load_settings
from kedro_catalog.errors import ProjectDisposedError

logger = logging.getLogger(__name__)

Listener = Callable[[IndexUpdate], None]


class ProjectContext:
    """Everything one open project owns: index, synchronizer, task queue.

    Several contexts can live side by side; nothing here is global.
    """

    def __init__(
        self,
        root: Path,
        settings: Optional[CatalogSettings] = None,
        *,
        reader: Optional[Callable[[Path], str]] = None,
        call_later: Optional[Callable[[Callable[[], None]], object]] = None,
        is_restricted: Optional[Callable[[], bool]] = None,
    ) -> None:
        self.root = Path(root)
        self.settings = settings if settings is not None else load_settings(self.root)
        self.reader: Callable[[Path], str] = reader or read_catalog_text
        self.index = CatalogIndex()
        self.tasks = DeferredTaskQueue(call_later=call_later, is_restricted=is_restricted)
        self.synchronizer = CatalogSynchronizer(self)
        self._listeners: List[Listener] = []
        self._lock = threading.RLock()
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def ensure_active(self) -> None:
        if self._disposed:
            raise ProjectDisposedError("Project has been disposed", path=str(self.root))

    @contextmanager
    def mutation(self) -> Iterator[None]:
        """Hold the project lock for one file's index update.

        Disposal takes the same lock, so once ``dispose`` returns no sync
        task can write to the index again.
        """

        with self._lock:
            self.ensure_active()
            yield

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def notify(self, update: IndexUpdate) -> None:
        if self._disposed:
            return
        for listener in list(self._listeners):
            try:
                listener(update)
            except Exception:  # noqa: BLE001 - listeners belong to the host
                logger.exception("Index update listener failed")

    def dispose(self) -> None:
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            self.tasks.close()
            self._listeners.clear()
            self.index.clear()
        logger.debug("Disposed catalog project at %s", self.root)


__all__ = ["ProjectContext"]
