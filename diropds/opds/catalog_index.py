from __future__ import annotations

import logging
import os
import stat
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContentEntry:
    name: str
    path: str
    relative_path: str
    modified_at: datetime
    size: int = 0


@dataclass(frozen=True)
class Snapshot:
    root: Optional[str] = None
    entries: Tuple[ContentEntry, ...] = ()
    skipped: int = 0
    generation: int = 0
    built_at: Optional[datetime] = field(default=None, compare=False)

    def __len__(self) -> int:
        return len(self.entries)


def _walk(root: str) -> Tuple[List[ContentEntry], int]:
    """Pre-order walk in lexical order collecting one entry per non-directory.

    Symlinked directories are not followed.
    """

    entries: List[ContentEntry] = []
    skipped = 0
    pending: List[Union[str, os.DirEntry]] = [root]
    while pending:
        item = pending.pop()
        if isinstance(item, str):
            try:
                with os.scandir(item) as iterator:
                    children = sorted(iterator, key=lambda child: child.name)
            except OSError as exc:
                logger.warning("Skipping unreadable directory %s: %s", item, exc)
                skipped += 1
                continue
            pending.extend(reversed(children))
            continue

        try:
            if item.is_dir(follow_symlinks=False):
                pending.append(item.path)
                continue
            info = item.stat()
        except OSError as exc:
            logger.warning("Skipping unreadable entry %s: %s", item.path, exc)
            skipped += 1
            continue
        if stat.S_ISDIR(info.st_mode):
            logger.debug("Not following symlinked directory %s", item.path)
            continue
        entries.append(
            ContentEntry(
                name=item.name,
                path=item.path,
                relative_path=Path(os.path.relpath(item.path, root)).as_posix(),
                modified_at=datetime.fromtimestamp(info.st_mtime, tz=timezone.utc),
                size=info.st_size,
            )
        )
    return entries, skipped


def latest(snapshot: Snapshot) -> List[ContentEntry]:
    """Entries newest first; equal timestamps keep discovery order."""
    return sorted(snapshot.entries, key=lambda entry: entry.modified_at, reverse=True)


def by_title(snapshot: Snapshot) -> List[ContentEntry]:
    """Entries by file name in code point order; equal names keep discovery order."""
    return sorted(snapshot.entries, key=lambda entry: entry.name)


class CatalogIndex:
    """Holds the most recent snapshot of every content file under a root.

    ``rebuild`` walks the whole tree and publishes a new snapshot in one
    swap; readers always get a complete snapshot, either the previous one
    or the new one.
    """

    def __init__(self, root: "str | os.PathLike[str]") -> None:
        self._root = os.fspath(root)
        self._lock = threading.Lock()
        self._snapshot = Snapshot(root=self._root)

    @property
    def root(self) -> str:
        return self._root

    def current(self) -> Snapshot:
        with self._lock:
            return self._snapshot

    def rebuild(self) -> Snapshot:
        entries, skipped = _walk(self._root)
        with self._lock:
            snapshot = Snapshot(
                root=self._root,
                entries=tuple(entries),
                skipped=skipped,
                generation=self._snapshot.generation + 1,
                built_at=datetime.now(timezone.utc),
            )
            self._snapshot = snapshot
        logger.info(
            "Indexed %d files under %s (%d skipped, generation %d)",
            len(snapshot.entries),
            self._root,
            skipped,
            snapshot.generation,
        )
        return snapshot

    def latest(self, snapshot: Optional[Snapshot] = None) -> List[ContentEntry]:
        return latest(snapshot if snapshot is not None else self.current())

    def by_title(self, snapshot: Optional[Snapshot] = None) -> List[ContentEntry]:
        return by_title(snapshot if snapshot is not None else self.current())
