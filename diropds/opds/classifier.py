from __future__ import annotations

import os
import stat
from enum import Enum
from typing import Union

from diropds.opds.errors import AccessError, NotFoundError

PathLike = Union[str, "os.PathLike[str]"]


class PathClassification(str, Enum):
    FILE = "file"
    DIRECTORY_OF_FILES = "directory_of_files"
    DIRECTORY_OF_DIRECTORIES = "directory_of_directories"

    @property
    def is_directory(self) -> bool:
        return self is not PathClassification.FILE


def classify(path: PathLike) -> PathClassification:
    """Classify ``path`` by looking at it and, for directories, its direct children.

    A directory holding at least one non-directory child is a directory of
    files. Grandchildren are never inspected, so a directory whose only
    children are sub-directories is a directory of directories even when
    those sub-directories contain files.
    """

    target = os.fspath(path)
    try:
        info = os.stat(target)
    except (FileNotFoundError, NotADirectoryError) as exc:
        # A dangling symlink still names a non-directory entry.
        if os.path.lexists(target):
            return PathClassification.FILE
        raise NotFoundError(f"No such file or directory: {target}", path=target) from exc
    except (OSError, ValueError) as exc:
        raise AccessError(f"Unable to read metadata for {target}: {exc}", path=target) from exc
    if not stat.S_ISDIR(info.st_mode):
        return PathClassification.FILE

    try:
        with os.scandir(target) as children:
            for child in children:
                if not child.is_dir():
                    return PathClassification.DIRECTORY_OF_FILES
    except (FileNotFoundError, NotADirectoryError) as exc:
        raise NotFoundError(f"No such directory: {target}", path=target) from exc
    except OSError as exc:
        raise AccessError(f"Unable to list {target}: {exc}", path=target) from exc
    return PathClassification.DIRECTORY_OF_DIRECTORIES
