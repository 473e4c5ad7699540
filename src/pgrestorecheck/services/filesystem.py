"""Filesystem helpers for pgrestorecheck."""

import logging
import os
from typing import Set, Tuple

from pgrestorecheck.errors import MeasurementError


class FileSystemService:
    """Encapsulates directory checks and on-disk size measurement."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def is_readable_dir(self, path: str) -> bool:
        return os.path.isdir(path) and os.access(path, os.R_OK | os.X_OK)

    def disk_usage(self, path: str) -> int:
        """Allocated bytes under `path` as `du -s` counts them.

        Symlinks are not followed and hard-linked files are counted once.
        """
        if not os.path.exists(path):
            raise MeasurementError(f"Cannot measure {path}: path does not exist")

        seen: Set[Tuple[int, int]] = set()
        try:
            total = self._allocated(os.lstat(path), seen)
            if not os.path.isdir(path):
                return total

            for current_root, dirs, files in os.walk(path, onerror=self._raise_walk_error):
                for name in dirs + files:
                    try:
                        info = os.lstat(os.path.join(current_root, name))
                    except FileNotFoundError:
                        # engine may remove temp files while we walk
                        self.logger.debug("Vanished during measurement: %s", name)
                        continue
                    total += self._allocated(info, seen)
            return total
        except OSError as exc:
            raise MeasurementError(f"Cannot measure {path}: {exc}") from exc

    @staticmethod
    def _allocated(info: os.stat_result, seen: Set[Tuple[int, int]]) -> int:
        key = (info.st_dev, info.st_ino)
        if key in seen:
            return 0
        seen.add(key)
        return info.st_blocks * 512

    @staticmethod
    def _raise_walk_error(exc: OSError):
        raise exc
