"""Disk usage aggregation for the shared data directory."""

from __future__ import annotations

import asyncio
import logging
import os
import stat
from pathlib import Path

from storj_farmer.errors import FilesystemError

log = logging.getLogger(__name__)


def _scan(path: str) -> tuple[int, list[str]]:
    """Read one directory: return the summed size of its regular files and
    the paths of its subdirectories. Symlinks are neither followed nor counted.
    """
    files_total = 0
    subdirs: list[str] = []
    with os.scandir(path) as it:
        for entry in it:
            try:
                if entry.is_symlink():
                    continue
                if entry.is_dir(follow_symlinks=False):
                    subdirs.append(entry.path)
                elif entry.is_file(follow_symlinks=False):
                    files_total += entry.stat(follow_symlinks=False).st_size
            except OSError as exc:
                # entry vanished or became unreadable mid-walk
                log.debug("Skipping %s: %s", entry.path, exc)
    return files_total, subdirs


class StorageSizeAggregator:
    """Measures how many bytes are consumed under a directory tree.

    The walk keeps an explicit stack of pending directories rather than
    recursing, and every directory read runs in a worker thread so the
    event loop stays responsive on slow disks. Directory entries contribute
    their own ``st_size`` as metadata overhead.
    """

    async def measure(self, root: str | Path) -> int:
        """Total bytes used under ``root``.

        A symlinked ``root`` is resolved to its target. Returns 0 if
        ``root`` does not exist. Raises FilesystemError only
        when ``root`` itself exists but cannot be read; unreadable
        descendants are skipped.
        """
        root = str(Path(root).expanduser())
        try:
            # follow a symlinked root; descendants are never followed
            st = await asyncio.to_thread(os.stat, root)
        except FileNotFoundError:
            log.debug("Storage path %s does not exist", root)
            return 0
        except OSError as exc:
            raise FilesystemError(root, exc) from exc

        if stat.S_ISREG(st.st_mode):
            return st.st_size
        if not stat.S_ISDIR(st.st_mode):
            return 0

        try:
            files_total, pending = await asyncio.to_thread(_scan, root)
        except FileNotFoundError:
            return 0
        except OSError as exc:
            raise FilesystemError(root, exc) from exc

        total = st.st_size + files_total
        skipped = 0
        while pending:
            path = pending.pop()
            try:
                dir_st = await asyncio.to_thread(os.lstat, path)
                files_total, subdirs = await asyncio.to_thread(_scan, path)
            except OSError as exc:
                skipped += 1
                log.debug("Skipping unreadable directory %s: %s", path, exc)
                continue
            total += dir_st.st_size + files_total
            pending.extend(subdirs)

        if skipped:
            log.warning("Skipped %d unreadable directories under %s", skipped, root)
        return total
