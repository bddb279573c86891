"""
Pending-commit staging for processed filenames.

Workers never write the tracker. Each one drops a small artifact per file it
fully handled into a run-scoped directory; the coordinator drains that
directory once, after every worker finished, and commits the result.

Artifacts are named after a digest of the filename, so a retried worker
rewrites its own artifact instead of adding a second one. Staging
directories are transient: they are deleted after finalization and, as a
fallback, when the interpreter exits.
"""

import atexit
import hashlib
import logging
import threading
from dataclasses import dataclass
from typing import Dict, Set, Tuple

from fsspec import AbstractFileSystem

from core.exceptions import StagingWriteError, FinalizeDrainError

logger = logging.getLogger(__name__)

IN_PROGRESS_SUFFIX = ".inprogress"

_cleanup_lock = threading.Lock()
_pending_cleanup: Dict[str, Tuple[AbstractFileSystem, str]] = {}


def _delete_on_exit(fs: AbstractFileSystem, path: str) -> None:
    with _cleanup_lock:
        _pending_cleanup[path] = (fs, path)


def _cancel_delete_on_exit(path: str) -> None:
    with _cleanup_lock:
        _pending_cleanup.pop(path, None)


@atexit.register
def _cleanup_staging_areas() -> None:
    with _cleanup_lock:
        pending = list(_pending_cleanup.values())
        _pending_cleanup.clear()
    for fs, path in pending:
        try:
            if fs.exists(path):
                fs.rm(path, recursive=True)
        except Exception as e:
            logger.warning(f"Could not remove staging directory {path} at exit: {e}")


def artifact_name(filename: str) -> str:
    return hashlib.sha256(filename.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class StagingArea:
    """Handle to the staging directory of one run"""
    run_id: str
    path: str


class PendingCommitStaging:
    """Run-scoped staging of processed filenames on an fsspec filesystem"""

    def __init__(self, fs: AbstractFileSystem, root: str):
        self.fs = fs
        self.root = root.rstrip("/") or "/"

    def create_staging_area(self, run_id: str) -> StagingArea:
        """Create (or reuse) the staging directory for ``run_id``"""
        path = f"{self.root}/{run_id}" if self.root != "/" else f"/{run_id}"
        self.fs.makedirs(path, exist_ok=True)
        _delete_on_exit(self.fs, path)
        logger.info(f"Staging processed files in {path}")
        return StagingArea(run_id=run_id, path=path)

    def record_processed(self, area: StagingArea, filename: str) -> str:
        """
        Stage one processed filename.

        Safe to call concurrently for different files. Calling it again for
        the same file overwrites the same artifact.

        Raises:
            StagingWriteError: If the artifact cannot be written
        """
        target = f"{area.path}/{artifact_name(filename)}"
        temp = target + IN_PROGRESS_SUFFIX
        try:
            self.fs.pipe_file(temp, filename.encode("utf-8"))
            self.fs.mv(temp, target)
        except Exception as e:
            raise StagingWriteError(
                "Failed to stage processed file",
                context={"staging_path": area.path, "filename": filename},
                original_exception=e
            )
        logger.debug(f"Staged {filename} as {target}")
        return target

    def drain(self, area: StagingArea) -> Set[str]:
        """
        Read every staged filename of the run.

        A missing or empty directory yields an empty set. Artifacts that
        cannot be read are logged and skipped.

        Raises:
            FinalizeDrainError: If the directory cannot be listed
        """
        try:
            if not self.fs.exists(area.path):
                return set()
            entries = self.fs.ls(area.path, detail=False)
        except Exception as e:
            raise FinalizeDrainError(
                "Failed to list staging directory",
                context={"staging_path": area.path},
                original_exception=e
            )

        filenames: Set[str] = set()
        for entry in entries:
            if entry.endswith(IN_PROGRESS_SUFFIX):
                continue
            try:
                filenames.add(self.fs.cat_file(entry).decode("utf-8"))
            except Exception as e:
                logger.error(f"Skipping unreadable staging artifact {entry}: {e}")

        logger.info(f"Drained {len(filenames)} processed files from {area.path}")
        return filenames

    def discard(self, area: StagingArea) -> None:
        """Delete the staging directory; failures are only logged"""
        try:
            if self.fs.exists(area.path):
                self.fs.rm(area.path, recursive=True)
            _cancel_delete_on_exit(area.path)
        except Exception as e:
            logger.warning(f"Could not remove staging directory {area.path}, left for exit cleanup: {e}")
