"""
Post-process actions applied to a file once all of its records were emitted
"""

import io
import posixpath
import zipfile
from typing import Optional

from fsspec import AbstractFileSystem

from core.exceptions import FileActionError
from schemas.config import FileAction
import logging

logger = logging.getLogger(__name__)


def apply_file_action(
    fs: AbstractFileSystem,
    filename: str,
    action: FileAction,
    target_folder: Optional[str] = None
) -> Optional[str]:
    """
    Delete, archive or move a processed file.

    Returns:
        The new location of the file (archive or move), else None

    Raises:
        FileActionError: If the filesystem operation fails
    """
    if action == FileAction.NONE:
        return None

    name = posixpath.basename(filename)
    destination = None

    try:
        if action == FileAction.DELETE:
            fs.rm(filename)

        elif action == FileAction.MOVE:
            destination = f"{target_folder.rstrip('/')}/{name}"
            fs.mv(filename, destination)

        elif action == FileAction.ARCHIVE:
            destination = f"{target_folder.rstrip('/')}/{name}.zip"
            buffer = io.BytesIO()
            with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
                archive.writestr(name, fs.cat_file(filename))
            fs.pipe_file(destination, buffer.getvalue())
            fs.rm(filename)

    except Exception as e:
        raise FileActionError(
            f"Failed to {action.value.lower()} {filename}",
            context={
                "filename": filename,
                "action": action.value,
                "target_folder": target_folder
            },
            original_exception=e
        )

    logger.info(f"{action.value} {filename}" + (f" -> {destination}" if destination else ""))
    return destination
