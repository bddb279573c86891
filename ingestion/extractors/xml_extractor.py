"""
XML file source: lists candidate files and extracts node records

Each element whose absolute path equals the configured node path becomes one
record holding the element's exact XML text and the byte offset of its start
tag within the file.
"""

import posixpath
import re
from typing import FrozenSet, Iterable, List, Optional
from xml.parsers import expat

from fsspec import AbstractFileSystem

from core.exceptions import XMLExtractionError
from schemas.config import GLOB_CHARACTERS
from schemas.records import XMLRecord
import logging

logger = logging.getLogger(__name__)

_ENCODING_DECLARATION = re.compile(rb"""^\s*<\?xml[^>]*encoding=["']([A-Za-z0-9._-]+)["']""")


def normalize_node_path(node_path: str) -> str:
    parts = [p for p in node_path.strip().split("/") if p]
    return "/" + "/".join(parts)


def _declared_encoding(data: bytes) -> str:
    match = _ENCODING_DECLARATION.match(data[:200])
    return match.group(1).decode("ascii") if match else "utf-8"


def extract_nodes(data: bytes, node_path: str, filename: str) -> List[XMLRecord]:
    """
    Extract every element at ``node_path`` from an XML document.

    Raises:
        XMLExtractionError: If the document is not well-formed
    """
    target = normalize_node_path(node_path)
    encoding = _declared_encoding(data)
    parser = expat.ParserCreate()
    stack: List[str] = []
    open_nodes: List[int] = []
    records: List[XMLRecord] = []

    def start_element(name, attrs):
        stack.append(name)
        if "/" + "/".join(stack) == target:
            open_nodes.append(parser.CurrentByteIndex)

    def end_element(name):
        if open_nodes and "/" + "/".join(stack) == target:
            begin = open_nodes.pop()
            end_tag = parser.CurrentByteIndex
            if data.startswith(b"</", end_tag):
                stop = data.index(b">", end_tag) + 1
            else:
                # Empty-element tag: expat reports the end just past "/>"
                stop = end_tag
            records.append(XMLRecord(
                offset=begin,
                filename=filename,
                record=data[begin:stop].decode(encoding, errors="replace")
            ))
        stack.pop()

    parser.StartElementHandler = start_element
    parser.EndElementHandler = end_element

    try:
        parser.Parse(data, True)
    except expat.ExpatError as e:
        raise XMLExtractionError(
            f"Malformed XML in {filename}",
            context={
                "filename": filename,
                "node_path": target,
                "line_number": e.lineno
            },
            original_exception=e
        )

    return records


class XMLFileSource:
    """
    Candidate file listing and per-file record extraction.

    Supports:
    - A single file, a directory (non-recursive) or a glob
    - Regex filtering on file names
    - Exclusion of previously processed files
    """

    def __init__(
        self,
        fs: AbstractFileSystem,
        path: str,
        node_path: str,
        pattern: Optional[str] = None,
        exclusions: Iterable[str] = ()
    ):
        self.fs = fs
        self.path = path
        self.node_path = node_path
        self.pattern = re.compile(pattern) if pattern else None
        self.exclusions = frozenset(exclusions)
        self.skipped: FrozenSet[str] = frozenset()

    def _candidates(self) -> List[str]:
        if any(c in self.path for c in GLOB_CHARACTERS):
            return [p for p in self.fs.glob(self.path) if self.fs.isfile(p)]

        info = self.fs.info(self.path)
        if info["type"] == "directory":
            return [
                entry["name"]
                for entry in self.fs.ls(self.path, detail=True)
                if entry["type"] == "file"
            ]
        return [info["name"]]

    def _eligible(self, filename: str) -> bool:
        name = posixpath.basename(filename)
        # Same convention as Hadoop's hidden-file filter
        if name.startswith(".") or name.startswith("_"):
            return False
        if self.pattern is not None and not self.pattern.search(name):
            return False
        return True

    def accepts(self, filename: str) -> bool:
        return self._eligible(filename) and filename not in self.exclusions

    def list_files(self) -> List[str]:
        candidates = sorted(self._candidates())
        files = [f for f in candidates if self.accepts(f)]
        # Files matched by the listing but already processed
        self.skipped = frozenset(f for f in candidates if self._eligible(f) and f in self.exclusions)
        logger.info(
            f"Found {len(files)} files to read under {self.path} "
            f"({len(candidates) - len(files)} filtered or excluded)"
        )
        return files

    def read_records(self, filename: str) -> List[XMLRecord]:
        """Read one file and return its node records"""
        try:
            data = self.fs.cat_file(filename)
        except Exception as e:
            raise XMLExtractionError(
                f"Failed to read {filename}",
                context={"filename": filename, "node_path": self.node_path},
                original_exception=e
            )
        records = extract_nodes(data, self.node_path, filename)
        logger.debug(f"Extracted {len(records)} records from {filename}")
        return records
