"""In-memory ZIP archive assembly for exported documents."""

import io
import zipfile
from pathlib import PurePosixPath


class ArchiveBuilder:
    """Collects (filename, bytes) pairs and produces one ZIP buffer."""

    def __init__(self):
        self._buffer = io.BytesIO()
        self._zip = zipfile.ZipFile(self._buffer, mode="w", compression=zipfile.ZIP_DEFLATED)
        self._names: set[str] = set()
        self._data: bytes | None = None

    def __len__(self) -> int:
        return len(self._names)

    def add(self, filename: str, payload: bytes) -> str:
        """Add one file, renaming it when the name is already taken.

        Returns:
            The entry name actually written
        """
        if self._data is not None:
            raise RuntimeError("Archive already finalized")
        name = self._unique_name(_safe_name(filename))
        self._zip.writestr(name, payload)
        self._names.add(name)
        return name

    def finalize(self) -> bytes:
        """Close the archive and return its bytes."""
        if self._data is None:
            self._zip.close()
            self._data = self._buffer.getvalue()
        return self._data

    def _unique_name(self, name: str) -> str:
        if name not in self._names:
            return name
        path = PurePosixPath(name)
        counter = 2
        while f"{path.stem} ({counter}){path.suffix}" in self._names:
            counter += 1
        return f"{path.stem} ({counter}){path.suffix}"


def _safe_name(filename: str) -> str:
    # Drive titles may contain slashes, which would create directories
    cleaned = filename.replace("/", "_").replace("\\", "_").strip()
    return cleaned or "untitled"
