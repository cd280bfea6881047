# ABOUTME: In-memory ZIP container reading and writing for EPUB and export bundles.
# ABOUTME: Supports a stored (uncompressed) leading entry and path-addressed member lookup.

import io
import zipfile
import zlib

from zenpub.formats.errors import FormatError

# Raised by zipfile for a member whose compressed data or CRC is damaged.
_ENTRY_READ_ERRORS = (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError)


class ArchiveWriter:
    """Builds a ZIP archive in memory.

    Entries are written in call order. Use ``add_stored`` for entries that
    must not be compressed (the EPUB ``mimetype`` entry).
    """

    def __init__(self) -> None:
        self._buffer = io.BytesIO()
        self._zip = zipfile.ZipFile(self._buffer, "w", zipfile.ZIP_DEFLATED)

    def add_stored(self, name: str, data: str | bytes) -> None:
        """Add an entry without compression."""
        info = zipfile.ZipInfo(name)
        info.compress_type = zipfile.ZIP_STORED
        self._zip.writestr(info, _as_bytes(data))

    def add(self, name: str, data: str | bytes) -> None:
        """Add a deflate-compressed entry. Text is encoded as UTF-8."""
        self._zip.writestr(name, _as_bytes(data), compress_type=zipfile.ZIP_DEFLATED)

    def getvalue(self) -> bytes:
        """Finalize the archive and return its bytes.

        The writer cannot be used after this call.
        """
        try:
            self._zip.close()
            return self._buffer.getvalue()
        finally:
            self._buffer.close()

    def close(self) -> None:
        """Discard the archive without producing output."""
        self._zip.close()
        self._buffer.close()


class ArchiveReader:
    """Read-only, path-addressed view over a ZIP archive held in memory."""

    def __init__(self, data: bytes) -> None:
        try:
            self._zip = zipfile.ZipFile(io.BytesIO(data))
        except zipfile.BadZipFile as exc:
            raise FormatError(f"Not a ZIP archive: {exc}") from exc
        self._names = {info.filename: info for info in self._zip.infolist()}

    def __enter__(self) -> "ArchiveReader":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._zip.close()

    def names(self) -> list[str]:
        """Entry names in archive order."""
        return [info.filename for info in self._zip.infolist()]

    def infolist(self) -> list[zipfile.ZipInfo]:
        return self._zip.infolist()

    def has(self, path: str) -> bool:
        return _normalize(path) in self._names

    def read_bytes(self, path: str) -> bytes | None:
        """Return the entry's bytes, or None when the archive has no such entry.

        Raises:
            FormatError: If the entry exists but cannot be decompressed.
        """
        info = self._names.get(_normalize(path))
        if info is None:
            return None
        try:
            return self._zip.read(info)
        except _ENTRY_READ_ERRORS as exc:
            raise FormatError(f"Unreadable archive entry {info.filename}: {exc}") from exc

    def read_text(self, path: str) -> str | None:
        """Return the entry decoded as UTF-8 (BOM tolerated), or None if absent."""
        raw = self.read_bytes(path)
        if raw is None:
            return None
        return raw.decode("utf-8-sig", errors="replace")


def _normalize(path: str) -> str:
    return path.lstrip("/")


def _as_bytes(data: str | bytes) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else data
