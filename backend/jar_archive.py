"""
Read-only view over a mod JAR (zip container).

Only the central directory is parsed on open; entry content is read when asked for,
and never beyond ``max_entry_bytes`` of decompressed data per entry.
"""

import io
import logging
import zipfile
from typing import Iterator, Optional

from config import MAX_ENTRY_BYTES

logger = logging.getLogger(__name__)


class InvalidArchive(Exception):
    """Raised when the input bytes are not a readable zip container."""


class JarArchive:
    def __init__(self, zf: zipfile.ZipFile, label: str = "", max_entry_bytes: Optional[int] = None):
        self._zf = zf
        self.label = label
        self.max_entry_bytes = MAX_ENTRY_BYTES if max_entry_bytes is None else max_entry_bytes
        self._names = zf.namelist()
        self._by_name = {info.filename: info for info in zf.infolist()}

    @classmethod
    def from_bytes(cls, data: bytes, label: str = "", max_entry_bytes: Optional[int] = None) -> "JarArchive":
        try:
            zf = zipfile.ZipFile(io.BytesIO(data), "r")
        except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError, OSError) as e:
            raise InvalidArchive(str(e) or "not a zip archive") from e
        return cls(zf, label=label, max_entry_bytes=max_entry_bytes)

    def __enter__(self) -> "JarArchive":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._zf.close()

    @property
    def names(self) -> list[str]:
        return list(self._names)

    def get(self, name: str) -> Optional[zipfile.ZipInfo]:
        """Exact-name lookup; directory entries are not considered files."""
        info = self._by_name.get(name)
        if info is None or info.is_dir():
            return None
        return info

    def has_file(self, name: str) -> bool:
        return self.get(name) is not None

    def find(self, name: str, case_insensitive: bool = False) -> Optional[str]:
        """Return the stored entry name matching ``name``, or None."""
        if self.has_file(name):
            return name
        if case_insensitive:
            wanted = name.lower()
            for candidate in self._names:
                if candidate.lower() == wanted and self.has_file(candidate):
                    return candidate
        return None

    def class_entries(self) -> Iterator[str]:
        for name in self._names:
            if name.lower().endswith(".class"):
                yield name

    def read_bytes(self, name: str) -> Optional[bytes]:
        info = self.get(name)
        if info is None:
            return None
        where = self.label or "archive"
        limit = self.max_entry_bytes
        if info.file_size > limit:
            logger.debug(f"Skipping {name} from {where}: {info.file_size} bytes exceeds {limit}")
            return None
        try:
            # The header size can lie; never decompress past the limit.
            with self._zf.open(info) as fh:
                data = fh.read(limit + 1)
        except (zipfile.BadZipFile, NotImplementedError, RuntimeError, OSError, EOFError) as e:
            # Corrupt entry, unsupported compression, or encrypted member
            logger.debug(f"Cannot read {name} from {where}: {e}")
            return None
        if len(data) > limit:
            logger.debug(f"Skipping {name} from {where}: decompresses past {limit} bytes")
            return None
        return data

    def read_text(self, name: str, encoding: str = "utf-8", errors: str = "ignore") -> Optional[str]:
        """Best-effort decode of an entry. None means the caller should skip it."""
        raw = self.read_bytes(name)
        if raw is None:
            return None
        try:
            return raw.decode(encoding, errors=errors)
        except (UnicodeDecodeError, LookupError) as e:
            logger.debug(f"Cannot decode {name} from {self.label or 'archive'}: {e}")
            return None
