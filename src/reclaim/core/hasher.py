"""Chunked content hashing."""

from __future__ import annotations

import hashlib
import logging
import os

from reclaim.core.errors import ReadFailure
from reclaim.models.deletion_outcome import ErrorKind

log = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1 MiB


class ContentHasher:
    """Computes a SHA-256 digest of a file's bytes.

    Files are read in fixed-size chunks so peak memory does not depend on
    file size.  Instances hold no per-file state and can be shared between
    worker threads.
    """

    def __init__(self, algorithm: str = "sha256", chunk_size: int = CHUNK_SIZE) -> None:
        hashlib.new(algorithm)  # fail early on unknown algorithms
        self.algorithm = algorithm
        self.chunk_size = chunk_size

    def hash(self, path: str | os.PathLike, expected_size: int | None = None) -> bytes:
        """Return the digest of *path*.

        Args:
            path: File to read.
            expected_size: Size recorded at enumeration time.  A different
                byte count means the file changed underneath us.

        Raises:
            ReadFailure: The file disappeared, changed size, or could not be read.
        """
        h = hashlib.new(self.algorithm)
        read = 0
        try:
            with open(path, "rb") as f:
                while chunk := f.read(self.chunk_size):
                    h.update(chunk)
                    read += len(chunk)
        except FileNotFoundError as e:
            raise ReadFailure(os.fspath(path), ErrorKind.PATH_GONE_RACE, e.strerror or "file vanished") from e
        except OSError as e:
            raise ReadFailure(os.fspath(path), ErrorKind.PATH_UNREADABLE, e.strerror or str(e)) from e

        if expected_size is not None and read != expected_size:
            raise ReadFailure(
                os.fspath(path),
                ErrorKind.PATH_GONE_RACE,
                f"size changed during scan ({expected_size} -> {read} bytes)",
            )
        return h.digest()
