"""Atomic file writing for reports."""

import hashlib
from dataclasses import dataclass
from pathlib import Path

import structlog


logger = structlog.get_logger()


@dataclass(frozen=True)
class GeneratedFile:
    """Information about a written report file.

    Attributes:
        path: Path relative to the base directory.
        absolute_path: Absolute path to the file.
        bytes_written: Bytes written by this call.
        sha256: SHA-256 checksum of the full file content.
    """

    path: str
    absolute_path: str
    bytes_written: int
    sha256: str


class AtomicWriter:
    """Writes files through a temporary file and a rename.

    Readers see either the complete old file or the complete new file,
    never a partial write.
    """

    def __init__(self, base_dir: Path, run_id: str | None = None) -> None:
        """Initialize the atomic writer.

        Args:
            base_dir: Base directory for relative path calculation.
            run_id: Optional run ID for logging context.
        """
        self._base_dir = base_dir
        self._log = logger.bind(component="atomic_writer")
        if run_id:
            self._log = self._log.bind(run_id=run_id)

    def write(self, path: Path, content: str) -> GeneratedFile:
        """Replace a file's content.

        Args:
            path: Target file path.
            content: Content to write (encoded as UTF-8).

        Returns:
            GeneratedFile describing the result.
        """
        return self._replace(path, content, len(content.encode("utf-8")))

    def append(self, path: Path, content: str) -> GeneratedFile:
        """Append to a file, keeping whatever it already holds.

        Args:
            path: Target file path.
            content: Content to append (encoded as UTF-8).

        Returns:
            GeneratedFile describing the result.
        """
        existing = path.read_text(encoding="utf-8") if path.exists() else ""
        return self._replace(path, existing + content, len(content.encode("utf-8")))

    def _replace(self, path: Path, full_content: str, bytes_written: int) -> GeneratedFile:
        path.parent.mkdir(parents=True, exist_ok=True)
        sha256 = hashlib.sha256(full_content.encode("utf-8")).hexdigest()

        temp_path = path.with_suffix(path.suffix + ".tmp")
        temp_path.write_text(full_content, encoding="utf-8")
        temp_path.replace(path)

        try:
            relative_path = str(path.relative_to(self._base_dir))
        except ValueError:
            relative_path = str(path)

        self._log.debug(
            "file_written",
            path=relative_path,
            bytes=bytes_written,
            sha256=sha256[:12],
        )

        return GeneratedFile(
            path=relative_path,
            absolute_path=str(path.resolve()),
            bytes_written=bytes_written,
            sha256=sha256,
        )
