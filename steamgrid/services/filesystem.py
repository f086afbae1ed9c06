"""File system service for grid image persistence."""

from pathlib import Path

import structlog

from .errors import StorageError

log = structlog.stdlib.get_logger()


class FileSystemService:
    """Service for file system operations with error handling and logging.

    All ``OSError`` failures are re-raised as ``StorageError``.
    """

    async def read_bytes(self, path: Path) -> bytes:
        """Read a whole file.

        Args:
            path: Path to the file

        Returns:
            The file content

        Raises:
            StorageError: If the file cannot be read
        """
        try:
            data = path.read_bytes()
        except OSError as e:
            log.error("Failed to read file", path=str(path), error=str(e))
            raise StorageError(
                f"Could not read {path.name}",
                path=str(path),
                operation="read",
                original_error=e,
            ) from e

        log.debug("File read", path=str(path), size=len(data))
        return data

    async def write_bytes(self, data: bytes, path: Path) -> None:
        """Write a file through a temporary sibling and an atomic rename.

        A crash never leaves a half-written image under ``path``.

        Args:
            data: Content to write
            path: Destination path

        Raises:
            StorageError: If the file cannot be written
        """
        temp_path = path.with_name(path.name + ".tmp")
        try:
            self.ensure_directory(path.parent)
            temp_path.write_bytes(data)
            temp_path.replace(path)
        except OSError as e:
            log.error("Failed to write file", path=str(path), error=str(e))
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError:
                    log.warning("Failed to clean up temporary file", path=str(temp_path))
            raise StorageError(
                f"Could not write {path.name}",
                path=str(path),
                operation="write",
                original_error=e,
            ) from e

        log.debug("File written", path=str(path), size=len(data))

    def exists(self, path: Path) -> bool:
        return path.is_file()

    def ensure_directory(self, path: Path) -> None:
        """Ensure that a directory exists, creating it if necessary.

        Raises:
            OSError: If the path exists and is not a directory, or cannot be created
        """
        if path.exists():
            if not path.is_dir():
                raise NotADirectoryError(f"Path exists but is not a directory: {path}")
            return

        path.mkdir(parents=True, exist_ok=True)
        log.info("Directory created", path=str(path))

    def list_files(self, directory: Path) -> list[Path]:
        """List regular files in a directory, sorted by name.

        Hidden files are left out. Sorting makes the order independent of the
        platform's directory listing order.

        Raises:
            StorageError: If the directory cannot be listed
        """
        try:
            files = [
                entry for entry in directory.iterdir()
                if entry.is_file() and not entry.name.startswith(".")
            ]
        except OSError as e:
            log.error("Failed to list files", directory=str(directory), error=str(e))
            raise StorageError(
                f"Could not list {directory}",
                path=str(directory),
                operation="list",
                original_error=e,
            ) from e

        files.sort(key=lambda entry: entry.name)
        log.debug("Listed files in directory", directory=str(directory), count=len(files))
        return files
