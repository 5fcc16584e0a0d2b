"""
Working Directory Management

This module manages the per-collection folder where capture files are
staged before being packaged. The folder is addressed by collection id, so
repeated runs on the same collection reuse (and reconcile) the same files.
"""

import os
import shutil
from pathlib import Path
from typing import List, Dict, Any
import logging

from ..core.errors import StorageError


class WorkingDirectory:
    """
    Staging folder for one collection's capture files.
    """

    def __init__(self, path: str, capture_extension: str = ".warc.gz", logger: logging.Logger = None):
        """
        Args:
            path: Folder holding the capture files (`<output>/<collection id>`)
            capture_extension: Extension identifying capture files
        """
        self.path = Path(path)
        self.capture_extension = capture_extension
        self.logger = logger or logging.getLogger(__name__)

    def ensure(self):
        """
        Create the folder if needed and check that it is writable.

        Raises:
            StorageError: If the folder cannot be created or written to
        """
        if self.path.is_dir():
            self.logger.info(f"Collection folder {self.path} already exists")
        else:
            self.logger.info(f"Collection folder {self.path} needs to be created")
            try:
                self.path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageError(f"Collection folder {self.path} could not be created: {e}") from e

        if not os.access(self.path, os.W_OK):
            raise StorageError(f"Collection folder {self.path} is not writable")

    def path_for(self, filename: str) -> str:
        return str(self.path / filename)

    def exists(self, filename: str) -> bool:
        return (self.path / filename).is_file()

    def capture_files(self) -> List[str]:
        """Names of the capture files currently in the folder, sorted."""
        return sorted(
            entry.name for entry in self.path.iterdir()
            if entry.is_file() and entry.name.endswith(self.capture_extension)
        )

    def remove(self, filename: str):
        (self.path / filename).unlink()

    @property
    def input_glob(self) -> str:
        """Glob matching every capture file of the folder."""
        return str(self.path / f"*{self.capture_extension}")

    def get_output_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the folder.

        Returns:
            Dictionary with the capture file count and total size
        """
        stats = {'capture_files': 0, 'total_size': 0, 'path': str(self.path)}
        if self.path.is_dir():
            names = self.capture_files()
            stats['capture_files'] = len(names)
            stats['total_size'] = sum((self.path / name).stat().st_size for name in names)
        return stats

    def clear(self):
        """Delete the folder and its contents."""
        if self.path.exists():
            shutil.rmtree(self.path)
            self.logger.info(f"Removed collection folder {self.path}")
