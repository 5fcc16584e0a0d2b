"""
Local state reconciliation.

Brings the working directory in line with the remote listing: capture files
no longer part of the collection are deleted, files already present are
checked against the remote SHA-1, and corrupted ones are deleted so they
get downloaded again.
"""

import hashlib
import logging
from typing import Dict, List, Optional

from .errors import IntegrityError
from .logger import TRACE
from .models import FileReference
from ..utils.file_manager import WorkingDirectory


CHUNK_SIZE = 1024 * 1024


def sha1_file(path: str) -> str:
    """Hex SHA-1 digest of a file, read in chunks."""
    digest = hashlib.sha1()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b''):
            digest.update(chunk)
    return digest.hexdigest()


class LocalStateReconciler:
    def __init__(self, working_dir: WorkingDirectory, logger: Optional[logging.Logger] = None):
        self.working_dir = working_dir
        self.logger = logger or logging.getLogger(__name__)

    def delete_loose(self, references: List[FileReference]) -> List[str]:
        """
        Delete capture files present on disk but not referenced in the collection.

        The comparison is based on filenames. Files that are not capture files
        are left alone.

        Returns:
            Names of the deleted files
        """
        in_collection = {ref.filename for ref in references}
        deleted = []

        for filename in self.working_dir.capture_files():
            if filename in in_collection:
                continue
            self.logger.info(f"{filename}: present on disk but not in collection, will be deleted")
            self.working_dir.remove(filename)
            deleted.append(filename)

        return deleted

    def verify_checksums(self, references: List[FileReference]) -> Dict[str, int]:
        """
        Check local copies against their remote SHA-1 and flag what needs downloading.

        For each reference, sets `downloaded` to True only when the local file
        exists and matches the remote checksum. Mismatching files are deleted.
        Safe to run any number of times.

        Returns:
            Counts of verified, missing and corrupted files
        """
        stats = {'verified': 0, 'missing': 0, 'corrupted': 0}

        for ref in references:
            ref.local_checksum = None

            if not self.working_dir.exists(ref.filename):
                ref.downloaded = False
                stats['missing'] += 1
                continue

            filepath = self.working_dir.path_for(ref.filename)
            try:
                self.logger.info(f"{ref.filename}: present on disk, checking hash")
                ref.local_checksum = sha1_file(filepath)
            except OSError as e:
                self.logger.log(TRACE, f"Hashing {filepath} failed", exc_info=e)
                self.logger.error(f"{ref.filename}: error occurred while calculating SHA-1 hash")
                ref.downloaded = False
                stats['missing'] += 1
                continue

            if ref.local_checksum != (ref.remote_checksum or '').lower():
                mismatch = IntegrityError(ref.filename, ref.remote_checksum, ref.local_checksum)
                self.logger.error(f"{mismatch} -- deleting local copy")
                self.working_dir.remove(ref.filename)
                ref.downloaded = False
                stats['corrupted'] += 1
                continue

            ref.downloaded = True
            stats['verified'] += 1

        return stats
