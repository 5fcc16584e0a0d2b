"""
Capture File Download Module

This module downloads the capture files that are missing from the working
directory (or were deleted for failing their checksum), streaming each
response body to disk.
"""

import logging
from typing import List, Optional

import requests

from .client import ArchiveItClient
from .errors import NetworkError, StorageError
from .models import FileReference
from ..utils.batcher import RateLimitedBatcher, BatchOutcome
from ..utils.file_manager import WorkingDirectory


class FetchEngine:
    """
    Downloads capture files, up to `batcher.limit` at a time.

    There is no byte-range resume: an interrupted download leaves a partial
    file behind, which the next checksum pass deletes.
    """

    CHUNK_SIZE = 64 * 1024

    def __init__(self,
                 client: ArchiveItClient,
                 working_dir: WorkingDirectory,
                 batcher: RateLimitedBatcher,
                 logger: Optional[logging.Logger] = None):
        self.client = client
        self.working_dir = working_dir
        self.batcher = batcher
        self.logger = logger or logging.getLogger(__name__)

    def fetch_one(self, ref: FileReference):
        """
        Pull a capture file and append it to disk chunk by chunk.

        Raises:
            NetworkError: On non-200 status or transport failure
            StorageError: If the file cannot be written
        """
        if not ref.download_url:
            raise NetworkError(f"{ref.filename}: no download location listed")

        self.logger.info(f"{ref.filename}: downloading ...")
        filepath = self.working_dir.path_for(ref.filename)

        response = self.client.get(ref.download_url, stream=True)
        try:
            if response.status_code != 200:
                raise NetworkError(
                    f"Archive-It API responded with {response.status_code} for {ref.download_url}",
                    status_code=response.status_code,
                    url=ref.download_url,
                )
            size = 0
            try:
                with open(filepath, 'ab') as f:
                    for chunk in response.iter_content(chunk_size=self.CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
                            size += len(chunk)
            except requests.RequestException as e:
                raise NetworkError(f"{ref.filename}: download interrupted: {e}", url=ref.download_url) from e
            except OSError as e:
                raise StorageError(f"Failed to write {ref.filename} to disk: {e}") from e
        finally:
            response.close()

        self.logger.debug(f"{ref.filename}: {size} bytes written")

    def fetch_missing(self, references: List[FileReference]) -> List[BatchOutcome[FileReference]]:
        """
        Download every reference flagged `downloaded is False` that lists a
        download location. The others stay not downloaded.

        Returns:
            One outcome per attempted download
        """
        missing = [ref for ref in references if ref.downloaded is False]
        pending = [ref for ref in missing if ref.download_url]
        for ref in missing:
            if not ref.download_url:
                self.logger.warning(f"{ref.filename}: no download location listed -- skipping")

        if not pending:
            self.logger.info("No WARC files to download")
            return []

        self.logger.info(f"{len(pending)} of {len(references)} WARC files need to be downloaded")
        outcomes = self.batcher.run(pending, self.fetch_one, describe=lambda ref: ref.filename)

        failed = sum(1 for outcome in outcomes if not outcome.ok)
        if failed:
            self.logger.warning(f"{failed} downloads failed")
        return outcomes
