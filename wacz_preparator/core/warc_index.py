"""
WARC listing through Archive-It's WASAPI endpoint.

This module pages through every capture file of a collection and turns
each listing entry into a `FileReference`.
"""

import logging
import os
from typing import Any, Dict, List, Optional

from .client import ArchiveItClient
from .errors import NetworkError
from .models import CollectionState, FileReference


class WARCIndexBuilder:
    """
    Builds the list of remote capture files for a collection.

    The listing is all-or-nothing: an incomplete index would make the
    reconciler delete local files that are still part of the collection.
    """

    ENDPOINT = "/wasapi/v1/webdata"
    PAGE_SIZE = 500

    def __init__(self, client: ArchiveItClient, state: CollectionState, logger: Optional[logging.Logger] = None):
        self.client = client
        self.state = state
        self.logger = logger or logging.getLogger(__name__)

    def fetch_all(self) -> List[FileReference]:
        """
        List every capture file of the collection.

        Replaces `state.file_references` only once every page was read.

        Returns:
            The new list of file references

        Raises:
            NetworkError: If any listing page fails
        """
        url = self.client.api_url(self.ENDPOINT)
        params: Dict[str, Any] = {
            'page': 1,
            'page_size': self.PAGE_SIZE,
            'collection': self.state.collection_id,
        }

        references: List[FileReference] = []
        seen = set()

        while True:
            parsed = self.client.get_json(url, params=dict(params))
            if not isinstance(parsed, dict):
                raise NetworkError(f"Unexpected listing payload from {url} (page {params['page']})", url=url)

            files = parsed.get('files') or []
            self.logger.debug(f"Listing page {params['page']}: {len(files)} entries")

            for entry in files:
                ref = self._parse_entry(entry)
                if ref is None:
                    continue
                if ref.filename in seen:
                    self.logger.warning(f"{ref.filename}: listed more than once -- keeping first entry")
                    continue
                seen.add(ref.filename)
                references.append(ref)

            # Is there a "next" results page?
            if parsed.get('next'):
                params['page'] += 1
            else:
                break

        self.state.file_references = references
        return references

    def _parse_entry(self, entry: Any) -> Optional[FileReference]:
        if not isinstance(entry, dict) or not entry.get('filename'):
            self.logger.warning(f"Listing entry without filename -- skipping: {entry!r}")
            return None

        filename = entry['filename']
        # Filenames are joined onto the working directory: plain names only
        if (not isinstance(filename, str) or os.path.basename(filename) != filename
                or '\\' in filename or filename in ('.', '..')):
            self.logger.warning(f"Listing entry with unsafe filename -- skipping: {filename!r}")
            return None

        locations = entry.get('locations') or []
        checksums = entry.get('checksums') or {}

        return FileReference(
            filename=filename,
            download_url=locations[0] if locations else None,
            remote_checksum=checksums.get('sha1'),
            crawl_id=entry.get('crawl'),
        )
