"""
Page index for the WACZ pages.jsonl.

See: https://specs.webrecorder.net/wacz/1.1.1/#pages-jsonl
"""

import logging
import re
from datetime import datetime, timezone
from typing import List, Optional

from .models import FileReference, PageEntry


def normalize_timestamp(timestamp: Optional[str]) -> Optional[str]:
    """
    Normalize a crawl report timestamp to second-precision UTC.

    Timestamps from crawl info are ill-formatted (ex: "2021-04-30 20:04:57.635000"),
    which becomes "2021-04-30T20:04:57Z".

    Returns:
        The normalized timestamp, or None if it cannot be parsed
    """
    if not isinstance(timestamp, str):
        return None

    # Output has second precision; fractions of any length are dropped
    timestamp = re.sub(r'(\d{2}:\d{2}:\d{2})\.\d+', r'\1', timestamp, count=1)

    # Crawl report times are UTC but carry no offset
    try:
        parsed = datetime.fromisoformat(timestamp.replace(' ', 'T', 1) + '+00:00')
    except ValueError:
        return None

    return parsed.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


class PageIndexBuilder:
    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def build(self, references: List[FileReference]) -> List[PageEntry]:
        """
        Build the page entries, in listing order.

        Skips patch batches, untitled pages, and pages whose timestamp
        cannot be normalized.
        """
        pages: List[PageEntry] = []
        dropped = 0

        for ref in references:
            if ref.is_patch_batch:
                continue

            for crawl in ref.crawled_pages:
                if not crawl.title or not crawl.url:
                    continue

                ts = normalize_timestamp(crawl.timestamp)
                if ts is None:
                    dropped += 1
                    self.logger.debug(f"{crawl.url}: unparseable timestamp {crawl.timestamp!r} -- skipping")
                    continue

                pages.append(PageEntry(url=crawl.url, title=crawl.title, ts=ts))

        if dropped:
            self.logger.warning(f"{dropped} pages skipped because of invalid timestamps")
        return pages
