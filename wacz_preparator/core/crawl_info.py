"""
Crawl and seed information for capture files.
"""

import logging
from typing import List, Optional

from .client import ArchiveItClient
from .errors import DataError
from .models import FileReference, CrawledPage
from ..utils.batcher import RateLimitedBatcher, BatchOutcome


class CrawlInfoEnricher:
    """
    Attaches the seeds captured by each file's crawl as `CrawledPage` entries.

    Runs up to `batcher.limit` requests in parallel. A failing crawl report
    only leaves that file without pages.
    """

    ENDPOINT = "/api/reports/seed/{crawl_id}"

    def __init__(self, client: ArchiveItClient, batcher: RateLimitedBatcher, logger: Optional[logging.Logger] = None):
        self.client = client
        self.batcher = batcher
        self.logger = logger or logging.getLogger(__name__)

    def fetch_one(self, ref: FileReference):
        self.logger.info(f"{ref.filename}: pulling crawl info")

        url = self.client.api_url(self.ENDPOINT.format(crawl_id=ref.crawl_id))
        parsed = self.client.get_json(url)

        if not isinstance(parsed, list):
            raise DataError(f"Unexpected crawl report for crawl ID {ref.crawl_id} at {url}")

        pages = []
        for seed in parsed:
            if not isinstance(seed, dict):
                continue
            pages.append(CrawledPage(
                seed_id=seed.get('seed_id'),
                url=seed.get('seed'),
                timestamp=seed.get('timestamp'),
            ))
        ref.crawled_pages.extend(pages)

    def enrich(self, references: List[FileReference]) -> List[BatchOutcome[FileReference]]:
        """
        Pull crawl info for every reference that has a crawl id.

        Returns:
            One outcome per reference that was queried
        """
        candidates = [ref for ref in references if ref.crawl_id is not None]
        skipped = len(references) - len(candidates)
        if skipped:
            self.logger.debug(f"{skipped} entries have no crawl id -- no crawl info to pull")

        outcomes = self.batcher.run(candidates, self.fetch_one, describe=lambda ref: ref.filename)

        failed = sum(1 for outcome in outcomes if not outcome.ok)
        if failed:
            self.logger.warning(f"Crawl info could not be pulled for {failed} of {len(candidates)} entries")
        return outcomes
