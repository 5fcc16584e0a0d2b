"""
Page Title Resolution

This module finds a human-readable title for every crawled page:
- first from the seed's Archive-It metadata, when the page has a seed id,
- then by scraping the `<title>` of the archived page from the Archive-It
  Wayback replay service.

Both lookups are best-effort. A page without a title is left untitled and
is later excluded from the page index.
"""

import logging
import re
from typing import List, Optional
from urllib.parse import quote

from bs4 import BeautifulSoup

from .client import ArchiveItClient
from .collection import metadata_value
from .logger import TRACE
from .models import FileReference, CrawledPage
from ..utils.batcher import RateLimitedBatcher, BatchOutcome


# Title served by the replay service when the capture has no title of its own
PLACEHOLDER_TITLE = "Archive-it Wayback"

# Characters left unescaped when a URL is embedded as a single path component
_URI_COMPONENT_SAFE = "-_.!~*'()"


def replay_timestamp(raw: str) -> str:
    """
    Turn a crawl report timestamp into a replay URL timestamp.

    Example: "2019-09-18 22:11:28.058000" -> "20190918221128"
    """
    return re.sub(r'[ \-:]', '', raw[:19])


def extract_title(html: str) -> Optional[str]:
    """Text of the first `<title>` element, or None if missing or blank."""
    soup = BeautifulSoup(html, 'html.parser')
    title_tag = soup.find('title')
    if not title_tag:
        return None
    title = title_tag.get_text().strip()
    return title or None


class TitleResolver:
    """
    Resolves titles for the crawled pages of a collection.

    All candidate pages go through the batcher in a single pass, so groups
    are always full-size except for the last one.
    """

    SEED_ENDPOINT = "/api/seed/{seed_id}"

    def __init__(self,
                 client: ArchiveItClient,
                 collection_id: int,
                 batcher: RateLimitedBatcher,
                 logger: Optional[logging.Logger] = None):
        self.client = client
        self.collection_id = collection_id
        self.batcher = batcher
        self.logger = logger or logging.getLogger(__name__)

    def replay_url(self, page: CrawledPage) -> str:
        return (f"{self.client.PLAYBACK_URL}/{self.collection_id}"
                f"/{replay_timestamp(page.timestamp)}"
                f"/{quote(page.url, safe=_URI_COMPONENT_SAFE)}")

    def title_from_seed(self, page: CrawledPage) -> Optional[str]:
        """First attempt: the seed's metadata title."""
        if not page.seed_id:
            return None

        url = self.client.api_url(self.SEED_ENDPOINT.format(seed_id=page.seed_id))
        try:
            return metadata_value(self.client.get_json(url), 'Title')
        except Exception as e:
            self.logger.log(TRACE, f"Seed lookup failed for {page.seed_id}", exc_info=e)
            self.logger.warning(f"An error occurred while trying to pull seed information for {page.seed_id}")
            return None

    def title_from_replay(self, page: CrawledPage) -> Optional[str]:
        """Second attempt: the `<title>` of the archived page itself."""
        if not page.url or not page.timestamp:
            return None

        url = self.replay_url(page)
        try:
            response = self.client.get(url, authenticated=False)
            content_type = response.headers.get('content-type', '')
            if response.status_code != 200 or not content_type.lower().startswith('text/html'):
                self.logger.debug(f"No HTML replay for {page.url} ({response.status_code}, {content_type})")
                return None
            title = extract_title(response.text)
        except Exception as e:
            self.logger.log(TRACE, f"Replay lookup failed for {url}", exc_info=e)
            self.logger.warning(f"An error occurred while trying to retrieve the archived page title from {url}")
            return None

        return None if title == PLACEHOLDER_TITLE else title

    def resolve_one(self, page: CrawledPage):
        title = self.title_from_seed(page) or self.title_from_replay(page)

        if title:
            page.title = title
        else:
            self.logger.warning(f"No title found for {page.url}")

    def candidates(self, references: List[FileReference]) -> List[CrawledPage]:
        """Every crawled page outside of patch batches, in listing order."""
        pages = []
        for ref in references:
            if ref.is_patch_batch:
                continue
            pages.extend(ref.crawled_pages)
        return pages

    def resolve(self, references: List[FileReference]) -> List[BatchOutcome[CrawledPage]]:
        pages = self.candidates(references)
        self.logger.info(f"Resolving titles for {len(pages)} crawled pages")

        outcomes = self.batcher.run(pages, self.resolve_one, describe=lambda page: str(page.url))

        titled = sum(1 for page in pages if page.title)
        self.logger.info(f"Titles found for {titled} of {len(pages)} crawled pages")
        return outcomes
