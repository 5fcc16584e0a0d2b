"""
Extractors: the platform-specific half of the pipeline.

The controller only talks to `BaseExtractor`. Each archiving platform
provides one implementation; Archive-It is the one shipped here.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from .client import ArchiveItClient
from .collection import CollectionResolver
from .config import PreparatorConfig
from .crawl_info import CrawlInfoEnricher
from .models import CollectionState, FileReference
from .titles import TitleResolver
from .warc_index import WARCIndexBuilder
from ..utils.batcher import RateLimitedBatcher


class BaseExtractor(ABC):
    """
    Platform capabilities needed to prepare a collection.

    Implementations read and write `state`; `client` is used by the
    controller to download capture files.
    """

    def __init__(self, state: CollectionState, client, logger: Optional[logging.Logger] = None):
        self.state = state
        self.client = client
        self.logger = logger or logging.getLogger(__name__)

    @abstractmethod
    def check_access(self):
        """Raise if the collection cannot be accessed with the given credentials."""

    @abstractmethod
    def fetch_collection_info(self):
        """Populate the collection title and description."""

    @abstractmethod
    def list_remote_files(self) -> List[FileReference]:
        """Populate `state.file_references` with the full remote listing."""

    @abstractmethod
    def enrich_crawl_info(self):
        """Attach crawled pages to the file references."""

    @abstractmethod
    def resolve_titles(self):
        """Find a title for every crawled page that can have one."""

    def close(self):
        close = getattr(self.client, 'close', None)
        if close:
            close()


class ArchiveItExtractor(BaseExtractor):
    """
    Archive-It implementation: collection API, WASAPI listing, crawl/seed
    reports and Wayback replay.
    """

    def __init__(self,
                 config: PreparatorConfig,
                 state: CollectionState,
                 client: Optional[ArchiveItClient] = None,
                 logger: Optional[logging.Logger] = None):
        logger = logger or logging.getLogger(__name__)
        client = client or ArchiveItClient(
            config.username,
            config.password,
            timeout=config.request_timeout,
            logger=logger,
        )
        super().__init__(state, client, logger)

        batcher = RateLimitedBatcher(config.concurrency, logger=logger)
        self.resolver = CollectionResolver(client, state, logger=logger)
        self.index_builder = WARCIndexBuilder(client, state, logger=logger)
        self.enricher = CrawlInfoEnricher(client, batcher, logger=logger)
        self.titles = TitleResolver(client, state.collection_id, batcher, logger=logger)

    def check_access(self):
        self.resolver.check_access()

    def fetch_collection_info(self):
        self.resolver.fetch_info()

    def list_remote_files(self) -> List[FileReference]:
        return self.index_builder.fetch_all()

    def enrich_crawl_info(self):
        self.enricher.enrich(self.state.file_references)

    def resolve_titles(self):
        self.titles.resolve(self.state.file_references)
