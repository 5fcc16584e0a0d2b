"""
Data model for a collection being prepared.

A `CollectionState` owns the list of remote capture files (`FileReference`),
the pages found in their crawls (`CrawledPage`), and the final page index
(`PageEntry`) handed to the container writer.
"""

from dataclasses import dataclass, field, asdict
from typing import Optional, List, Dict


PATCH_BATCH_MARKER = "MISSING_URLS_PATCH"


@dataclass
class CrawledPage:
    seed_id: Optional[int] = None
    url: Optional[str] = None
    timestamp: Optional[str] = None  # raw, ex: "2021-04-30 20:04:57.635000"
    title: Optional[str] = None


@dataclass
class FileReference:
    """
    Reference to a capture file listed by the remote platform.

    `filename` is the join key between the remote listing, the working
    directory and every later stage. `downloaded` stays None until the
    first checksum pass.
    """

    filename: str
    download_url: Optional[str] = None
    remote_checksum: Optional[str] = None
    local_checksum: Optional[str] = None
    crawl_id: Optional[int] = None
    downloaded: Optional[bool] = None
    crawled_pages: List[CrawledPage] = field(default_factory=list)

    @property
    def is_patch_batch(self) -> bool:
        """Patch batches carry synthetic entries without meaningful titles."""
        return PATCH_BATCH_MARKER in self.filename


@dataclass(frozen=True)
class PageEntry:
    url: str
    title: str
    ts: str  # "YYYY-MM-DDTHH:MM:SSZ"

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass
class CollectionState:
    collection_id: int
    working_dir: str
    container_path: str
    collection_title: Optional[str] = None
    collection_description: Optional[str] = None
    file_references: List[FileReference] = field(default_factory=list)
    page_entries: List[PageEntry] = field(default_factory=list)

    def not_downloaded(self) -> List[FileReference]:
        return [ref for ref in self.file_references if ref.downloaded is not True]

    def crawled_pages_count(self) -> int:
        return sum(len(ref.crawled_pages) for ref in self.file_references)
