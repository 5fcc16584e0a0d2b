"""
wacz-preparator Orchestrator: runs the end-to-end preparation of a collection.

Stages run strictly in order. Most of them gate the run: the first error
stops it and leaves the working directory as is, so that a later run can
resume. Crawl info and page titles only enrich the page index, so their
errors are logged and the run continues.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .config import PreparatorConfig
from .container import ContainerAssembler
from .extractors import ArchiveItExtractor, BaseExtractor
from .fetcher import FetchEngine
from .logger import ErrorTracker, get_logger
from .models import CollectionState, PageEntry
from .pages import PageIndexBuilder
from .reconciler import LocalStateReconciler
from ..utils.batcher import RateLimitedBatcher
from ..utils.file_manager import WorkingDirectory


@dataclass(frozen=True)
class Stage:
    name: str
    action: Callable[[], object]
    announce: str
    failure: str
    gating: bool = True


@dataclass
class RunResult:
    success: bool
    collection_id: int
    container_path: Optional[str] = None
    failed_stage: Optional[str] = None
    error: Optional[str] = None
    stats: Dict[str, int] = field(default_factory=dict)
    pages: List[PageEntry] = field(default_factory=list)


class PreparatorController:
    """
    Prepares one collection: sync its capture files locally, verify them,
    build the page index and package everything as a WACZ file.

    Usage:
        config = PreparatorConfig.from_options(username=..., password=..., collection_id=...)
        result = PreparatorController(config).process()
    """

    def __init__(self,
                 config: PreparatorConfig,
                 logger: Optional[logging.Logger] = None,
                 extractor: Optional[BaseExtractor] = None,
                 assembler: Optional[ContainerAssembler] = None,
                 client=None):
        self.config = config
        self.logger = logger or get_logger('controller')

        if extractor is not None:
            self.state = extractor.state
            self.extractor = extractor
        else:
            self.state = CollectionState(
                collection_id=config.collection_id,
                working_dir=config.working_dir,
                container_path=config.container_path,
            )
            self.extractor = ArchiveItExtractor(config, self.state, client=client, logger=self.logger)

        self.batcher = RateLimitedBatcher(config.concurrency, logger=self.logger)
        self.working_dir = WorkingDirectory(config.working_dir, config.capture_extension, logger=self.logger)
        self.reconciler = LocalStateReconciler(self.working_dir, logger=self.logger)
        self.fetcher = FetchEngine(self.extractor.client, self.working_dir, self.batcher, logger=self.logger)
        self.page_builder = PageIndexBuilder(logger=self.logger)
        self.assembler = assembler or ContainerAssembler(
            config.pages_path,
            signing_url=config.signing_url,
            signing_token=config.signing_token,
            logger=self.logger,
        )
        self.errors = ErrorTracker(self.logger)
        self.stats: Dict[str, int] = {}

    def stages(self) -> List[Stage]:
        cid = self.config.collection_id
        return [
            Stage('check_access', self.extractor.check_access,
                  'Checking credentials combination',
                  'Invalid credentials combination, or the Archive-It API could not be reached'),
            Stage('ensure_working_dir', self.working_dir.ensure,
                  'Creating local collection folder (if not already present)',
                  'Collection folder could not be accessed or created'),
            Stage('fetch_collection_info', self.extractor.fetch_collection_info,
                  f'Pulling collection information for {cid}',
                  'An error occurred while pulling collection information'),
            Stage('build_index', self._build_index,
                  f'Listing WARC files from collection {cid}',
                  'An error occurred while listing WARC files from collection'),
            Stage('enrich_crawl_info', self.extractor.enrich_crawl_info,
                  'Pulling crawl and seed information for each entry',
                  'An error occurred while pulling crawl information',
                  gating=False),
            Stage('resolve_titles', self.extractor.resolve_titles,
                  'Pulling page titles for each entry',
                  'An error occurred while pulling page titles',
                  gating=False),
            Stage('delete_loose', self._delete_loose,
                  'Deleting "loose" WARC files (present in folder, but not referenced in collection)',
                  'An error occurred while deleting loose WARC files'),
            Stage('verify_checksums', self._verify_checksums,
                  'Checking hashes of WARCs that may already be present in collection folder',
                  'An error occurred while checking WARC hashes'),
            Stage('fetch_missing', self._fetch_missing,
                  'Downloading WARCs',
                  'An error occurred while downloading WARC files'),
            Stage('verify_downloads', self._verify_checksums,
                  'Checking hashes on downloaded WARC collection',
                  'An error occurred while checking WARC hashes'),
            Stage('build_page_index', self._build_page_index,
                  'Building pages list',
                  'An error occurred while building the pages list'),
            Stage('assemble_container', self._assemble_container,
                  'Preparing WACZ file',
                  'An error occurred while preparing WACZ file'),
        ]

    def process(self, progress: Optional[Callable[[object], None]] = None) -> RunResult:
        """
        Go through the entire preparation process.

        Stops at the first failing gating stage.

        Args:
            progress: Optional callback receiving stage and counter events

        Returns:
            Outcome of the run; `success` is False if a gating stage failed
        """
        self.stats = {
            "files": 0, "crawled_pages": 0, "titled_pages": 0, "deleted_loose": 0,
            "corrupted": 0, "downloads": 0, "download_failures": 0,
            "not_downloaded": 0, "pages": 0,
        }

        try:
            for stage in self.stages():
                if progress:
                    progress({"type": "stage", "name": stage.name})
                self.logger.info(stage.announce)

                try:
                    stage.action()
                except Exception as e:
                    self.errors.log_error(e, stage.name)
                    if stage.gating:
                        self.logger.error(stage.failure)
                        return RunResult(
                            success=False,
                            collection_id=self.config.collection_id,
                            failed_stage=stage.name,
                            error=str(e),
                            stats=dict(self.stats),
                        )
                    self.logger.error(f"{stage.failure} -- continuing")

            try:
                self.report()
            except OSError as e:
                self.errors.log_error(e, "report")
        finally:
            self.extractor.close()

        if progress:
            progress({"type": "counters", "stats": dict(self.stats)})

        if self.config.clear_working_dir:
            try:
                self.clear()
            except OSError as e:
                self.errors.log_error(e, "clear")
                self.logger.error(f"Collection folder {self.working_dir.path} could not be removed")

        return RunResult(
            success=True,
            collection_id=self.config.collection_id,
            container_path=self.state.container_path,
            stats=dict(self.stats),
            pages=list(self.state.page_entries),
        )

    def _build_index(self):
        refs = self.extractor.list_remote_files()
        self.stats["files"] = len(refs)
        self.logger.info(f"{len(refs)} entries found in total")

    def _delete_loose(self):
        self.stats["deleted_loose"] = len(self.reconciler.delete_loose(self.state.file_references))

    def _verify_checksums(self):
        result = self.reconciler.verify_checksums(self.state.file_references)
        self.stats["corrupted"] += result["corrupted"]

    def _fetch_missing(self):
        outcomes = self.fetcher.fetch_missing(self.state.file_references)
        self.stats["downloads"] = sum(1 for o in outcomes if o.ok)
        self.stats["download_failures"] = sum(1 for o in outcomes if not o.ok)

    def _build_page_index(self):
        self.state.page_entries = self.page_builder.build(self.state.file_references)
        self.stats["crawled_pages"] = self.state.crawled_pages_count()
        self.stats["titled_pages"] = sum(
            1 for ref in self.state.file_references for page in ref.crawled_pages if page.title
        )
        self.stats["pages"] = len(self.state.page_entries)

    def _assemble_container(self):
        self.assembler.assemble(
            self.working_dir.input_glob,
            self.state.container_path,
            self.state.page_entries,
            title=self.state.collection_title,
            description=self.state.collection_description,
        )

    def report(self):
        """Log the processing report."""
        self.logger.info('Collection is ready')

        not_downloaded = len(self.state.not_downloaded())
        self.stats["not_downloaded"] = not_downloaded
        if not_downloaded:
            self.logger.warning(
                f"{not_downloaded} of {len(self.state.file_references)} WARC files have not been downloaded"
            )

        summary = self.errors.get_error_summary()
        if summary['total_errors']:
            self.logger.warning(f"{summary['total_errors']} non-blocking errors occurred: {summary['error_types']}")

        folder = self.working_dir.get_output_stats()
        self.logger.info(f"{self.stats['pages']} pages indexed from {self.stats['files']} WARC files")
        self.logger.info(f"{folder['capture_files']} WARC files on disk ({folder['total_size']} bytes)")
        self.logger.info(f"WACZ file can be found here: {self.state.container_path}")

    def clear(self):
        """Delete the collection folder and its contents."""
        self.working_dir.clear()
