"""
Shared test fixtures: an in-memory Archive-It platform behind a fake
`requests` session, and a container assembler that does not need the wacz
library.
"""

import hashlib
import os
import threading
from typing import Dict, List, Optional

import pytest
from requests.structures import CaseInsensitiveDict

from wacz_preparator.core.config import PreparatorConfig
from wacz_preparator.core.controller import PreparatorController
from wacz_preparator.utils.manifest import PagesManifest


API = "https://partner.archive-it.org"
REPLAY = "https://wayback.archive-it.org"
DOWNLOADS = "https://warcs.archive-it.org/webdatafile"


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, text="", content=b"", headers=None):
        self.status_code = status_code
        self._json = json_data
        self.text = text
        self.content = content
        self.headers = CaseInsensitiveDict(headers or {})
        self.closed = False

    def json(self):
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i:i + chunk_size]

    def close(self):
        self.closed = True


class FakeSession:
    """Stands in for `requests.Session`; every request goes to `handler`."""

    def __init__(self, handler):
        self.handler = handler
        self.headers = {}
        self.calls = []
        self._lock = threading.Lock()

    def request(self, method, url, params=None, auth=None, stream=False, timeout=None):
        with self._lock:
            self.calls.append({'method': method, 'url': url, 'params': dict(params or {}), 'auth': auth})
        return self.handler(method, url, params or {})

    def close(self):
        pass


class FakeArchiveIt:
    """Minimal Archive-It: collection API, WASAPI listing, reports, seeds, replay, downloads."""

    def __init__(self, collection_id=12345, listing_page_size=500):
        self.collection_id = collection_id
        self.listing_page_size = listing_page_size
        self.collection_metadata = {'Title': [{'value': 'Test collection'}],
                                    'Description': [{'value': 'A collection for tests'}]}
        self.access_status = 200
        self.files: List[dict] = []
        self.contents: Dict[str, bytes] = {}
        self.crawls: Dict[int, list] = {}
        self.seed_titles: Dict[int, str] = {}
        self.replays: Dict[str, FakeResponse] = {}
        self.failures: Dict[str, int] = {}  # url prefix -> status
        self.session = FakeSession(self.handle)

    # -- setup helpers

    def add_file(self, filename, content: bytes, crawl_id=None, sha1=None):
        url = f"{DOWNLOADS}/{filename}"
        self.files.append({
            'filename': filename,
            'checksums': {'sha1': sha1 or hashlib.sha1(content).hexdigest(), 'md5': 'unused'},
            'locations': [url, f"https://archive.org/download/{filename}"],
            'crawl': crawl_id,
        })
        self.contents[url] = content
        return url

    def add_seed(self, crawl_id, seed_id, url, timestamp, title=None):
        self.crawls.setdefault(crawl_id, []).append({'seed_id': seed_id, 'seed': url, 'timestamp': timestamp})
        if title is not None:
            self.seed_titles[seed_id] = title

    def add_replay(self, replay_url, html, status=200, content_type='text/html; charset=utf-8'):
        self.replays[replay_url] = FakeResponse(status, text=html, headers={'Content-Type': content_type})

    def fail(self, url_prefix, status=500):
        self.failures[url_prefix] = status

    # -- inspection helpers

    def calls_to(self, prefix, method=None):
        return [c for c in self.session.calls
                if c['url'].startswith(prefix) and (method is None or c['method'] == method)]

    @property
    def download_calls(self):
        return self.calls_to(DOWNLOADS)

    # -- request routing

    def handle(self, method, url, params):
        for prefix, status in self.failures.items():
            if url.startswith(prefix):
                return FakeResponse(status)

        if url == f"{API}/api/collection":
            if self.access_status != 200:
                return FakeResponse(self.access_status)
            if str(params.get('id')) != str(self.collection_id):
                return FakeResponse(200, json_data=[])
            return FakeResponse(200, json_data=[{'id': self.collection_id, 'metadata': self.collection_metadata}])

        if url == f"{API}/wasapi/v1/webdata":
            page = int(params['page'])
            start = (page - 1) * self.listing_page_size
            chunk = self.files[start:start + self.listing_page_size]
            has_next = start + self.listing_page_size < len(self.files)
            return FakeResponse(200, json_data={
                'count': len(self.files),
                'next': f"{url}?page={page + 1}" if has_next else None,
                'files': chunk,
            })

        if url.startswith(f"{API}/api/reports/seed/"):
            crawl_id = int(url.rsplit('/', 1)[1])
            if crawl_id not in self.crawls:
                return FakeResponse(404)
            return FakeResponse(200, json_data=self.crawls[crawl_id])

        if url.startswith(f"{API}/api/seed/"):
            seed_id = int(url.rsplit('/', 1)[1])
            if seed_id in self.seed_titles:
                return FakeResponse(200, json_data={'id': seed_id, 'metadata': {'Title': [{'value': self.seed_titles[seed_id]}]}})
            return FakeResponse(200, json_data={'id': seed_id, 'metadata': {}})

        if url.startswith(REPLAY):
            return self.replays.get(url, FakeResponse(404, headers={'Content-Type': 'text/html'}))

        if url in self.contents:
            return FakeResponse(200, content=self.contents[url])

        return FakeResponse(404)


class FakeAssembler:
    """Records the assembly request and writes the pages manifest plus an empty WACZ."""

    def __init__(self, pages_path):
        self.pages_path = pages_path
        self.calls = []

    def assemble(self, input_glob, output_path, pages, title=None, description=None):
        self.calls.append({'input_glob': input_glob, 'output_path': output_path,
                           'pages': list(pages), 'title': title, 'description': description})
        PagesManifest(self.pages_path).write(pages)
        with open(output_path, 'wb') as f:
            f.write(b'')
        return output_path


@pytest.fixture
def remote():
    return FakeArchiveIt()


@pytest.fixture
def output_dir(tmp_path):
    path = tmp_path / "output"
    path.mkdir()
    return path


@pytest.fixture
def config(output_dir, remote):
    return PreparatorConfig.from_options(
        username='user',
        password='secret',
        collection_id=remote.collection_id,
        output_path=str(output_dir),
        concurrency=3,
    )


@pytest.fixture
def make_controller(config, remote):
    from wacz_preparator.core.client import ArchiveItClient

    def factory(cfg: Optional[PreparatorConfig] = None):
        cfg = cfg or config
        client = ArchiveItClient(cfg.username, cfg.password, session=remote.session)
        assembler = FakeAssembler(cfg.pages_path)
        controller = PreparatorController(cfg, client=client, assembler=assembler)
        return controller, assembler

    return factory


def working_files(path) -> List[str]:
    return sorted(os.listdir(path)) if os.path.isdir(path) else []
