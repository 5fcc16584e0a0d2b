"""
Tests for streamed capture file downloads.
"""

import hashlib

import pytest
import requests

from wacz_preparator.core.client import ArchiveItClient
from wacz_preparator.core.errors import NetworkError, StorageError
from wacz_preparator.core.fetcher import FetchEngine
from wacz_preparator.core.models import FileReference
from wacz_preparator.core.reconciler import LocalStateReconciler
from wacz_preparator.utils.batcher import RateLimitedBatcher
from wacz_preparator.utils.file_manager import WorkingDirectory

from conftest import DOWNLOADS, FakeResponse, FakeSession, working_files


class InterruptedResponse(FakeResponse):
    """Serves the first chunk, then drops the connection."""

    def iter_content(self, chunk_size=1):
        yield self.content[:4]
        raise requests.exceptions.ChunkedEncodingError("connection broken")


def _setup(tmp_path, bodies):
    session = FakeSession(lambda method, url, params: bodies.get(url, FakeResponse(404)))
    working_dir = WorkingDirectory(str(tmp_path / '12345'))
    working_dir.ensure()
    client = ArchiveItClient('user', 'secret', session=session)
    return working_dir, session, FetchEngine(client, working_dir, RateLimitedBatcher(2))


def _ref(filename, content: bytes, downloaded=False):
    return FileReference(filename=filename, download_url=f"{DOWNLOADS}/{filename}",
                         remote_checksum=hashlib.sha1(content).hexdigest(), downloaded=downloaded)


def test_only_missing_files_are_downloaded(tmp_path):
    bodies = {f"{DOWNLOADS}/{name}": FakeResponse(200, content=name.encode()) for name in ('a.warc.gz', 'b.warc.gz')}
    working_dir, session, fetcher = _setup(tmp_path, bodies)
    refs = [_ref('a.warc.gz', b'a.warc.gz'), _ref('b.warc.gz', b'b.warc.gz', downloaded=True),
            _ref('c.warc.gz', b'c', downloaded=None)]

    outcomes = fetcher.fetch_missing(refs)

    assert [o.item.filename for o in outcomes] == ['a.warc.gz']
    assert outcomes[0].ok
    assert [c['url'] for c in session.calls] == [f"{DOWNLOADS}/a.warc.gz"]
    assert (working_dir.path / 'a.warc.gz').read_bytes() == b'a.warc.gz'
    assert bodies[f"{DOWNLOADS}/a.warc.gz"].closed


def test_write_failure_does_not_stop_siblings(tmp_path):
    bodies = {f"{DOWNLOADS}/{name}": FakeResponse(200, content=b'body') for name in ('a.warc.gz', 'b.warc.gz')}
    working_dir, session, fetcher = _setup(tmp_path, bodies)
    (working_dir.path / 'b.warc.gz').mkdir()

    outcomes = fetcher.fetch_missing([_ref('a.warc.gz', b'body'), _ref('b.warc.gz', b'body')])

    assert outcomes[0].ok
    assert isinstance(outcomes[1].error, StorageError)
    assert (working_dir.path / 'a.warc.gz').read_bytes() == b'body'


def test_non_200_download_is_an_item_error(tmp_path):
    bodies = {f"{DOWNLOADS}/a.warc.gz": FakeResponse(200, content=b'a')}
    working_dir, session, fetcher = _setup(tmp_path, bodies)

    outcomes = fetcher.fetch_missing([_ref('a.warc.gz', b'a'), _ref('gone.warc.gz', b'x')])

    assert outcomes[0].ok
    assert isinstance(outcomes[1].error, NetworkError)
    assert outcomes[1].error.status_code == 404
    assert working_files(working_dir.path) == ['a.warc.gz']


def test_reference_without_location_is_skipped(tmp_path):
    working_dir, session, fetcher = _setup(tmp_path, {})
    ref = FileReference(filename='a.warc.gz', downloaded=False)

    assert fetcher.fetch_missing([ref]) == []
    assert session.calls == []
    assert ref.downloaded is False
    with pytest.raises(NetworkError):
        fetcher.fetch_one(ref)


def test_interrupted_download_leaves_partial_file_for_next_check(tmp_path):
    content = b'a complete capture file'
    bodies = {f"{DOWNLOADS}/a.warc.gz": InterruptedResponse(200, content=content)}
    working_dir, session, fetcher = _setup(tmp_path, bodies)
    ref = _ref('a.warc.gz', content)

    outcomes = fetcher.fetch_missing([ref])

    assert isinstance(outcomes[0].error, NetworkError)
    assert (working_dir.path / 'a.warc.gz').read_bytes() == content[:4]

    stats = LocalStateReconciler(working_dir).verify_checksums([ref])

    assert stats['corrupted'] == 1
    assert ref.downloaded is False
    assert working_files(working_dir.path) == []
