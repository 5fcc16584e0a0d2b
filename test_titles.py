"""
Tests for page title resolution (seed metadata first, replay scraping second).
"""

from wacz_preparator.core.client import ArchiveItClient
from wacz_preparator.core.models import CrawledPage, FileReference
from wacz_preparator.core.titles import TitleResolver, extract_title, replay_timestamp
from wacz_preparator.utils.batcher import RateLimitedBatcher

from conftest import API, REPLAY


EXAMPLE_REPLAY = f"{REPLAY}/12345/20210430200457/https%3A%2F%2Fexample.com"


def _resolver(remote, limit=4):
    client = ArchiveItClient('user', 'secret', session=remote.session)
    return TitleResolver(client, remote.collection_id, RateLimitedBatcher(limit))


def _page(seed_id=1, url='https://example.com', timestamp='2021-04-30 20:04:57.635000'):
    return CrawledPage(seed_id=seed_id, url=url, timestamp=timestamp)


def test_replay_timestamp():
    assert replay_timestamp('2019-09-18 22:11:28.058000') == '20190918221128'


def test_replay_url_encodes_page_url(remote):
    page = _page(url='https://example.com/a b?q=1&r=(x)')
    assert _resolver(remote).replay_url(page) == (
        f"{REPLAY}/12345/20210430200457/https%3A%2F%2Fexample.com%2Fa%20b%3Fq%3D1%26r%3D(x)"
    )


def test_extract_title():
    assert extract_title('<html><head><title>  Hello </title></head></html>') == 'Hello'
    assert extract_title('<html><head></head><body>No title</body></html>') is None
    assert extract_title('<title>   </title>') is None


def test_metadata_title_wins_and_replay_is_not_called(remote):
    remote.seed_titles[1] = 'Example'
    remote.add_replay(EXAMPLE_REPLAY, '<title>Scraped</title>')
    page = _page()

    _resolver(remote).resolve([FileReference(filename='a.warc.gz', crawled_pages=[page])])

    assert page.title == 'Example'
    assert remote.calls_to(REPLAY) == []


def test_replay_title_is_used_without_metadata_title(remote):
    remote.add_replay(EXAMPLE_REPLAY, '<html><head><title>Example Domain</title></head></html>')
    page = _page()

    _resolver(remote).resolve([FileReference(filename='a.warc.gz', crawled_pages=[page])])

    assert page.title == 'Example Domain'
    assert len(remote.calls_to(f"{API}/api/seed/1")) == 1
    replay_call = remote.calls_to(REPLAY)[0]
    assert replay_call['url'] == EXAMPLE_REPLAY
    assert replay_call['auth'] is None


def test_page_without_seed_id_goes_straight_to_replay(remote):
    remote.add_replay(EXAMPLE_REPLAY, '<title>Example Domain</title>')
    page = _page(seed_id=None)

    _resolver(remote).resolve([FileReference(filename='a.warc.gz', crawled_pages=[page])])

    assert page.title == 'Example Domain'
    assert remote.calls_to(f"{API}/api/seed/") == []


def test_seed_lookup_failure_falls_back_to_replay(remote):
    remote.fail(f"{API}/api/seed/")
    remote.add_replay(EXAMPLE_REPLAY, '<title>Example Domain</title>')
    page = _page()

    _resolver(remote).resolve([FileReference(filename='a.warc.gz', crawled_pages=[page])])

    assert page.title == 'Example Domain'


def test_placeholder_and_non_html_replays_leave_page_untitled(remote):
    remote.add_replay(EXAMPLE_REPLAY, '<title>Archive-it Wayback</title>')
    other = _page(seed_id=2, url='https://example.org')
    remote.add_replay(f"{REPLAY}/12345/20210430200457/https%3A%2F%2Fexample.org", '%PDF-1.4',
                      content_type='application/pdf')
    missing = _page(seed_id=3, url='https://example.net')
    page = _page()

    _resolver(remote).resolve([FileReference(filename='a.warc.gz', crawled_pages=[page, other, missing])])

    assert page.title is None
    assert other.title is None
    assert missing.title is None


def test_replay_transport_error_is_not_propagated(remote):
    original = remote.handle

    def explode(method, url, params):
        if url.startswith(REPLAY):
            raise RuntimeError("replay exploded")
        return original(method, url, params)

    remote.session.handler = explode
    page = _page()

    outcomes = _resolver(remote).resolve([FileReference(filename='a.warc.gz', crawled_pages=[page])])

    assert page.title is None
    assert all(outcome.ok for outcome in outcomes)


def test_patch_batches_are_skipped(remote):
    remote.seed_titles[1] = 'Example'
    patch_page = _page()
    refs = [FileReference(filename='ARCHIVEIT-MISSING_URLS_PATCH-0001.warc.gz', crawled_pages=[patch_page])]

    _resolver(remote).resolve(refs)

    assert patch_page.title is None
    assert remote.session.calls == []


def test_all_pages_are_resolved_in_one_flat_pass(remote):
    refs = []
    for i in range(5):
        pages = [_page(seed_id=i * 10 + j, url=f'https://example.com/{i}/{j}') for j in range(i)]
        for page in pages:
            remote.seed_titles[page.seed_id] = f"Page {page.seed_id}"
        refs.append(FileReference(filename=f'f{i}.warc.gz', crawled_pages=pages))

    resolver = _resolver(remote, limit=3)
    outcomes = resolver.resolve(refs)

    assert len(outcomes) == 10
    assert all(page.title == f"Page {page.seed_id}" for ref in refs for page in ref.crawled_pages)
