"""
Tests for the curator pipeline

Uses an in-memory fetcher and a fake note client; the seen store is a real
file under tmp_path.
"""

import pytest

from traveler.common.config import (
    InterestsConfig,
    RankingConfig,
    RoteOutputConfig,
    SourceConfig,
    TravelerConfig,
)
from traveler.common.errors import UpstreamError
from traveler.common.schemas import CreatedNote, FeedItem, parse_provenance
from traveler.curator.dedupe import SeenStore
from traveler.curator.pipeline import collect_items, run_once

NOW = 1_700_000_000_000


class FakeNoteClient:
    def __init__(self, fail_titles=()):
        self.requests = []
        self.fail_titles = set(fail_titles)

    async def create_note(self, request):
        self.requests.append(request)
        if any(t in request.title for t in self.fail_titles):
            raise UpstreamError("Rote HTTP 503: down")
        return CreatedNote(id=f"note-{len(self.requests)}", title=request.title)

    async def close(self):
        pass


def make_fetcher(feeds):
    """feeds: source url -> list of items, or an exception to raise"""
    async def fetcher(url, source_name):
        result = feeds[url]
        if isinstance(result, Exception):
            raise result
        return [FeedItem(source=source_name, title=t, url=u) for t, u in result]
    return fetcher


def make_config(tmp_path, sources, **ranking):
    policy = dict(daily_limit=3, min_score=0.6, dedupe_window_days=14)
    policy.update(ranking)
    return TravelerConfig(
        interests=InterestsConfig(include=("rust",), exclude=("ad",)),
        sources=tuple(sources),
        ranking=RankingConfig(**policy),
        state_dir=str(tmp_path),
    )


@pytest.fixture
def store(tmp_path):
    return SeenStore(tmp_path / "seen.json")


class TestCollectItems:
    @pytest.mark.asyncio
    async def test_failed_source_is_isolated(self):
        fetcher = make_fetcher({
            "https://a/feed": [("Rust news", "https://a/1")],
            "https://b/feed": UpstreamError("rss_fetch_failed 500 https://b/feed"),
        })
        sources = [SourceConfig(url="https://a/feed", name="a"), SourceConfig(url="https://b/feed", name="b")]

        items, failed, skipped = await collect_items(sources, fetcher)

        assert [i.url for i in items] == ["https://a/1"]
        assert list(failed) == ["b"]
        assert skipped == []

    @pytest.mark.asyncio
    async def test_unsupported_type_skipped(self):
        sources = [SourceConfig(url="https://x", type="twitter", name="tw")]

        items, failed, skipped = await collect_items(sources, make_fetcher({}))

        assert items == []
        assert skipped == ["tw"]

    @pytest.mark.asyncio
    async def test_unexpected_error_propagates(self):
        fetcher = make_fetcher({"https://a/feed": RuntimeError("bug")})

        with pytest.raises(RuntimeError):
            await collect_items([SourceConfig(url="https://a/feed")], fetcher)


class TestRunOnce:
    @pytest.mark.asyncio
    async def test_writes_and_marks_selected(self, tmp_path, store):
        config = make_config(tmp_path, [SourceConfig(url="https://a/feed", name="hn")])
        fetcher = make_fetcher({"https://a/feed": [
            ("Rust 2.0 released", "https://a/rust"),
            ("Sponsored ad", "promo:ad"),
        ]})
        client = FakeNoteClient()

        report = await run_once(config, note_client=client, store=store, fetcher=fetcher, now=NOW)

        assert report.ok
        assert report.fetched == 2
        assert report.written == {"https://a/rust": "note-1"}
        request = client.requests[0]
        assert request.title == "[hn] Rust 2.0 released"
        assert request.tags == ["inbox", "traveler"]
        assert parse_provenance(request.content) == (0.85, ["matches_interests", "has_url"])
        assert store.is_seen("https://a/rust", 14, now=NOW)

    @pytest.mark.asyncio
    async def test_second_run_skips_seen(self, tmp_path, store):
        config = make_config(tmp_path, [SourceConfig(url="https://a/feed")])
        fetcher = make_fetcher({"https://a/feed": [("Rust", "https://a/rust")]})
        client = FakeNoteClient()

        await run_once(config, note_client=client, store=store, fetcher=fetcher, now=NOW)
        report = await run_once(config, note_client=client, store=store, fetcher=fetcher, now=NOW + 1000)

        assert report.selected == []
        assert len(client.requests) == 1

    @pytest.mark.asyncio
    async def test_failed_note_is_not_marked(self, tmp_path, store):
        config = make_config(tmp_path, [SourceConfig(url="https://a/feed", name="hn")])
        fetcher = make_fetcher({"https://a/feed": [
            ("Rust broken", "https://a/1"),
            ("Rust fine", "https://a/2"),
        ]})
        client = FakeNoteClient(fail_titles=["broken"])

        report = await run_once(config, note_client=client, store=store, fetcher=fetcher, now=NOW)

        assert not report.ok
        assert list(report.failed_urls) == ["https://a/1"]
        assert list(report.written) == ["https://a/2"]
        assert not store.is_seen("https://a/1", 14, now=NOW)
        assert store.is_seen("https://a/2", 14, now=NOW)

    @pytest.mark.asyncio
    async def test_failed_source_still_writes_others(self, tmp_path, store):
        config = make_config(tmp_path, [
            SourceConfig(url="https://a/feed", name="a"),
            SourceConfig(url="https://b/feed", name="b"),
        ])
        fetcher = make_fetcher({
            "https://a/feed": UpstreamError("rss_fetch_failed 404 https://a/feed"),
            "https://b/feed": [("Rust", "https://b/1")],
        })

        report = await run_once(config, note_client=FakeNoteClient(), store=store, fetcher=fetcher, now=NOW)

        assert list(report.failed_sources) == ["a"]
        assert list(report.written) == ["https://b/1"]
        assert not report.ok

    @pytest.mark.asyncio
    async def test_dry_run_writes_nothing(self, tmp_path, store):
        config = make_config(tmp_path, [SourceConfig(url="https://a/feed")])
        fetcher = make_fetcher({"https://a/feed": [("Rust", "https://a/rust")]})

        report = await run_once(config, store=store, fetcher=fetcher, now=NOW, dry_run=True)

        assert len(report.selected) == 1
        assert report.written == {}
        assert not store.state_path.exists()

    @pytest.mark.asyncio
    async def test_rote_disabled_acts_as_dry_run(self, tmp_path, store):
        config = make_config(tmp_path, [SourceConfig(url="https://a/feed")])
        config = TravelerConfig(
            interests=config.interests,
            sources=config.sources,
            ranking=config.ranking,
            rote=RoteOutputConfig(enabled=False),
            state_dir=config.state_dir,
        )
        client = FakeNoteClient()
        fetcher = make_fetcher({"https://a/feed": [("Rust", "https://a/rust")]})

        report = await run_once(config, note_client=client, store=store, fetcher=fetcher, now=NOW)

        assert client.requests == []
        assert report.written == {}

    @pytest.mark.asyncio
    async def test_note_client_required(self, tmp_path, store):
        config = make_config(tmp_path, [])

        with pytest.raises(ValueError):
            await run_once(config, store=store, fetcher=make_fetcher({}), now=NOW)

    @pytest.mark.asyncio
    async def test_daily_limit_respected(self, tmp_path, store):
        config = make_config(tmp_path, [SourceConfig(url="https://a/feed")], daily_limit=2)
        fetcher = make_fetcher({"https://a/feed": [(f"Rust {i}", f"https://a/{i}") for i in range(5)]})
        client = FakeNoteClient()

        report = await run_once(config, note_client=client, store=store, fetcher=fetcher, now=NOW)

        assert len(client.requests) == 2
        assert list(report.written) == ["https://a/0", "https://a/1"]
