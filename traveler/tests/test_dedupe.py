"""
Tests for SeenStore

Last-seen timestamps with a sliding window, persisted as one JSON document.
"""

import json
import logging

import pytest

from traveler.curator.dedupe import DAY_MS, SeenStore

URL = "https://example.com/post"
NOW = 1_700_000_000_000


@pytest.fixture
def store(tmp_path):
    return SeenStore(tmp_path / "state" / "seen.json")


class TestSeenStore:
    def test_unknown_url_is_not_seen(self, store):
        assert store.is_seen(URL, 14, now=NOW) is False

    def test_mark_then_seen(self, store):
        store.mark_seen(URL, now=NOW)

        for window_days in (1, 7, 14, 365):
            assert store.is_seen(URL, window_days, now=NOW) is True

    def test_window_boundary(self, store):
        store.mark_seen(URL, now=NOW)

        assert store.is_seen(URL, 1, now=NOW + DAY_MS - 1) is True
        assert store.is_seen(URL, 1, now=NOW + DAY_MS) is False
        assert store.is_seen(URL, 2, now=NOW + DAY_MS) is True

    def test_zero_window_never_seen(self, store):
        store.mark_seen(URL, now=NOW)
        assert store.is_seen(URL, 0, now=NOW) is False

    def test_creates_directory_and_document_shape(self, store):
        store.mark_seen(URL, now=NOW)

        raw = store.state_path.read_text()
        assert raw.endswith("\n")
        assert json.loads(raw) == {"seen": {URL: NOW}}

    def test_last_write_wins(self, store):
        store.mark_seen(URL, now=NOW)
        store.mark_seen(URL, now=NOW + 5)

        assert store.load() == {URL: NOW + 5}

    def test_mark_preserves_other_records(self, store):
        store.mark_seen("https://a", now=NOW)
        store.mark_seen("https://b", now=NOW + 1)

        assert store.load() == {"https://a": NOW, "https://b": NOW + 1}

    def test_seen_within(self, store):
        store.mark_seen("https://old", now=NOW - 20 * DAY_MS)
        store.mark_seen("https://new", now=NOW - DAY_MS)

        assert store.seen_within(14, now=NOW) == {"https://new"}

    def test_corrupt_state_is_empty(self, store, caplog):
        store.state_path.parent.mkdir(parents=True)
        store.state_path.write_text("{not json")

        with caplog.at_level(logging.WARNING, logger="traveler.curator.dedupe"):
            assert store.is_seen(URL, 14, now=NOW) is False

        assert "treating as empty" in caplog.text

    def test_missing_seen_key_is_empty(self, store):
        store.state_path.parent.mkdir(parents=True)
        store.state_path.write_text('{"other": 1}')

        assert store.load() == {}

    def test_corrupt_state_is_overwritten_on_mark(self, store):
        store.state_path.parent.mkdir(parents=True)
        store.state_path.write_text("[]")

        store.mark_seen(URL, now=NOW)

        assert store.is_seen(URL, 1, now=NOW) is True

    def test_non_integer_timestamps_ignored(self, store):
        store.state_path.parent.mkdir(parents=True)
        store.state_path.write_text(json.dumps({"seen": {URL: "yesterday", "https://b": NOW}}))

        assert store.load() == {"https://b": NOW}
