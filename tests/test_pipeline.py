"""Tests for batch ingestion and feed pulls."""

import pytest

from engine.items import InvalidItemError
from ingest import pipeline
from ingest.feeds import FeedSource
from ingest.pipeline import ingest_items, pull_feeds

FACT_FEED = FeedSource.from_config({
    'name': 'numbers', 'type': 'fact', 'url': 'https://n.test/random', 'fields': {'text': 'text'},
})
IMAGE_FEED = FeedSource.from_config({
    'name': 'search', 'type': 'image', 'url': 'https://i.test/?q={query}', 'items': 'hits',
    'fields': {'url': 'url'},
})


class TestIngestItems:
    """Pushed batches"""

    def test_counts(self, store):
        result = ingest_items('fact', [
            {'text': 'Honey never spoils.'},
            {'text': 'Honey  never spoils.'},
            {'text': ''},
            'not an object',
            {'text': 'Bananas are berries.', 'provider': 'numbers'},
        ], store)
        assert result.scanned == 5
        assert result.unique == 2
        assert result.rejected == 2
        assert result.inserted == 2
        assert result.updated == 0
        assert result.provider_counts == {'fact': 1, 'numbers': 1}
        assert store.items.count_documents({'type': 'fact'}) == 2

    def test_reingest_updates(self, store):
        ingest_items('quote', [{'text': 'Stay curious.', 'author': 'Ann'}], store)
        result = ingest_items('quote', [{'text': 'Stay curious.', 'author': 'Ann', 'tags': ['wisdom']}], store)
        assert result.inserted == 0
        assert result.updated == 1
        assert store.items.find_one({'type': 'quote'})['tags'] == ['wisdom']

    def test_dry_run_writes_nothing(self, store):
        result = ingest_items('image', [{'url': 'https://x.test/%d.png' % i} for i in range(8)], store,
                              dry_run=True, sample_size=3)
        assert result.unique == 8
        assert len(result.sample) == 3
        assert store.items.count_documents({}) == 0
        data = result.to_dict()
        assert data['dryRun'] is True
        assert data['type'] == 'image'
        assert len(data['sample']) == 3

    def test_to_dict_hides_sample_on_write(self, store):
        data = ingest_items('fact', [{'text': 'A fact.'}], store).to_dict()
        assert 'sample' not in data
        assert data['inserted'] == 1
        assert data['providerCounts'] == {'fact': 1}

    def test_enrich_web_preview(self, store, monkeypatch):
        looked_up = []

        def fake_og(url):
            looked_up.append(url)
            return 'https://site.test/og.png'

        monkeypatch.setattr(pipeline, 'fetch_og_image', fake_og)
        ingest_items('web', [
            {'url': 'https://site.test/a'},
            {'url': 'https://site.test/b', 'ogImage': 'https://site.test/b.png'},
        ], store, enrich=True)
        assert looked_up == ['https://site.test/a']
        assert store.items.find_one({'url': 'https://site.test/a'})['ogImage'] == 'https://site.test/og.png'

    def test_unknown_type(self, store):
        with pytest.raises(InvalidItemError):
            ingest_items('podcast', [], store)


class TestPullFeeds:
    """Pulling configured feeds"""

    def test_rounds_and_dedup(self, store, monkeypatch):
        monkeypatch.setattr(pipeline, 'fetch_feed', lambda source, query='': [
            {'text': 'Sharks are older than trees.', 'provider': source.name}])
        result = pull_feeds('fact', store, rounds=3, sources=[FACT_FEED])
        assert result.scanned == 3
        assert result.unique == 1
        assert result.inserted == 1
        assert result.provider_counts == {'numbers': 1}

    def test_query_passed_to_search_feeds(self, store, monkeypatch):
        queries = []

        def fake_fetch(source, query=''):
            queries.append(query)
            return [{'url': 'https://i.test/%s.png' % query.replace(' ', '-')}]

        monkeypatch.setattr(pipeline, 'fetch_feed', fake_fetch)
        result = pull_feeds('image', store, query='old maps', sources=[IMAGE_FEED, FACT_FEED])
        assert queries == ['old maps']
        assert result.inserted == 1

    def test_source_names(self, store, monkeypatch):
        monkeypatch.setattr(pipeline, 'fetch_feed', lambda source, query='': [{'text': 'X fact.'}])
        result = pull_feeds('fact', store, names=['other'], sources=[FACT_FEED])
        assert result.scanned == 0

    def test_failing_feed_is_logged(self, store, monkeypatch):
        def broken(source, query=''):
            raise RuntimeError("boom")

        monkeypatch.setattr(pipeline, 'fetch_feed', broken)
        result = pull_feeds('fact', store, sources=[FACT_FEED], dry_run=True)
        assert result.scanned == 0
        assert result.dry_run is True
