"""Tests for configurable feeds."""

import random

import pytest

import config
from engine.items import CandidateOrigin, ItemType
from ingest import feeds
from ingest.feeds import (
    FeedSource,
    NetworkCandidates,
    get_path,
    is_limited_author,
    load_sources,
    parse_entries,
    pick_query,
    sources_for,
)

GIPHY = {
    'name': 'giphy',
    'type': 'image',
    'url': 'https://api.giphy.com/v1/gifs/search?api_key={key}&q={query}',
    'items': 'data',
    'fields': {'url': 'images.original.url', 'title': 'title', 'page_url': 'url'},
    'source': {'name': 'Giphy', 'url': 'https://giphy.com'},
    'env_key': 'TEST_GIPHY_KEY',
}

QUOTES = {
    'name': 'quotable',
    'type': 'quote',
    'url': 'https://api.quotable.io/quotes/random',
    'fields': {'text': 'content', 'author': 'author'},
}


class TestConfiguredSources:
    """The shipped FEED_SOURCES list"""

    def test_all_sources_load(self):
        sources = load_sources()
        assert len(sources) == len(config.FEED_SOURCES)
        assert {s.item_type for s in sources} == set(ItemType)

    def test_keyless_sources_enabled(self, monkeypatch):
        monkeypatch.delenv('YOUTUBE_API_KEY', raising=False)
        names = {s.name for s in load_sources() if s.enabled}
        assert 'uselessfacts' in names
        assert 'youtube' not in names


class TestFeedSource:

    def test_disabled_without_env(self, monkeypatch):
        monkeypatch.delenv('TEST_GIPHY_KEY', raising=False)
        source = FeedSource.from_config(GIPHY)
        assert not source.enabled
        assert source.build_url('cats') is None

    def test_build_url(self, monkeypatch):
        monkeypatch.setenv('TEST_GIPHY_KEY', 'k1')
        source = FeedSource.from_config(GIPHY)
        assert source.needs_query
        assert source.build_url('weird collage') == \
            'https://api.giphy.com/v1/gifs/search?api_key=k1&q=weird+collage'

    def test_extra_env_values(self, monkeypatch):
        monkeypatch.setenv('TEST_CSE_KEY', 'k')
        monkeypatch.delenv('TEST_CSE_CX', raising=False)
        source = FeedSource.from_config({
            'name': 'cse', 'type': 'web', 'url': 'https://s.test/?key={key}&cx={cx}&q={query}',
            'env_key': 'TEST_CSE_KEY', 'env': {'cx': 'TEST_CSE_CX'},
        })
        assert not source.enabled
        monkeypatch.setenv('TEST_CSE_CX', 'c')
        assert source.build_url('x') == 'https://s.test/?key=k&cx=c&q=x'


class TestParsing:
    """Payload mapping"""

    def test_get_path(self):
        data = {'a': {'b': [{'c': 1}, {'c': 2}]}}
        assert get_path(data, 'a.b.1.c') == 2
        assert get_path(data, 'a.x.c') is None
        assert get_path(data, 'a.b.9') is None
        assert get_path(data, '') is data

    def test_parse_list_payload(self):
        source = FeedSource.from_config(GIPHY)
        payload = {'data': [
            {'images': {'original': {'url': 'https://media.giphy.com/1.gif'}}, 'title': 'Dancing cat',
             'url': '/gifs/dancing-cat'},
            {'title': 'no image'},
        ]}
        raws = parse_entries(source, payload, 'cats')
        assert len(raws) == 2
        first = raws[0]
        assert first['url'] == 'https://media.giphy.com/1.gif'
        assert first['page_url'] == 'https://giphy.com/gifs/dancing-cat'
        assert first['source'] == {'name': 'Giphy', 'url': 'https://giphy.com/gifs/dancing-cat'}
        assert first['provider'] == 'giphy'
        assert first['queries'] == ['cats']

    def test_parse_single_object_payload(self):
        source = FeedSource.from_config(QUOTES)
        raws = parse_entries(source, {'content': ' Stay curious. ', 'author': 'Ann'})
        assert raws == [{'text': 'Stay curious.', 'author': 'Ann', 'provider': 'quotable',
                         'source': {'name': 'quotable', 'url': ''}}]

    def test_plain_string_entries(self):
        source = FeedSource.from_config({'name': 'meow', 'type': 'fact', 'url': 'https://m.test',
                                         'items': 'data', 'fields': {'text': ''}})
        raws = parse_entries(source, {'data': ['Cats sleep a lot.', '']})
        assert [r['text'] for r in raws] == ['Cats sleep a lot.']

    def test_match_filters_entries(self):
        source = FeedSource.from_config({
            'name': 'reddit', 'type': 'video', 'url': 'https://r.test',
            'items': 'children', 'fields': {'url': 'data.url'},
            'match': {'url': r'youtu\.be/|youtube\.com/watch'},
        })
        payload = {'children': [{'data': {'url': 'https://youtu.be/abc'}},
                                {'data': {'url': 'https://i.redd.it/x.jpg'}}]}
        assert [r['url'] for r in parse_entries(source, payload)] == ['https://youtu.be/abc']

    def test_missing_items_path(self):
        source = FeedSource.from_config(GIPHY)
        assert parse_entries(source, {'meta': {}}) == []


class TestHelpers:

    def test_sources_for_filters_type_and_names(self, monkeypatch):
        monkeypatch.setenv('TEST_GIPHY_KEY', 'k')
        sources = [FeedSource.from_config(GIPHY), FeedSource.from_config(QUOTES)]
        assert [s.name for s in sources_for(ItemType.IMAGE, sources=sources)] == ['giphy']
        assert sources_for(ItemType.IMAGE, names=['other'], sources=sources) == []
        assert [s.name for s in sources_for(ItemType.QUOTE, names=[' Quotable '], sources=sources)] == ['quotable']

    def test_pick_query(self):
        rng = random.Random(3)
        assert pick_query(ItemType.IMAGE, ['only'], rng) == 'only'
        assert pick_query(ItemType.IMAGE, None, rng) in config.DEFAULT_QUERIES['image']
        assert pick_query(ItemType.FACT, None, rng) == ''

    def test_limited_author(self):
        assert is_limited_author('Kanye West')
        assert not is_limited_author('')
        assert not is_limited_author('Ann')


class TestNetworkCandidates:
    """Live candidates from feeds"""

    @pytest.fixture
    def quote_source(self):
        return [FeedSource.from_config(QUOTES)]

    def test_disabled(self, quote_source):
        network = NetworkCandidates(sources=quote_source, enabled=False)
        assert network(ItemType.QUOTE) == []

    def test_builds_network_candidates(self, quote_source, monkeypatch):
        monkeypatch.setattr(feeds, 'fetch_json', lambda url, timeout=None: [
            {'content': 'Stay curious.', 'author': 'Ann'},
            {'content': '', 'author': 'Nobody'},
        ])
        network = NetworkCandidates(sources=quote_source, enabled=True, rng=random.Random(1))
        candidates = network(ItemType.QUOTE)
        assert len(candidates) == 1
        assert candidates[0].origin == CandidateOrigin.NETWORK
        assert candidates[0].key == 'Stay curious.__Ann'

    def test_limited_authors_mostly_skipped(self, quote_source, monkeypatch):
        monkeypatch.setattr(feeds, 'fetch_json', lambda url, timeout=None: [
            {'content': 'Quote %d' % i, 'author': 'Kanye West'} for i in range(6)
        ])
        monkeypatch.setattr(config, 'LIMITED_AUTHOR_SKIP_RATE', 1.0)
        network = NetworkCandidates(sources=quote_source, enabled=True, rng=random.Random(1))
        assert network(ItemType.QUOTE) == []

    def test_feed_errors_are_skipped(self, quote_source, monkeypatch):
        def broken(url, timeout=None):
            raise ValueError("bad payload")

        monkeypatch.setattr(feeds, 'fetch_json', broken)
        network = NetworkCandidates(sources=quote_source, enabled=True)
        assert network(ItemType.QUOTE) == []

    def test_unreachable_feed(self, quote_source, monkeypatch):
        monkeypatch.setattr(feeds, 'fetch_json', lambda url, timeout=None: None)
        network = NetworkCandidates(sources=quote_source, enabled=True)
        assert network(ItemType.QUOTE) == []

    def test_limit_per_feed(self, monkeypatch):
        source = FeedSource.from_config({**QUOTES, 'limit': 2})
        monkeypatch.setattr(feeds, 'fetch_json', lambda url, timeout=None: [
            {'content': 'Quote %d' % i, 'author': 'Ann'} for i in range(6)
        ])
        network = NetworkCandidates(sources=[source], enabled=True)
        assert len(network(ItemType.QUOTE)) == 2
