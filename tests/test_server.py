"""Tests for the Flask API."""

import pytest

import config
import server
from engine.items import ItemType, build_document

ADMIN_KEY = 'secret'


@pytest.fixture
def api(monkeypatch, store, selector):
    monkeypatch.setattr(server, 'item_store', store)
    monkeypatch.setattr(server, 'selection_engine', selector)
    monkeypatch.setattr(config, 'ADMIN_INGEST_KEY', ADMIN_KEY)
    server.app.config['TESTING'] = True
    return server.app.test_client()


def seed(store, item_type, raw):
    doc = build_document(item_type, raw)
    store.items.insert_one(doc)
    return doc


class TestHelpers:

    def test_parse_types(self):
        assert server.parse_types(None) == config.DEFAULT_TYPES
        assert server.parse_types('Joke, podcast,joke,video') == ['joke', 'video']
        assert server.parse_types('podcast') == config.DEFAULT_TYPES

    def test_parse_flag(self):
        assert server.parse_flag('1')
        assert server.parse_flag('true')
        assert not server.parse_flag(None)
        assert not server.parse_flag('0')


class TestRandom:
    """GET /api/random"""

    def test_default_types(self, api):
        resp = api.get('/api/random')
        assert resp.status_code == 200
        assert resp.get_json()['item']['type'] == 'image'
        assert 'debug' not in resp.get_json()

    def test_stored_item_with_debug(self, api, store):
        seed(store, 'joke', {'text': 'I told a UDP joke once.', 'provider': 'jokeapi'})
        resp = api.get('/api/random?types=joke&debug=1')
        data = resp.get_json()
        assert data['item'] == {
            'type': 'joke', 'text': 'I told a UDP joke once.',
            'source': {'name': 'jokeapi', 'url': ''}, 'provider': 'jokeapi',
        }
        assert data['debug']['total'] == 1
        assert data['debug']['fallback'] is False

    def test_hints_reach_network(self, api, network):
        api.get('/api/random?types=image&q=maps,trains')
        assert network.calls == [(ItemType.IMAGE, ['maps', 'trains'])]

    def test_errors_become_500(self, api, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("selection exploded")

        monkeypatch.setattr(server.selection_engine, 'select_first', boom)
        resp = api.get('/api/random')
        assert resp.status_code == 500
        assert resp.get_json() == {'error': 'selection exploded'}

    def test_single_type(self, api):
        resp = api.get('/api/random/fact')
        assert resp.status_code == 200
        assert resp.get_json()['item']['type'] == 'fact'

    def test_single_type_unknown(self, api):
        assert api.get('/api/random/podcast').status_code == 404

    def test_single_type_without_content(self, api):
        assert api.get('/api/random/video').status_code == 404


class TestIngest:
    """Admin ingestion routes"""

    def test_requires_key(self, api):
        assert api.post('/api/ingest/fact', json={'items': []}).status_code == 401
        assert api.post('/api/ingest/fact?key=wrong', json={'items': []}).status_code == 401

    def test_unconfigured_key_rejects_everything(self, api, monkeypatch):
        monkeypatch.setattr(config, 'ADMIN_INGEST_KEY', '')
        assert api.post('/api/ingest/fact?key=', json={'items': []}).status_code == 401

    def test_push_items(self, api, store):
        resp = api.post('/api/ingest/fact', json={'items': [{'text': 'Honey never spoils.'}, {}]},
                        headers={'x-admin-ingest-key': ADMIN_KEY})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data['inserted'] == 1
        assert data['rejected'] == 1
        assert store.items.count_documents({'type': 'fact'}) == 1

    def test_dry_run(self, api, store):
        resp = api.post(f'/api/ingest/image?key={ADMIN_KEY}',
                        json={'items': [{'url': 'https://x.test/a.png'}], 'dryRun': True})
        data = resp.get_json()
        assert data['dryRun'] is True
        assert data['sample'][0]['url'] == 'https://x.test/a.png'
        assert store.items.count_documents({}) == 0

    def test_bad_body(self, api):
        resp = api.post(f'/api/ingest/fact?key={ADMIN_KEY}', json={'items': 'nope'})
        assert resp.status_code == 400

    def test_non_object_body(self, api):
        resp = api.post(f'/api/ingest/fact?key={ADMIN_KEY}', json=[1, 2])
        assert resp.status_code == 400
        assert resp.get_json() == {'error': 'Body must be a JSON object'}

    def test_non_list_queries(self, api, store):
        resp = api.post(f'/api/ingest/video?key={ADMIN_KEY}',
                        json={'items': [{'url': 'https://youtu.be/abc123', 'title': 'Tiny houses', 'queries': 5}]})
        assert resp.status_code == 200
        assert resp.get_json()['inserted'] == 1
        assert store.items.count_documents({'type': 'video'}) == 1

    def test_unknown_type(self, api):
        assert api.post(f'/api/ingest/podcast?key={ADMIN_KEY}', json={'items': []}).status_code == 404

    def test_pull_feeds(self, api, monkeypatch):
        calls = []

        def fake_pull(item_type, store, **kwargs):
            calls.append((item_type, kwargs))
            return server.ingest_items(item_type, [{'text': 'Pulled fact.'}], store, dry_run=kwargs['dry_run'])

        monkeypatch.setattr(server, 'pull_feeds', fake_pull)
        resp = api.get(f'/api/ingest/fact?key={ADMIN_KEY}&sources=numbers,catfact&q=cats&rounds=50&dryRun=1')
        assert resp.status_code == 200
        assert resp.get_json()['unique'] == 1
        item_type, kwargs = calls[0]
        assert item_type == ItemType.FACT
        assert kwargs['names'] == ['numbers', 'catfact']
        assert kwargs['query'] == 'cats'
        assert kwargs['rounds'] == 10
        assert kwargs['dry_run'] is True

    def test_pull_bad_rounds(self, api):
        assert api.get(f'/api/ingest/fact?key={ADMIN_KEY}&rounds=many').status_code == 400


class TestFeedback:
    """POST /api/feedback/dislike"""

    def test_dislike_by_key(self, api, store):
        doc = seed(store, 'image', {'url': 'https://x.test/a.png'})
        resp = api.post('/api/feedback/dislike', json={'type': 'image', 'key': {'url': doc['url']}})
        assert resp.get_json() == {'success': True, 'found': True, 'dislikeCount': 1, 'isSuppressed': False}

    def test_dislike_by_top_level_field(self, api, store):
        doc = seed(store, 'fact', {'text': 'Bananas are berries.'})
        resp = api.post('/api/feedback/dislike', json={'type': 'fact', 'hash': doc['hash']})
        assert resp.get_json()['dislikeCount'] == 1

    def test_dislike_by_object_id(self, api, store):
        seed(store, 'fact', {'text': 'Bananas are berries.'})
        oid = str(store.items.find_one({})['_id'])
        resp = api.post('/api/feedback/dislike', json={'type': 'fact', 'key': {'_id': oid}})
        assert resp.get_json()['found'] is True

    def test_missing_key(self, api):
        assert api.post('/api/feedback/dislike', json={'type': 'image'}).status_code == 400

    def test_missing_type(self, api):
        assert api.post('/api/feedback/dislike', json={'url': 'https://x.test'}).status_code == 400

    def test_unknown_item(self, api):
        resp = api.post('/api/feedback/dislike', json={'type': 'image', 'url': 'https://nowhere.test'})
        assert resp.status_code == 200
        assert resp.get_json()['found'] is False

    def test_operator_values_rejected(self, api, store):
        seed(store, 'image', {'url': 'https://x.test/a.png'})
        resp = api.post('/api/feedback/dislike', json={'type': 'image', 'url': {'$exists': True}})
        assert resp.status_code == 400
        resp = api.post('/api/feedback/dislike', json={'type': 'image', 'key': {'hash': {'$ne': ''}}})
        assert resp.status_code == 400
        assert store.items.find_one({}).get('dislikeCount', 0) == 0

    def test_non_string_and_empty_values_rejected(self, api):
        assert api.post('/api/feedback/dislike', json={'type': 'fact', 'text': 42}).status_code == 400
        assert api.post('/api/feedback/dislike', json={'type': 'fact', 'text': '  '}).status_code == 400

    def test_invalid_object_id(self, api):
        resp = api.post('/api/feedback/dislike', json={'type': 'fact', 'key': {'_id': 'not-an-id'}})
        assert resp.status_code == 400
        resp = api.post('/api/feedback/dislike', json={'type': 'fact', '_id': 12})
        assert resp.status_code == 400

    def test_key_must_be_object(self, api):
        resp = api.post('/api/feedback/dislike', json={'type': 'fact', 'key': ['hash']})
        assert resp.status_code == 400

    def test_non_object_body(self, api):
        assert api.post('/api/feedback/dislike', json=[1, 2]).status_code == 400
        assert api.post('/api/feedback/dislike', json='image').status_code == 400


class TestAdmin:

    def test_health_without_database(self, api, monkeypatch, offline_store):
        monkeypatch.setattr(server, 'item_store', offline_store)
        monkeypatch.setattr(config, 'MONGO_URI', '')
        assert api.get('/api/health').get_json() == {'ping': 0, 'hasEnv': False}

    def test_health(self, api, monkeypatch):
        monkeypatch.setattr(server.item_store, 'ping', lambda: True)
        monkeypatch.setattr(config, 'MONGO_URI', 'mongodb://db.test')
        assert api.get('/api/health').get_json() == {'ping': 1, 'hasEnv': True}

    def test_stats(self, api, store):
        seed(store, 'fact', {'text': 'Bananas are berries.'})
        api.get('/api/random/fact')
        data = api.get('/api/stats').get_json()
        assert data['counts']['fact'] == 1
        assert data['fatigue']['global']['items'] == 1
        assert data['fatigue']['types']['fact']['items'] == 1

    def test_reset_fatigue(self, api):
        api.get('/api/random/fact')
        assert api.post('/api/admin/reset-fatigue').status_code == 401
        assert api.post(f'/api/admin/reset-fatigue?key={ADMIN_KEY}').get_json() == {'success': True}
        assert api.get('/api/stats').get_json()['fatigue']['global']['items'] == 0

    def test_types(self, api):
        data = api.get('/api/types').get_json()
        assert data['types'] == config.ITEM_TYPES
        assert {'name': 'uselessfacts', 'enabled': True} in data['sources']['fact']
