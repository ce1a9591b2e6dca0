import json
import pytest

from studycore.config import Settings
from studycore.utils import MemoryStore, FileStore, RedisStore, create_store
from tests.fixtures.mock_redis import MockRedisClient, UnreachableRedisClient


def test_memory_store_copies_values():
    store = MemoryStore()
    value = {'items': [1, 2]}
    store.save('k', value)
    value['items'].append(3)
    loaded = store.load('k')
    assert loaded == {'items': [1, 2]}
    loaded['items'].clear()
    assert store.load('k') == {'items': [1, 2]}
    store.remove('k')
    assert store.load('k') is None
    store.remove('k')


def test_corrupted_record_loads_as_none():
    store = MemoryStore()
    store.put_raw('k', '{"broken"')
    assert store.load('k') is None


def test_file_store_round_trip(tmp_path):
    store = FileStore(str(tmp_path / 'state'))
    store.save('srs_items', {'a': {'easeFactor': 2.5}})
    assert store.load('srs_items') == {'a': {'easeFactor': 2.5}}
    assert json.loads((tmp_path / 'state' / 'srs_items.json').read_text()) == {'a': {'easeFactor': 2.5}}
    assert not list((tmp_path / 'state').glob('*.tmp'))
    assert store.load('missing') is None
    store.remove('srs_items')
    assert store.load('srs_items') is None


def test_file_store_sanitizes_keys(tmp_path):
    store = FileStore(str(tmp_path))
    store.save('../escape:key', [1])
    assert store.load('../escape:key') == [1]
    assert all(p.parent == tmp_path for p in tmp_path.iterdir())


def test_redis_store_prefixes_keys(mock_redis_client):
    client = mock_redis_client
    store = RedisStore(client, prefix='test:')
    store.save('adaptive_learning_badges', [{'id': 'perfect_score'}])
    assert 'test:adaptive_learning_badges' in client.store
    assert store.load('adaptive_learning_badges') == [{'id': 'perfect_score'}]
    store.remove('adaptive_learning_badges')
    assert store.load('adaptive_learning_badges') is None


def test_create_store_backends(tmp_path, monkeypatch):
    assert isinstance(create_store(Settings(_env_file=None, STORE_BACKEND='memory')), MemoryStore)
    assert isinstance(create_store(Settings(_env_file=None, STORE_BACKEND='bogus')), MemoryStore)

    file_store = create_store(Settings(_env_file=None, STORE_BACKEND='file', STORE_PATH=str(tmp_path / 'data' / 'state.json')))
    assert isinstance(file_store, FileStore)
    assert file_store.directory == tmp_path / 'data'

    monkeypatch.setattr('redis.Redis', lambda *a, **k: MockRedisClient())
    assert isinstance(create_store(Settings(_env_file=None, STORE_BACKEND='redis', REDIS_URL=None)), RedisStore)


def test_create_store_falls_back_when_redis_unreachable(monkeypatch):
    monkeypatch.setattr('redis.Redis', lambda *a, **k: UnreachableRedisClient())
    store = create_store(Settings(_env_file=None, STORE_BACKEND='redis', REDIS_URL=None))
    assert isinstance(store, MemoryStore)


def test_file_store_failed_replace_leaves_no_temp_file(tmp_path, monkeypatch):
    store = FileStore(str(tmp_path))
    store.save('srs_items', {'a': 1})

    def broken_replace(src, dst):
        raise OSError('disk full')

    monkeypatch.setattr('studycore.utils.store.os.replace', broken_replace)
    with pytest.raises(OSError):
        store.save('srs_items', {'a': 2})
    assert not list(tmp_path.glob('*.tmp'))
    assert store.load('srs_items') == {'a': 1}
