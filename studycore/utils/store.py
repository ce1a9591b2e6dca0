"""Durable key -> JSON blob stores.

Stores have no transactions; the last ``save`` for a key wins. ``load``
returns ``None`` for absent keys and for records that are not valid JSON
(the corrupted record is logged and ignored so callers fall back to defaults).
"""
import os
import json
import pathlib
from typing import Optional, Dict, Any

import redis

from .logger import get_logger

LOG = get_logger()


class KeyValueStore:
    def load(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def save(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError

    def _decode(self, key: str, raw: Optional[str]) -> Optional[Any]:
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            LOG.warning('store_record_corrupted', extra={'store_key': key, 'error': str(e)})
            return None


class MemoryStore(KeyValueStore):
    """Keeps serialized JSON in a dict; values are copied on every load/save."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def load(self, key: str) -> Optional[Any]:
        return self._decode(key, self._data.get(key))

    def save(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def raw(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def put_raw(self, key: str, raw: str) -> None:
        self._data[key] = raw


class FileStore(KeyValueStore):
    """One JSON file per key under a directory."""

    def __init__(self, directory: str):
        self.directory = pathlib.Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        LOG.info('FileStore initialized', extra={'directory': str(self.directory)})

    def _path(self, key: str) -> pathlib.Path:
        safe = ''.join(c if c.isalnum() or c in '-_.' else '_' for c in key)
        return self.directory / f'{safe}.json'

    def load(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        return self._decode(key, path.read_text(encoding='utf-8'))

    def save(self, key: str, value: Any) -> None:
        path = self._path(key)
        tmp = path.with_suffix('.json.tmp')
        try:
            tmp.write_text(json.dumps(value), encoding='utf-8')
            os.replace(tmp, path)
        finally:
            if tmp.exists():
                tmp.unlink()

    def remove(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()


class RedisStore(KeyValueStore):
    def __init__(self, client, prefix: str = 'studycore:'):
        self._client = client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f'{self.prefix}{key}'

    def load(self, key: str) -> Optional[Any]:
        return self._decode(key, self._client.get(self._key(key)))

    def save(self, key: str, value: Any) -> None:
        self._client.set(self._key(key), json.dumps(value))

    def remove(self, key: str) -> None:
        self._client.delete(self._key(key))


def create_store(settings) -> KeyValueStore:
    """Build the store named by ``settings.STORE_BACKEND``.

    A redis backend that cannot be reached falls back to an in-memory store.
    """
    backend = (settings.STORE_BACKEND or 'memory').lower()
    if backend == 'file':
        directory = pathlib.Path(settings.STORE_PATH)
        if directory.suffix:
            directory = directory.parent
        return FileStore(str(directory))
    if backend == 'redis':
        try:
            if settings.REDIS_URL:
                client = redis.from_url(settings.REDIS_URL, decode_responses=True)
            else:
                client = redis.Redis(host=settings.REDIS_HOST, port=settings.REDIS_PORT, password=settings.REDIS_PASSWORD or None, decode_responses=True)
            client.ping()
            LOG.info('store_using_redis', extra={'redis_host': settings.REDIS_HOST})
            return RedisStore(client, prefix=settings.STORE_KEY_PREFIX)
        except Exception as e:
            LOG.warning('Redis not available for state store, using in-memory store', extra={'error': str(e)})
            return MemoryStore()
    if backend != 'memory':
        LOG.warning('unknown_store_backend', extra={'backend': backend})
    return MemoryStore()
