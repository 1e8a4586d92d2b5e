"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from puzzle_api.config import get_settings
from puzzle_api.db import DbClient, InMemoryDbClient, SqlDbClient
from puzzle_api.kv import InMemoryKeyValueStore, KeyValueStore, RedisKeyValueStore
from puzzle_api.storage import InMemoryStorageClient, S3StorageClient, StorageClient

_db_client: DbClient | None = None
_player_store: KeyValueStore | None = None
_storage_client: StorageClient | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so in-memory state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = SqlDbClient(settings.database_url)
    return _db_client


def get_player_store() -> KeyValueStore:
    global _player_store
    if _player_store:
        return _player_store

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.redis_url:
        _player_store = InMemoryKeyValueStore()
    else:
        _player_store = RedisKeyValueStore(
            url=settings.redis_url,
            key_prefix=settings.redis_player_prefix,
        )
    return _player_store


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.s3_bucket:
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = S3StorageClient(
            bucket=settings.s3_bucket,
            region=settings.s3_region or "",
            endpoint=settings.s3_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
        )
    return _storage_client
