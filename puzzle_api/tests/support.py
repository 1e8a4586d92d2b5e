from fastapi.testclient import TestClient

from puzzle_api.app import create_app
from puzzle_api.config import PLACEHOLDER_PUBLIC_BUCKET_URL, Settings, get_settings
from puzzle_api.db import InMemoryDbClient
from puzzle_api.dependencies import get_db_client, get_player_store, get_storage_client
from puzzle_api.kv import InMemoryKeyValueStore
from puzzle_api.storage import InMemoryStorageClient


def make_settings(**overrides) -> Settings:
    values = {
        "admin_password": "open-sesame",
        "public_bucket_url": PLACEHOLDER_PUBLIC_BUCKET_URL,
        "use_in_memory_backends": True,
        "spa_dist_dir": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class ApiTestHarness:
    """Fresh in-memory stores wired into a new app through dependency overrides."""

    def __init__(self, settings: Settings | None = None):
        self.db = InMemoryDbClient()
        self.players = InMemoryKeyValueStore()
        self.storage = InMemoryStorageClient()
        self.settings = settings or make_settings()

        self.app = create_app()
        self.app.dependency_overrides[get_db_client] = lambda: self.db
        self.app.dependency_overrides[get_player_store] = lambda: self.players
        self.app.dependency_overrides[get_storage_client] = lambda: self.storage
        self.app.dependency_overrides[get_settings] = lambda: self.settings
        self.client = TestClient(self.app)
