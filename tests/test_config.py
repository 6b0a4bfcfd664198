"""Tests for settings and context construction."""

import logging

from katabasis_collections import AppContext
from katabasis_collections import JsonCollectionStore
from katabasis_collections import Settings
from katabasis_collections import ThunderstoreClient
from katabasis_collections import setup_logging


def test_settings_paths(tmp_path):
    """Test derived paths live under the app directory."""
    settings = Settings(app_dir=tmp_path)

    assert settings.collections_dir == tmp_path / "collections"
    assert settings.cache_dir == tmp_path / "cache" / "plugins"
    assert settings.store_path == tmp_path / "collections.json"
    assert settings.exports_dir == tmp_path / "exports"
    assert settings.registry_url == "https://thunderstore.io"


def test_settings_from_env(tmp_path, monkeypatch):
    monkeypatch.setenv("KATABASIS_APP_DIR", str(tmp_path))
    monkeypatch.setenv("KATABASIS_REGISTRY_URL", "https://mirror.test")
    monkeypatch.setenv("KATABASIS_RETRY_ATTEMPTS", "2")

    settings = Settings()

    assert settings.app_dir == tmp_path
    assert settings.registry_url == "https://mirror.test"
    assert settings.retry_attempts == 2


def test_context_from_settings(tmp_path, registry):
    """Test the context wires paths and injected collaborators."""
    ctx = AppContext.from_settings(Settings(app_dir=tmp_path / "app"), registry=registry)

    assert (tmp_path / "app").is_dir()
    assert ctx.registry is registry
    assert ctx.cache.root == tmp_path / "app" / "cache" / "plugins"
    assert isinstance(ctx.store, JsonCollectionStore)
    assert ctx.collection_dir("a:b") == tmp_path / "app" / "collections" / "a_b"


def test_context_default_registry(tmp_path):
    ctx = AppContext.from_settings(Settings(app_dir=tmp_path, registry_url="https://mirror.test/", retry_attempts=3))

    assert isinstance(ctx.registry, ThunderstoreClient)
    assert ctx.registry.base_url == "https://mirror.test"
    assert ctx.registry.retry_attempts == 3


def test_collection_lock_is_per_name(ctx):
    assert ctx.collection_lock("a") is ctx.collection_lock("a")
    assert ctx.collection_lock("a") is not ctx.collection_lock("b")


def test_setup_logging(tmp_path, monkeypatch):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    setup_logging(Settings(app_dir=tmp_path, log_level="debug"))

    assert calls[0]["level"] == logging.DEBUG
