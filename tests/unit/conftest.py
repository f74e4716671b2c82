"""Shared fixtures: an in-memory store and a small build directory."""

import pytest

from sitedeploy.infrastructure.storage.client import MockObjectStoreClient


@pytest.fixture
def store() -> MockObjectStoreClient:
    return MockObjectStoreClient()


@pytest.fixture
def dist(tmp_path):
    """
    A typical build output:

        dist/index.html
        dist/error.html
        dist/css/app.css
    """
    root = tmp_path / "dist"
    (root / "css").mkdir(parents=True)
    (root / "index.html").write_bytes(b"<h1>Home</h1>")
    (root / "error.html").write_bytes(b"<h1>Not found</h1>")
    (root / "css" / "app.css").write_bytes(b"body { margin: 0; }")
    return root
