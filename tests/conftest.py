"""Shared fixtures for agentlens tests."""

import os
import re

import pytest

from agentlens.search.embedder import Embedder
from agentlens.search.errors import EmbedderError

FAKE_DIMENSIONS = 256


class FakeEmbedder(Embedder):
    """
    Deterministic in-process embedder.

    Every distinct word gets its own dimension (wrapping after
    ``dimensions`` words), so texts that share words get similar vectors.
    Failures can be injected per text.
    """

    def __init__(self, dimensions: int = FAKE_DIMENSIONS, fail_on: str | None = None):
        self._dimensions = dimensions
        self._vocabulary: dict[str, int] = {}
        self.fail_on = fail_on
        self.batch_calls: list[list[str]] = []
        self.health_checks = 0
        self.healthy = True

    def dimensions(self) -> int:
        return self._dimensions

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.batch_calls.append(list(texts))
        if self.fail_on is not None and any(self.fail_on in t for t in texts):
            raise EmbedderError(f"embedding failed for text containing {self.fail_on!r}")
        return [self._vector(t) for t in texts]

    async def health_check(self) -> None:
        self.health_checks += 1
        if not self.healthy:
            raise EmbedderError("fake embedder is down")

    def _vector(self, text: str) -> list[float]:
        vector = [0.0] * self._dimensions
        for word in re.findall(r"[a-z0-9_]+", text.lower()):
            index = self._vocabulary.setdefault(word, len(self._vocabulary))
            vector[index % self._dimensions] += 1.0
        return vector


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def project(tmp_path):
    """A small project tree with Python, Go and text files."""
    root = tmp_path / "project"
    root.mkdir()

    (root / "auth.py").write_text(
        "import hashlib\n"
        "\n"
        "\n"
        "def hash_password(password):\n"
        '    """Hash a password for storage."""\n'
        "    return hashlib.sha256(password.encode()).hexdigest()\n"
        "\n"
        "\n"
        "def verify_password(password, digest):\n"
        "    return hash_password(password) == digest\n"
    )
    (root / "server.go").write_text(
        "package main\n"
        "\n"
        "func handleRequest(w http.ResponseWriter, r *http.Request) {\n"
        '    w.Write([]byte("ok"))\n'
        "}\n"
    )
    (root / "notes.txt").write_text("Deployment notes\nRun the migrations before restarting.\n")
    return root


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the caller's AGENTLENS_* settings out of every test."""
    for name in list(os.environ):
        if name.startswith("AGENTLENS_"):
            monkeypatch.delenv(name)
