"""Shared pytest fixtures for Printworks tests."""

from __future__ import annotations

import io
from collections.abc import Callable
from unittest.mock import MagicMock

import pytest
from PIL import Image

from printworks.core.config import PrintworksConfig
from printworks.routing import ModelRouter, StyleCatalog, load_style_catalog
from printworks.storage import ObjectStore

# 2025-08-23T14:30:00Z
FIXED_NOW = 1755959400.0


class FakeClock:
    """Settable clock returning epoch seconds."""

    def __init__(self, now: float = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePipeline:
    """Queues sorted-set commands and applies them together on execute()."""

    def __init__(self, redis: "FakeRedis") -> None:
        self._redis = redis
        self._commands: list[tuple[str, tuple]] = []

    async def __aenter__(self) -> "FakePipeline":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self._commands.clear()

    def zremrangebyscore(self, key, low, high):
        self._commands.append(("zremrangebyscore", (key, low, high)))
        return self

    def zcard(self, key):
        self._commands.append(("zcard", (key,)))
        return self

    def zadd(self, key, mapping):
        self._commands.append(("zadd", (key, mapping)))
        return self

    def pexpire(self, key, ms):
        self._commands.append(("pexpire", (key, ms)))
        return self

    async def execute(self) -> list:
        if self._redis.fail_with is not None:
            raise self._redis.fail_with
        results = [getattr(self._redis, f"_{name}")(*args) for name, args in self._commands]
        self._commands.clear()
        return results


class FakeRedis:
    """Just enough of ``redis.asyncio.Redis`` for the sliding-log backend."""

    def __init__(self) -> None:
        self.sets: dict[str, dict[str, float]] = {}
        self.expiries: dict[str, int] = {}
        self.removed: list[tuple[str, str]] = []
        self.fail_with: Exception | None = None
        self.closed = False

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        assert transaction, "sliding log must run as a transaction"
        return FakePipeline(self)

    def _zremrangebyscore(self, key, low, high) -> int:
        members = self.sets.get(key, {})
        stale = [m for m, score in members.items() if score <= float(high)]
        for member in stale:
            del members[member]
        return len(stale)

    def _zcard(self, key) -> int:
        return len(self.sets.get(key, {}))

    def _zadd(self, key, mapping) -> int:
        self.sets.setdefault(key, {}).update(mapping)
        return len(mapping)

    def _pexpire(self, key, ms) -> bool:
        self.expiries[key] = ms
        return True

    async def zrem(self, key, member) -> int:
        if self.fail_with is not None:
            raise self.fail_with
        self.removed.append((key, member))
        return 1 if self.sets.get(key, {}).pop(member, None) is not None else 0

    async def delete(self, key) -> int:
        if self.fail_with is not None:
            raise self.fail_with
        return 1 if self.sets.pop(key, None) is not None else 0

    async def ping(self) -> bool:
        if self.fail_with is not None:
            raise self.fail_with
        return True

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def test_config() -> PrintworksConfig:
    """Create a test configuration that ignores the environment's .env file.

    Returns:
        PrintworksConfig instance with fake store credentials
    """
    return PrintworksConfig(
        _env_file=None,
        redis_url=None,
        aws_region="eu-north-1",
        s3_bucket="test-bucket",
        aws_access_key_id="test-key",
        aws_secret_access_key="test-secret",
        store_timeout_seconds=1.0,
        admission_timeout_seconds=0.5,
        fetch_timeout_seconds=1.0,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture(scope="session")
def catalog() -> StyleCatalog:
    """The style catalog shipped with the package."""
    return load_style_catalog()


@pytest.fixture
def router(catalog: StyleCatalog) -> ModelRouter:
    return ModelRouter(catalog)


@pytest.fixture
def s3_client() -> MagicMock:
    """A mocked boto3 S3 client.

    ``head_object`` succeeds (object exists) and presigned URLs embed the key,
    unless a test reconfigures them.
    """
    client = MagicMock()
    client.generate_presigned_url.side_effect = (
        lambda op, Params, ExpiresIn: f"https://signed.example/{Params['Key']}?ttl={ExpiresIn}"
    )
    return client


@pytest.fixture
def object_store(s3_client: MagicMock) -> ObjectStore:
    return ObjectStore("test-bucket", "eu-north-1", s3_client)


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    """Factory for encoded test images.

    Returns:
        ``make_image(width, height, mode="RGB", fmt="PNG", color=...)`` → bytes
    """

    def _make(
        width: int,
        height: int,
        mode: str = "RGB",
        fmt: str = "PNG",
        color: tuple[int, ...] = (200, 40, 40),
    ) -> bytes:
        image = Image.new(mode, (width, height), color)
        buffer = io.BytesIO()
        image.save(buffer, format=fmt)
        return buffer.getvalue()

    return _make
