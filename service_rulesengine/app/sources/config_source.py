"""
Raw rules configuration sources.
"""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Union
from urllib.parse import quote

import httpx

from shared.errors import ConfigFetchError, ConfigNotFoundError
from shared.logging import get_logger
from shared.retry import RetryConfig, RetryError, retry_on_exception


class ConfigSource(ABC):
    """Base class for configuration sources."""

    @abstractmethod
    async def fetch(self, config_id: str) -> bytes:
        """Return the raw configuration for config_id.

        Raises ConfigNotFoundError when the identifier is unknown and
        ConfigFetchError for any other failure.
        """
        ...


class InMemoryConfigSource(ConfigSource):
    """Source backed by a dict, for embedding and tests."""

    def __init__(self, documents: Optional[Dict[str, Union[str, bytes]]] = None):
        self._documents: Dict[str, bytes] = {}
        for config_id, document in (documents or {}).items():
            self.put(config_id, document)

    def put(self, config_id: str, document: Union[str, bytes]) -> None:
        self._documents[config_id] = document.encode("utf-8") if isinstance(document, str) else document

    def remove(self, config_id: str) -> None:
        self._documents.pop(config_id, None)

    async def fetch(self, config_id: str) -> bytes:
        try:
            return self._documents[config_id]
        except KeyError:
            raise ConfigNotFoundError(config_id) from None


class FileConfigSource(ConfigSource):
    """Source reading <directory>/<config_id>.json."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        self.logger = get_logger("rulesengine.sources.file")

    def path_for(self, config_id: str) -> Path:
        if not config_id or "/" in config_id or "\\" in config_id or config_id.startswith("."):
            raise ConfigFetchError(config_id, "Invalid configuration identifier")
        return self.directory / f"{config_id}.json"

    async def fetch(self, config_id: str) -> bytes:
        path = self.path_for(config_id)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            raise ConfigNotFoundError(config_id, details={"path": str(path)}) from None
        except OSError as e:
            self.logger.error("Configuration file read failed", path=str(path), error=str(e))
            raise ConfigFetchError(config_id, str(e), details={"path": str(path)}) from e


class HttpConfigSource(ConfigSource):
    """Source fetching GET {base_url}/{config_id} over HTTP."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 5.0,
        retry_config: Optional[RetryConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self.logger = get_logger("rulesengine.sources.http")

        self.retry_config = retry_config or RetryConfig(
            max_attempts=3,
            base_delay=0.5,
            max_delay=5.0,
            exponential_base=2.0,
            jitter=True
        )
        self._get_with_retry = retry_on_exception(
            (httpx.TransportError, httpx.HTTPStatusError),
            config=self.retry_config
        )(self._get)

    @classmethod
    def within_budget(
        cls,
        base_url: str,
        budget_seconds: float,
        *,
        max_attempts: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "HttpConfigSource":
        """Create a source whose attempts and backoff all fit in budget_seconds.

        Each attempt gets budget / (max_attempts + 1); the backoff waits,
        jitter included, share the remaining slice.
        """
        attempt_timeout = budget_seconds / (max_attempts + 1)
        max_delay = attempt_timeout / (2 * max_attempts)
        return cls(
            base_url,
            timeout=attempt_timeout,
            retry_config=RetryConfig(
                max_attempts=max_attempts,
                base_delay=max_delay / 2,
                max_delay=max_delay,
                exponential_base=2.0,
                jitter=True
            ),
            transport=transport,
        )

    def url_for(self, config_id: str) -> str:
        return f"{self.base_url}/{quote(config_id, safe='')}"

    async def fetch(self, config_id: str) -> bytes:
        try:
            return await self._get_with_retry(config_id)
        except RetryError as e:
            self.logger.error(
                "Configuration service unavailable",
                config_id=config_id,
                attempts=e.attempts,
                error=str(e.last_exception)
            )
            raise ConfigFetchError(
                config_id,
                f"Configuration service error: {e.last_exception}",
                details={"attempts": e.attempts}
            ) from e

    async def _get(self, config_id: str) -> bytes:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.get(self.url_for(config_id))

        if response.status_code == 404:
            raise ConfigNotFoundError(config_id, details={"url": self.url_for(config_id)})

        response.raise_for_status()
        return response.content
