import re
from typing import Optional

import httpx
import json5
import orjson
from pydantic import ValidationError

from .models import ServerConfig
from .utils.cache import ServerDefsCache
from .utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_DEFS_VAR = "geeServerDefs"


class ServerDefsError(Exception):
    """Raised when the server definitions are missing or unusable."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


def server_defs_url(base_url: str, var: str = DEFAULT_DEFS_VAR) -> str:
    """URL of the definitions document, relative to the server base URL."""
    return f"{base_url}query?request=Json&var={var}"


def _strip_assignment(text: str, var: str) -> str:
    body = text.strip()
    assignment = re.match(rf"^(?:var\s+)?{re.escape(var)}\s*=\s*", body)
    if assignment:
        body = body[assignment.end():]
    body = body.rstrip().rstrip(";").rstrip()
    return body


def parse_server_defs(text: str, var: str = DEFAULT_DEFS_VAR) -> ServerConfig:
    """Parse the definitions script (or bare JSON) into a ServerConfig."""
    if not text or not text.strip():
        raise ServerDefsError("Empty server definitions document")

    body = _strip_assignment(text, var)

    try:
        data = orjson.loads(body)
    except orjson.JSONDecodeError:
        # Older servers emit a script literal rather than strict JSON.
        try:
            data = json5.loads(body)
        except ValueError as exc:
            raise ServerDefsError(f"Unparseable server definitions: {exc}") from None

    if not isinstance(data, dict):
        raise ServerDefsError("Server definitions must be an object")

    try:
        return ServerConfig.model_validate(data)
    except ValidationError as exc:
        raise ServerDefsError(f"Invalid server definitions: {exc.error_count()} error(s)") from exc


class GeeServerClient:
    def __init__(self, base_url: str, var: str = DEFAULT_DEFS_VAR, timeout: int = 20):
        self.base_url = base_url
        self.var = var
        self.timeout = timeout

    async def __aenter__(self):
        self.session = httpx.AsyncClient(timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.session.aclose()

    async def fetch_server_defs(self) -> ServerConfig:
        """Request the definitions document once; no retries."""
        url = server_defs_url(self.base_url, self.var)
        logger.info("Fetching server definitions", extra={'url': url})

        try:
            response = await self.session.get(url)
        except httpx.HTTPError as exc:
            raise ServerDefsError(f"Server definitions request failed: {exc}", url=url) from exc

        if response.status_code != 200:
            raise ServerDefsError(f"HTTP {response.status_code} from {url}", url=url)

        try:
            config = parse_server_defs(response.text, self.var)
        except ServerDefsError as exc:
            exc.url = url
            raise

        logger.info(
            "Server definitions loaded",
            extra={'url': url, 'layers': len(config.layers), 'search_tabs': len(config.searchTabs)}
        )
        return config


async def load_server_defs(
    base_url: str,
    var: str = DEFAULT_DEFS_VAR,
    *,
    timeout: int = 20,
    cache: Optional[ServerDefsCache] = None,
) -> ServerConfig:
    """Fetch the server definitions, going through ``cache`` when given."""
    url = server_defs_url(base_url, var)

    if cache is not None:
        cached = cache.get(url)
        if cached is not None:
            return cached

    async with GeeServerClient(base_url, var, timeout=timeout) as client:
        config = await client.fetch_server_defs()

    if cache is not None:
        cache.set(url, config)
    return config
