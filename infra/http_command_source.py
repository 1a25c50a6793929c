from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

import httpx

from domain.errors import TransportError
from domain.ports import CommandSource

logger = logging.getLogger(__name__)


class HttpCommandSource(CommandSource):
    """
    Fetches pending command envelopes with a GET. The endpoint answers with a
    JSON list of envelopes, a single envelope, or an empty body / 204.
    """

    def __init__(
        self,
        url: str,
        *,
        auth_token: Optional[str] = None,
        timeout_sec: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.url = url
        auth = ("use-token-auth", auth_token) if auth_token else None
        self._client = httpx.Client(timeout=timeout_sec, auth=auth, transport=transport)

    def fetch(self) -> List[Mapping[str, Any]]:
        try:
            r = self._client.get(self.url)
            r.raise_for_status()
        except httpx.HTTPError as e:
            raise TransportError(f"command poll failed: {e}") from e

        if r.status_code == 204 or not r.content.strip():
            return []
        try:
            body = r.json()
        except ValueError as e:
            raise TransportError(f"command poll returned non-JSON body: {e}") from e

        if isinstance(body, list):
            return body
        return [body]

    def close(self) -> None:
        self._client.close()
