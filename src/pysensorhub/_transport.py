"""HTTP transport for snapshot documents."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pysensorhub.exceptions import HubTransportError

_logger = logging.getLogger(__name__)

USER_AGENT = "pysensorhub"


class SnapshotTransport(Protocol):
    """Structural interface of the HTTP sink's transport.

    Tests pass a recording double; production uses :class:`HttpSnapshotTransport`.
    """

    async def post_document(self, document: Mapping[str, Any]) -> int: ...


class HttpSnapshotTransport:
    """POST each snapshot document as JSON to one endpoint."""

    def __init__(
        self,
        endpoint: str,
        http_session: aiohttp.ClientSession,
        *,
        timeout: float = 10.0,
        pretty: bool = False,
    ) -> None:
        self._endpoint = endpoint
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._pretty = pretty

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def post_document(self, document: Mapping[str, Any]) -> int:
        """Send one document; returns the HTTP status.

        Raises
        ------
        HubTransportError
            On connection failures and non-2xx answers.
        """
        body = json.dumps(document, indent=4 if self._pretty else None, ensure_ascii=False)
        headers = {
            "content-type": "application/json; charset=UTF-8",
            "user-agent": USER_AGENT,
        }

        _logger.debug("POST %s (%d bytes)", self._endpoint, len(body))

        try:
            async with self._http.post(self._endpoint, data=body, headers=headers, timeout=self._timeout) as resp:
                if not 200 <= resp.status < 300:
                    text = await resp.text()
                    raise HubTransportError(
                        f"HTTP {resp.status} from {self._endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=self._endpoint,
                    )
                return resp.status
        except HubTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise HubTransportError(
                f"Request to {self._endpoint} failed: {exc}",
                endpoint=self._endpoint,
            ) from exc
