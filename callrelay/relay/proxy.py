"""Browser control actions forwarded to the upstream telephony API."""

from __future__ import annotations

import json
from typing import Any

import httpx

from callrelay.config import UpstreamConfig
from callrelay.errors import ClientInputError, UpstreamUnavailable
from callrelay.models import UpstreamReply
from callrelay.utils.logging import get_logger

log = get_logger(__name__)

CREDENTIAL_FIELD = "auth_token"
# Recording is never toggled from the browser
FORBIDDEN_TWOLEG_FIELDS = ("record",)


class ProxyForwarder:
    """Sanitizes bodies, applies the credential policy and relays replies.

    Upstream 4xx/5xx replies are returned as-is; only transport failures
    raise. Calls are not retried: neither action is idempotent.
    """

    def __init__(
        self,
        config: UpstreamConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._client = client or httpx.AsyncClient(
            base_url=config.api_base,
            timeout=config.timeout,
        )
        self._client_owned = client is None

    @property
    def api_base(self) -> str:
        return self._config.api_base

    async def close(self) -> None:
        if self._client_owned:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Body construction
    # ------------------------------------------------------------------

    def apply_credential(self, body: dict[str, Any]) -> dict[str, Any]:
        if self._config.auth_token:
            body[CREDENTIAL_FIELD] = self._config.auth_token
        else:
            body.pop(CREDENTIAL_FIELD, None)
        return body

    def build_twoleg_body(self, body: Any) -> dict[str, Any]:
        if body is None:
            body = {}
        if not isinstance(body, dict):
            raise ClientInputError("Body must be a JSON object")
        clean = dict(body)
        for name in FORBIDDEN_TWOLEG_FIELDS:
            clean.pop(name, None)
        return self.apply_credential(clean)

    def build_hangup_body(self, body: Any) -> dict[str, Any]:
        call_id = body.get("call_id") if isinstance(body, dict) else None
        if not call_id:
            raise ClientInputError("Missing call_id")
        return self.apply_credential({"call_id": call_id})

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def forward_twoleg(self, body: Any) -> UpstreamReply:
        return await self._forward("/twoleg", self.build_twoleg_body(body))

    async def forward_hangup(self, body: Any) -> UpstreamReply:
        return await self._forward("/hangup", self.build_hangup_body(body))

    async def _forward(self, path: str, body: dict[str, Any]) -> UpstreamReply:
        try:
            resp = await self._client.post(path, json=body)
        except httpx.HTTPError as e:
            detail = str(e) or type(e).__name__
            log.warning("upstream_unavailable", path=path, error=detail)
            raise UpstreamUnavailable(detail) from e

        reply = parse_reply(resp.status_code, resp.content, resp.headers.get("content-type", ""))
        log.info("upstream_relayed", path=path, status=reply.status, json=reply.is_json)
        return reply


def parse_reply(status: int, body: bytes, content_type: str) -> UpstreamReply:
    """Decode a JSON body when declared; fall back to raw text if it won't parse."""
    reply = UpstreamReply(status=status, body=body, content_type=content_type)
    if "application/json" not in content_type.lower():
        return reply
    try:
        reply.data = json.loads(reply.text)
    except ValueError:
        log.warning("upstream_json_malformed", status=status)
        reply.content_type = "text/plain; charset=utf-8"
        return reply
    reply.is_json = True
    return reply
