"""Error taxonomy for the relay and proxy surfaces."""

from __future__ import annotations


class RelayError(Exception):
    """Base class for errors mapped to an HTTP response at the route boundary."""

    status = 500

    def to_payload(self) -> dict[str, str]:
        return {"error": str(self)}


class ClientInputError(RelayError):
    """The browser sent a request we refuse to act on (e.g. missing call_id)."""

    status = 400


class UpstreamUnavailable(RelayError):
    """The upstream telephony API could not be reached or did not answer."""

    status = 502

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def to_payload(self) -> dict[str, str]:
        return {"error": "bad_gateway", "detail": self.detail}
