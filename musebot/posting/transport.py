"""Posting transports: the external side effect guarded by the RateGate."""

from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from loguru import logger


@dataclass
class PostResult:
    """Outcome of one transport call."""

    success: bool
    post_id: str | None = None
    url: str | None = None
    error: str | None = None


class PostingTransport(Protocol):
    """Anything that can publish a formatted text."""

    async def post(self, text: str) -> PostResult: ...


class NullTransport:
    """Transport used when posting is disabled; every call fails."""

    async def post(self, text: str) -> PostResult:
        return PostResult(success=False, error="Posting transport not configured")


class TwitterApiTransport:
    """
    Posts through TwitterAPI.io.

    The auth session comes from the provider's login flow and is treated as
    an opaque credential here.
    """

    def __init__(
        self,
        api_key: str,
        auth_session: str,
        proxy: str,
        base_url: str = "https://api.twitterapi.io",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.auth_session = auth_session
        self.proxy = proxy
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def post(self, text: str) -> PostResult:
        headers = {
            "X-API-Key": self.api_key,
            "Content-Type": "application/json",
        }
        payload = {
            "auth_session": self.auth_session,
            "tweet_text": text,
            "proxy": self.proxy,
        }

        try:
            response = await self.client.post(
                f"{self.base_url}/twitter/create_tweet",
                json=payload,
                headers=headers,
            )
            data: dict[str, Any] = response.json()
        except httpx.RequestError as e:
            logger.error(f"TwitterAPI.io request failed: {e}")
            return PostResult(success=False, error=f"Error connecting to TwitterAPI.io: {e}")
        except ValueError as e:
            return PostResult(success=False, error=f"Invalid response from TwitterAPI.io: {e}")

        if data.get("status") != "success":
            return PostResult(success=False, error=data.get("msg") or "Unknown error from TwitterAPI.io")

        post_id = (
            ((data.get("data") or {}).get("create_tweet") or {})
            .get("tweet_result", {})
            .get("result", {})
            .get("rest_id")
        )
        return PostResult(
            success=True,
            post_id=post_id,
            url=f"https://twitter.com/user/status/{post_id}" if post_id else None,
        )

    async def close(self) -> None:
        await self.client.aclose()
