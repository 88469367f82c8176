"""HTTP client for interacting with Slack Web API."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any, Dict, Optional

import httpx

SLACK_API_BASE = "https://slack.com/api"


class SlackApiError(RuntimeError):
    """Raised when Slack returns an error response."""

    def __init__(self, method: str, error: str) -> None:
        super().__init__(f"Slack API error for {method}: {error}")
        self.method = method
        self.error = error


class SlackClient:
    """Async wrapper around the Slack Web API endpoints used for attendance."""

    def __init__(
        self,
        token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        page_delay: float = 0.2,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=SLACK_API_BASE,
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/x-www-form-urlencoded",
            },
            timeout=timeout,
            transport=transport,
        )
        self._page_delay = page_delay

    async def close(self) -> None:
        await self._client.aclose()

    async def _get(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        response = await self._client.get(method, params=params)
        response.raise_for_status()
        data = response.json()
        if not data.get("ok"):
            raise SlackApiError(method, data.get("error", "unknown_error"))
        return data

    async def fetch_users(self) -> list[dict[str, Any]]:
        members: list[dict[str, Any]] = []
        cursor: Optional[str] = None
        while True:
            params: Dict[str, Any] = {"limit": 200}
            if cursor:
                params["cursor"] = cursor
            data = await self._get("users.list", params)
            members.extend(member for member in data.get("members", []) if not member.get("deleted"))
            cursor = data.get("response_metadata", {}).get("next_cursor")
            if not cursor:
                break
        return members

    async def fetch_user_info(self, user_id: str) -> dict[str, Any]:
        data = await self._get("users.info", {"user": user_id})
        return data.get("user", {})

    async def fetch_channel_info(self, channel_id: str) -> dict[str, Any]:
        data = await self._get("conversations.info", {"channel": channel_id})
        return data.get("channel", {})

    async def fetch_channel_history(
        self,
        channel_id: str,
        *,
        oldest: Optional[str] = None,
        latest: Optional[str] = None,
        limit: int = 200,
    ) -> AsyncIterator[dict[str, Any]]:
        """Yield messages from `conversations.history` with pagination."""

        cursor: Optional[str] = None
        while True:
            params: Dict[str, Any] = {"channel": channel_id, "limit": limit}
            if cursor:
                params["cursor"] = cursor
            if oldest:
                params["oldest"] = oldest
            if latest:
                params["latest"] = latest

            data = await self._get("conversations.history", params)

            for message in data.get("messages", []):
                if message.get("subtype") == "channel_join":
                    continue
                yield message

            if not data.get("has_more"):
                break
            cursor = data.get("response_metadata", {}).get("next_cursor")
            if not cursor:
                break
            await asyncio.sleep(self._page_delay)


def display_name(user: dict[str, Any]) -> Optional[str]:
    """Pick the human-readable name Slack reports for a user."""

    profile = user.get("profile", {})
    return user.get("real_name") or profile.get("real_name") or user.get("name")


__all__ = ["SlackClient", "SlackApiError", "display_name"]
