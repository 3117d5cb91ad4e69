from __future__ import annotations

import asyncio
import json
import logging
import random
from typing import Any, Mapping, Optional
from urllib.parse import quote, urlparse

import httpx

from .constants import DISCORD_API_BASE_URL
from .errors import DiscordAPIError, DiscordPermanentError, DiscordTransientError

logger = logging.getLogger(__name__)

QueryParams = Mapping[str, Any]


def encode_emoji(emoji: str) -> str:
    return quote(emoji.strip(), safe="")


class DiscordRestClient:
    def __init__(
        self,
        *,
        bot_token: str,
        timeout_seconds: float = 10.0,
        base_url: str = DISCORD_API_BASE_URL,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        retry_max_delay: float = 30.0,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout_seconds)
        self._authorization_header = f"Bot {bot_token}"
        self._max_retries = max_retries
        self._retry_base_delay = retry_base_delay
        self._retry_max_delay = retry_max_delay

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "DiscordRestClient":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.close()

    def _calculate_retry_delay(self, attempt: int) -> float:
        delay = self._retry_base_delay * (2**attempt) + random.uniform(0, 1)
        return float(min(delay, self._retry_max_delay))

    def _is_retryable_error(self, exc: Exception) -> bool:
        if isinstance(
            exc,
            (
                httpx.ConnectError,
                httpx.ReadError,
                httpx.WriteError,
                httpx.ConnectTimeout,
                httpx.ReadTimeout,
                httpx.WriteTimeout,
            ),
        ):
            return True
        if isinstance(exc, httpx.HTTPStatusError):
            return 500 <= exc.response.status_code < 600
        return False

    def _headers(self, reason: Optional[str]) -> dict[str, str]:
        headers = {"Authorization": self._authorization_header}
        if reason:
            headers["X-Audit-Log-Reason"] = quote(reason, safe=" ")
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        payload: dict[str, Any] | list[dict[str, Any]] | None = None,
        params: Optional[QueryParams] | list[tuple[str, Any]] = None,
        files: Optional[list[tuple[str, tuple[str, Any, Optional[str]]]]] = None,
        data: Optional[dict[str, str]] = None,
        reason: Optional[str] = None,
        expect_json: bool = True,
    ) -> Any:
        rate_limit_retries = 0
        retry_attempt = 0

        while True:
            try:
                response = await self._client.request(
                    method,
                    path,
                    json=payload,
                    params=params,
                    files=files,
                    data=data,
                    headers=self._headers(reason),
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                status_code = exc.response.status_code
                if status_code == 429:
                    retry_after_raw = exc.response.headers.get("Retry-After")
                    if (
                        retry_after_raw is not None
                        and rate_limit_retries < self._max_retries
                    ):
                        rate_limit_retries += 1
                        try:
                            retry_after = max(float(retry_after_raw), 0.0)
                        except ValueError:
                            retry_after = 0.0
                        logger.info(
                            "Discord rate limited on %s %s, retrying after %.1fs (attempt %d)",
                            method,
                            path,
                            retry_after,
                            rate_limit_retries,
                        )
                        await asyncio.sleep(retry_after)
                        continue
                    raise DiscordTransientError(
                        f"Discord API rate limit exceeded for {method} {path}",
                        status_code=status_code,
                        user_message="Discord is rate limiting requests. Try again shortly.",
                    ) from exc

                body_preview = (
                    (exc.response.text or "").strip().replace("\n", " ")[:200]
                )
                if 500 <= status_code < 600:
                    if retry_attempt < self._max_retries:
                        retry_attempt += 1
                        delay = self._calculate_retry_delay(retry_attempt)
                        logger.warning(
                            "Discord server error %d on %s %s, retrying in %.1fs (attempt %d/%d)",
                            status_code,
                            method,
                            path,
                            delay,
                            retry_attempt,
                            self._max_retries,
                        )
                        await asyncio.sleep(delay)
                        continue
                    raise DiscordTransientError(
                        f"Discord API server error for {method} {path}: "
                        f"status={status_code} body={body_preview!r}",
                        status_code=status_code,
                    ) from exc
                if status_code in {401, 403}:
                    raise DiscordPermanentError(
                        f"Discord API authentication failure for {method} {path}: "
                        f"status={status_code} body={body_preview!r}",
                        status_code=status_code,
                    ) from exc
                raise DiscordAPIError(
                    f"Discord API request failed for {method} {path}: "
                    f"status={status_code} body={body_preview!r}",
                    status_code=status_code,
                ) from exc
            except httpx.HTTPError as exc:
                if self._is_retryable_error(exc) and retry_attempt < self._max_retries:
                    retry_attempt += 1
                    delay = self._calculate_retry_delay(retry_attempt)
                    logger.warning(
                        "Discord network error on %s %s: %s, retrying in %.1fs (attempt %d/%d)",
                        method,
                        path,
                        type(exc).__name__,
                        delay,
                        retry_attempt,
                        self._max_retries,
                    )
                    await asyncio.sleep(delay)
                    continue
                raise DiscordTransientError(
                    f"Discord API network error for {method} {path}: {exc}"
                ) from exc

            if not expect_json or not response.content:
                return {} if expect_json else None
            try:
                return response.json()
            except ValueError as exc:
                raise DiscordAPIError(
                    f"Discord API returned non-JSON success response for {method} {path}"
                ) from exc

    async def _request_dict(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        response = await self._request(method, path, **kwargs)
        return response if isinstance(response, dict) else {}

    async def _request_list(self, method: str, path: str, **kwargs: Any) -> list[dict[str, Any]]:
        response = await self._request(method, path, **kwargs)
        if not isinstance(response, list):
            return []
        return [item for item in response if isinstance(item, dict)]

    # Channels and messages

    async def get_channel(self, *, channel_id: str) -> dict[str, Any]:
        return await self._request_dict("GET", f"/channels/{channel_id}")

    async def modify_channel(
        self,
        *,
        channel_id: str,
        payload: dict[str, Any],
        reason: Optional[str] = None,
    ) -> dict[str, Any]:
        return await self._request_dict(
            "PATCH", f"/channels/{channel_id}", payload=payload, reason=reason
        )

    async def delete_channel(self, *, channel_id: str) -> dict[str, Any]:
        return await self._request_dict("DELETE", f"/channels/{channel_id}")

    async def create_channel_message(
        self,
        *,
        channel_id: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        return await self._request_dict(
            "POST", f"/channels/{channel_id}/messages", payload=payload
        )

    async def create_channel_message_with_attachment(
        self,
        *,
        channel_id: str,
        data: bytes,
        filename: str,
        payload: Optional[dict[str, Any]] = None,
        content_type: Optional[str] = None,
    ) -> dict[str, Any]:
        files = [("files[0]", (filename, data, content_type))]
        form_data: dict[str, str] = {}
        if payload:
            form_data["payload_json"] = json.dumps(payload)
        return await self._request_dict(
            "POST",
            f"/channels/{channel_id}/messages",
            files=files,
            data=form_data or None,
        )

    async def list_channel_messages(
        self,
        *,
        channel_id: str,
        limit: Optional[int] = None,
        before: Optional[str] = None,
        after: Optional[str] = None,
        around: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        params = {
            key: value
            for key, value in (
                ("limit", limit),
                ("before", before),
                ("after", after),
                ("around", around),
            )
            if value is not None
        }
        return await self._request_list(
            "GET", f"/channels/{channel_id}/messages", params=params or None
        )

    async def get_channel_message(
        self, *, channel_id: str, message_id: str
    ) -> dict[str, Any]:
        return await self._request_dict(
            "GET", f"/channels/{channel_id}/messages/{message_id}"
        )

    async def edit_channel_message(
        self,
        *,
        channel_id: str,
        message_id: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        return await self._request_dict(
            "PATCH",
            f"/channels/{channel_id}/messages/{message_id}",
            payload=payload,
        )

    async def delete_channel_message(
        self,
        *,
        channel_id: str,
        message_id: str,
    ) -> None:
        await self._request(
            "DELETE",
            f"/channels/{channel_id}/messages/{message_id}",
            expect_json=False,
        )

    # Reactions

    async def add_reaction(self, *, channel_id: str, message_id: str, emoji: str) -> None:
        await self._request(
            "PUT",
            f"/channels/{channel_id}/messages/{message_id}/reactions/{encode_emoji(emoji)}/@me",
            expect_json=False,
        )

    async def remove_own_reaction(
        self, *, channel_id: str, message_id: str, emoji: str
    ) -> None:
        await self._request(
            "DELETE",
            f"/channels/{channel_id}/messages/{message_id}/reactions/{encode_emoji(emoji)}/@me",
            expect_json=False,
        )

    async def list_reaction_users(
        self,
        *,
        channel_id: str,
        message_id: str,
        emoji: str,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        return await self._request_list(
            "GET",
            f"/channels/{channel_id}/messages/{message_id}/reactions/{encode_emoji(emoji)}",
            params={"limit": limit} if limit is not None else None,
        )

    # Pins

    async def pin_message(self, *, channel_id: str, message_id: str) -> None:
        await self._request(
            "PUT", f"/channels/{channel_id}/pins/{message_id}", expect_json=False
        )

    async def unpin_message(self, *, channel_id: str, message_id: str) -> None:
        await self._request(
            "DELETE", f"/channels/{channel_id}/pins/{message_id}", expect_json=False
        )

    async def list_pins(self, *, channel_id: str) -> list[dict[str, Any]]:
        return await self._request_list("GET", f"/channels/{channel_id}/pins")

    # Threads

    async def start_thread_from_message(
        self, *, channel_id: str, message_id: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._request_dict(
            "POST",
            f"/channels/{channel_id}/messages/{message_id}/threads",
            payload=payload,
        )

    async def start_thread(
        self, *, channel_id: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._request_dict(
            "POST", f"/channels/{channel_id}/threads", payload=payload
        )

    async def list_active_threads(self, *, guild_id: str) -> dict[str, Any]:
        return await self._request_dict("GET", f"/guilds/{guild_id}/threads/active")

    # Guilds

    async def get_current_user(self) -> dict[str, Any]:
        return await self._request_dict("GET", "/users/@me")

    async def create_dm_channel(self, *, recipient_id: str) -> dict[str, Any]:
        return await self._request_dict(
            "POST", "/users/@me/channels", payload={"recipient_id": recipient_id}
        )

    async def get_guild(self, *, guild_id: str) -> dict[str, Any]:
        return await self._request_dict("GET", f"/guilds/{guild_id}")

    async def list_guild_roles(self, *, guild_id: str) -> list[dict[str, Any]]:
        return await self._request_list("GET", f"/guilds/{guild_id}/roles")

    async def get_guild_member(self, *, guild_id: str, user_id: str) -> dict[str, Any]:
        return await self._request_dict("GET", f"/guilds/{guild_id}/members/{user_id}")

    async def modify_guild_member(
        self,
        *,
        guild_id: str,
        user_id: str,
        payload: dict[str, Any],
        reason: Optional[str] = None,
    ) -> dict[str, Any]:
        return await self._request_dict(
            "PATCH",
            f"/guilds/{guild_id}/members/{user_id}",
            payload=payload,
            reason=reason,
        )

    async def add_guild_member_role(
        self, *, guild_id: str, user_id: str, role_id: str
    ) -> None:
        await self._request(
            "PUT",
            f"/guilds/{guild_id}/members/{user_id}/roles/{role_id}",
            expect_json=False,
        )

    async def remove_guild_member_role(
        self, *, guild_id: str, user_id: str, role_id: str
    ) -> None:
        await self._request(
            "DELETE",
            f"/guilds/{guild_id}/members/{user_id}/roles/{role_id}",
            expect_json=False,
        )

    async def remove_guild_member(
        self, *, guild_id: str, user_id: str, reason: Optional[str] = None
    ) -> None:
        await self._request(
            "DELETE",
            f"/guilds/{guild_id}/members/{user_id}",
            reason=reason,
            expect_json=False,
        )

    async def create_guild_ban(
        self,
        *,
        guild_id: str,
        user_id: str,
        delete_message_seconds: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> None:
        payload = (
            {"delete_message_seconds": delete_message_seconds}
            if delete_message_seconds is not None
            else None
        )
        await self._request(
            "PUT",
            f"/guilds/{guild_id}/bans/{user_id}",
            payload=payload,
            reason=reason,
            expect_json=False,
        )

    async def list_guild_channels(self, *, guild_id: str) -> list[dict[str, Any]]:
        return await self._request_list("GET", f"/guilds/{guild_id}/channels")

    async def create_guild_channel(
        self, *, guild_id: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._request_dict(
            "POST", f"/guilds/{guild_id}/channels", payload=payload
        )

    async def modify_guild_channel_positions(
        self, *, guild_id: str, payload: list[dict[str, Any]]
    ) -> None:
        await self._request(
            "PATCH",
            f"/guilds/{guild_id}/channels",
            payload=payload,
            expect_json=False,
        )

    async def list_guild_emojis(self, *, guild_id: str) -> list[dict[str, Any]]:
        return await self._request_list("GET", f"/guilds/{guild_id}/emojis")

    async def list_scheduled_events(self, *, guild_id: str) -> list[dict[str, Any]]:
        return await self._request_list("GET", f"/guilds/{guild_id}/scheduled-events")

    async def search_guild_messages(
        self, *, guild_id: str, params: list[tuple[str, Any]]
    ) -> dict[str, Any]:
        return await self._request_dict(
            "GET", f"/guilds/{guild_id}/messages/search", params=params
        )

    # Media

    async def download_media(self, url: str) -> tuple[bytes, str, Optional[str]]:
        """Fetch ``url`` without Discord credentials; return bytes, name, type."""
        try:
            response = await self._client.get(url, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise DiscordAPIError(
                f"Failed to download media from {url}: {exc}",
                user_message="Unable to download the attachment.",
            ) from exc
        filename = urlparse(url).path.rsplit("/", 1)[-1] or "attachment"
        content_type = response.headers.get("Content-Type")
        return response.content, filename, content_type
