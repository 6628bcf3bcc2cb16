"""Integration with the Slack Web API."""
from __future__ import annotations

from typing import Any, Callable, Protocol
from urllib.parse import urlparse

import httpx


class SlackError(RuntimeError):
    """Raised when the Slack Web API answers with ``ok: false``."""


class ChatClient(Protocol):
    """Contract for the chat platform the census arrives from."""

    async def fetch_file_content(self, file_id: str) -> str: ...

    async def upload_file(self, content: bytes, filename: str, *, title: str | None = None) -> str: ...

    async def post_message(self, channel: str, text: str, *, thread_ts: str | None = None) -> None: ...

    async def aclose(self) -> None: ...


ChatClientFactory = Callable[[str], ChatClient]


class SlackClient:
    """Slack Web API client bound to the token carried by one event."""

    def __init__(
        self,
        token: str,
        *,
        api_base: str = "https://slack.com/api",
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        parsed = urlparse(api_base)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("api_base must include scheme and host")

        self._token = token
        self._api_base = api_base.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token}"}

    async def _call(
        self,
        method: str,
        *,
        data: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        response = await self._client.post(
            f"{self._api_base}/{method}",
            headers=self._auth_headers(),
            data=data,
            json=json,
        )
        response.raise_for_status()
        payload = response.json()
        if not payload.get("ok"):
            raise SlackError(f"{method}: {payload.get('error') or 'unknown_error'}")
        return payload

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    async def fetch_file_content(self, file_id: str) -> str:
        payload = await self._call("files.info", data={"file": file_id})
        content = payload.get("content")
        if content:
            return content

        # uploaded (non-snippet) files only expose a private download link
        file_info = payload.get("file") or {}
        url = file_info.get("url_private_download") or file_info.get("url_private")
        if not url:
            raise SlackError("files.info: file has no downloadable content")
        response = await self._client.get(url, headers=self._auth_headers(), follow_redirects=True)
        response.raise_for_status()
        return response.text

    async def upload_file(self, content: bytes, filename: str, *, title: str | None = None) -> str:
        """Upload ``content`` and return the file permalink."""

        ticket = await self._call(
            "files.getUploadURLExternal",
            data={"filename": filename, "length": str(len(content))},
        )
        upload = await self._client.post(ticket["upload_url"], files={"file": (filename, content)})
        upload.raise_for_status()

        completed = await self._call(
            "files.completeUploadExternal",
            json={"files": [{"id": ticket["file_id"], "title": title or filename}]},
        )
        files = completed.get("files") or []
        permalink = files[0].get("permalink") if files else None
        if not permalink:
            raise SlackError("files.completeUploadExternal: no permalink returned")
        return permalink

    async def post_message(self, channel: str, text: str, *, thread_ts: str | None = None) -> None:
        body: dict[str, Any] = {"channel": channel, "text": text}
        if thread_ts:
            body["thread_ts"] = thread_ts
        await self._call("chat.postMessage", json=body)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def slack_client_factory(api_base: str = "https://slack.com/api") -> ChatClientFactory:
    def factory(token: str) -> ChatClient:
        return SlackClient(token, api_base=api_base)

    return factory


__all__ = ["ChatClient", "ChatClientFactory", "SlackClient", "SlackError", "slack_client_factory"]
