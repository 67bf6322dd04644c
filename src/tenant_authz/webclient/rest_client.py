from __future__ import annotations

import httpx


class RestClient:
    """httpx wrapper that injects the PostgREST api key on every request."""

    def __init__(self, base_url: str, api_key: str, client: httpx.AsyncClient = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.session = client or httpx.AsyncClient(timeout=timeout)

    async def request(self, method: str, path: str, **kwargs) -> httpx.Response:
        headers = kwargs.pop("headers", {})
        headers["apikey"] = self.api_key
        headers["Authorization"] = f"Bearer {self.api_key}"

        return await self.session.request(
            method,
            f"{self.base_url}{path}",
            headers=headers,
            **kwargs,
        )

    async def get(self, path: str, **kwargs) -> httpx.Response:
        return await self.request("GET", path, **kwargs)

    async def aclose(self) -> None:
        await self.session.aclose()
