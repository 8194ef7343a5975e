"""Retell API client — the admin endpoints First Greet provisioning needs."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from first_greet.config import RETELL_BASE_URL, Settings

logger = logging.getLogger(__name__)


class RetellAPIError(Exception):
    """A Retell call failed: network, auth, validation or not-found alike."""

    def __init__(
        self,
        message: str,
        *,
        method: str = "",
        path: str = "",
        status_code: int | None = None,
        body: Any = None,
    ):
        super().__init__(message)
        self.method = method
        self.path = path
        self.status_code = status_code
        self.body = body

    def to_dict(self) -> dict:
        return {
            "type": type(self).__name__,
            "message": str(self),
            "method": self.method,
            "path": self.path,
            "status_code": self.status_code,
            "body": self.body,
        }


def _headers(api_key: str) -> dict:
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }


def _error_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class RetellClient:
    """Thin async wrapper over the Retell REST API.

    Use as an async context manager so the underlying connection pool is
    closed when provisioning finishes::

        async with RetellClient.from_settings(settings) as client:
            llm = await client.create_llm(payload)
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = RETELL_BASE_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=_headers(api_key),
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> "RetellClient":
        return cls(
            settings.retell_api_key,
            base_url=settings.retell_base_url,
            timeout=settings.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "RetellClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, json: dict | None = None) -> Any:
        logger.info("Retell %s %s", method, path)
        try:
            response = await self._client.request(method, path, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise RetellAPIError(
                f"Retell {method} {path} returned {status}",
                method=method,
                path=path,
                status_code=status,
                body=_error_body(exc.response),
            ) from exc
        except httpx.RequestError as exc:
            raise RetellAPIError(
                f"Retell {method} {path} failed: {exc}",
                method=method,
                path=path,
            ) from exc

        # Deletes answer 204 with no body
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise RetellAPIError(
                f"Retell {method} {path} returned a non-JSON body",
                method=method,
                path=path,
                status_code=response.status_code,
                body=response.text,
            ) from exc

    # ------------------------------------------------------------------
    # LLM
    # ------------------------------------------------------------------

    async def create_llm(self, payload: dict) -> dict:
        """Create a Retell LLM (prompts + state machine). Returns the record with ``llm_id``."""
        return await self._request("POST", "/create-retell-llm", json=payload)

    async def delete_llm(self, llm_id: str) -> None:
        await self._request("DELETE", f"/delete-retell-llm/{llm_id}")

    # ------------------------------------------------------------------
    # Agents
    # ------------------------------------------------------------------

    async def list_agents(self) -> list[dict]:
        return await self._request("GET", "/list-agents")

    async def get_agent(self, agent_id: str) -> dict:
        return await self._request("GET", f"/get-agent/{agent_id}")

    async def create_agent(self, payload: dict) -> dict:
        return await self._request("POST", "/create-agent", json=payload)

    async def update_agent(self, agent_id: str, payload: dict) -> dict:
        return await self._request("PATCH", f"/update-agent/{agent_id}", json=payload)

    async def delete_agent(self, agent_id: str) -> None:
        await self._request("DELETE", f"/delete-agent/{agent_id}")

    # ------------------------------------------------------------------
    # Phone numbers
    # ------------------------------------------------------------------

    async def list_phone_numbers(self) -> list[dict]:
        return await self._request("GET", "/list-phone-numbers")

    async def update_phone_number(self, phone_number: str, payload: dict) -> dict:
        """Rebind a number. ``phone_number`` is the E.164 number, which is its id in Retell."""
        return await self._request("PATCH", f"/update-phone-number/{phone_number}", json=payload)
