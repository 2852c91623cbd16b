"""
Directory / contact provider clients.

  Hunter.io  : /v2/domain-search (people + domain by company) and
                /v2/email-finder (name + domain → email). Needs HUNTER_API_KEY.
  RocketReach: /v2/api/search (people by company + title). Needs
                ROCKETREACH_API_KEY. Rate limited, so callers use it sparingly.

Every non-200 response, network failure or malformed body raises
DirectoryError. Callers decide whether that is fatal; the resolvers treat it
as "no result".
"""
from __future__ import annotations

from typing import Any, Optional

import httpx

_HUNTER_DOMAIN_SEARCH = "https://api.hunter.io/v2/domain-search"
_HUNTER_EMAIL_FINDER = "https://api.hunter.io/v2/email-finder"
_ROCKETREACH_SEARCH = "https://api.rocketreach.co/v2/api/search"


class DirectoryError(Exception):
    """Raised when a directory provider request fails or is rate limited."""


async def _request_json(method: str, url: str, *, provider: str, **kwargs) -> dict:
    async with httpx.AsyncClient(timeout=kwargs.pop("timeout", 10)) as client:
        try:
            resp = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise DirectoryError(f"{provider} request timed out: {e}") from e
        except httpx.RequestError as e:
            raise DirectoryError(f"{provider} network error: {e}") from e

    if resp.status_code == 429:
        raise DirectoryError(f"{provider} rate limited (HTTP 429).")
    if resp.status_code in (401, 403):
        raise DirectoryError(f"{provider} API key rejected (HTTP {resp.status_code}).")
    if resp.status_code != 200:
        raise DirectoryError(f"{provider} returned HTTP {resp.status_code}")

    try:
        payload = resp.json()
    except ValueError as e:
        raise DirectoryError(f"{provider} returned a non-JSON body") from e
    if not isinstance(payload, dict):
        raise DirectoryError(f"{provider} returned an unexpected payload type")
    return payload


def _data_object(payload: dict, provider: str) -> dict[str, Any]:
    data = payload.get("data")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise DirectoryError(f"{provider} returned a malformed `data` field")
    return data


class HunterClient:
    def __init__(self, api_key: Optional[str]):
        self.api_key = api_key or None

    @property
    def enabled(self) -> bool:
        return self.api_key is not None

    async def domain_search(
        self,
        *,
        company: Optional[str] = None,
        domain: Optional[str] = None,
        limit: int = 10,
    ) -> dict[str, Any]:
        """Return Hunter's `data` object: domain, pattern and the `emails` people list."""
        if not self.enabled:
            raise DirectoryError("Hunter.io API key is not configured.")
        params: dict[str, Any] = {"api_key": self.api_key, "limit": limit}
        if company:
            params["company"] = company
        if domain:
            params["domain"] = domain
        payload = await _request_json("GET", _HUNTER_DOMAIN_SEARCH, provider="Hunter.io", params=params)
        return _data_object(payload, "Hunter.io")

    async def find_domain(self, company: str) -> Optional[str]:
        data = await self.domain_search(company=company, limit=1)
        return data.get("domain") or None

    async def find_email(self, domain: str, first_name: str, last_name: str) -> dict[str, Any]:
        """Return Hunter's email-finder `data` object (email, score, ...)."""
        if not self.enabled:
            raise DirectoryError("Hunter.io API key is not configured.")
        params = {
            "api_key": self.api_key,
            "domain": domain,
            "first_name": first_name,
            "last_name": last_name,
        }
        payload = await _request_json("GET", _HUNTER_EMAIL_FINDER, provider="Hunter.io", params=params)
        return _data_object(payload, "Hunter.io")


class RocketReachClient:
    def __init__(self, api_key: Optional[str]):
        self.api_key = api_key or None

    @property
    def enabled(self) -> bool:
        return self.api_key is not None

    async def search_people(
        self,
        company: str,
        titles: list[str],
        page_size: int = 1,
    ) -> list[dict[str, Any]]:
        """Return RocketReach profiles currently holding one of `titles` at `company`."""
        if not self.enabled:
            raise DirectoryError("RocketReach API key is not configured.")
        body = {
            "query": {"company_name": [company], "current_title": titles},
            "page_size": page_size,
        }
        headers = {"Api-Key": self.api_key, "Content-Type": "application/json"}
        payload = await _request_json(
            "POST", _ROCKETREACH_SEARCH, provider="RocketReach", json=body, headers=headers,
        )
        profiles = payload.get("profiles") or []
        return [p for p in profiles if isinstance(p, dict)]
