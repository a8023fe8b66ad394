"""
notdiamond_client.py

Responsibility: Isolate all direct Not Diamond REST API interaction.

This module must be the only place that:
- Constructs Not Diamond endpoints
- Sends HTTP requests to the routing service
- Decides which responses are payloads and which are transport failures

Interpreting a payload (generated text vs. structured `detail` error) is left to
`generator.py`, so provider-reported errors are data here, not exceptions.
"""

from __future__ import annotations

from typing import Any

import requests


class ProviderError(RuntimeError):
    pass


class NotDiamondClient:
    def __init__(
        self,
        api_key: str,
        api_base: str = "https://api.notdiamond.ai",
        endpoint: str = "/v2/create",
        timeout: float | None = None,
    ) -> None:
        self._api_key = api_key
        self._api_base = api_base.rstrip("/")
        self._endpoint = "/" + endpoint.lstrip("/")
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
            "User-Agent": "routine-chronicles",
        }

    def _request(self, method: str, path: str, *, json_body: dict[str, Any] | None = None) -> dict[str, Any]:
        if not self._api_key.strip():
            raise ProviderError("Not Diamond API key is required (set NOTDIAMOND_API_KEY).")
        url = f"{self._api_base}{path}"
        try:
            r = requests.request(method, url, headers=self._headers(), json=json_body, timeout=self._timeout)
        except requests.RequestException as e:
            raise ProviderError(f"Not Diamond request failed {method} {path}: {e}") from e

        try:
            payload = r.json()
        except ValueError as e:
            raise ProviderError(f"Not Diamond API error {r.status_code} {method} {path}: {r.text[:500]}") from e

        if not isinstance(payload, dict):
            raise ProviderError(f"Not Diamond API returned a non-object payload ({type(payload).__name__})")
        if r.status_code >= 400 and "detail" not in payload:
            # Keep the status visible to the caller as a structured error.
            payload = {"detail": f"HTTP {r.status_code}: {payload.get('message', payload)}"}
        return payload

    def create(self, *, messages: list[dict[str, str]], llm_providers: list[dict[str, str]]) -> dict[str, Any]:
        """
        Ask the router to pick a model from `llm_providers` (in preference order) and generate a reply.

        Returns the decoded JSON object; error payloads carry a `detail` field.
        """
        body = {"messages": messages, "llm_providers": llm_providers}
        return self._request("POST", self._endpoint, json_body=body)
