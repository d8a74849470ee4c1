"""
AI Suggestion API Client

Wrapper around the external service that proposes a GL code for a line
item. The service is optional: with no URL configured no suggestion is
requested.
"""

import math

import httpx
from typing import Dict, Any, Optional
from glrules.config import get_settings
from glrules.rules.types import AISuggestion, LineItem


class SuggestionClient:
    """Client for the external AI GL-code suggestion service."""

    SUGGEST_ENDPOINT = "/gl-suggestions"

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        settings = get_settings()
        self.base_url = settings.ai_service_url.rstrip("/")
        self.api_token = settings.ai_service_token
        self.timeout = settings.ai_service_timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    def _get_headers(self) -> Dict[str, str]:
        """Get authorization headers for API requests."""
        headers = {"Content-Type": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    async def _request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict] = None
    ) -> Dict[str, Any]:
        """Make an API request to the suggestion service."""
        url = f"{self.base_url}{endpoint}"

        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=self._get_headers(),
                    json=data,
                    timeout=self.timeout,
                )
            except httpx.HTTPError as e:
                raise SuggestionAPIError(0, str(e)) from e

            if response.status_code >= 400:
                try:
                    error_data = response.json() if response.content else {}
                except ValueError:
                    error_data = {}
                error = (error_data.get("error") if isinstance(error_data, dict) else None) or {}
                raise SuggestionAPIError(
                    status_code=response.status_code,
                    message=error.get("detail", "Unknown error") if isinstance(error, dict) else str(error),
                )

            try:
                return response.json()
            except ValueError as e:
                raise SuggestionAPIError(response.status_code, "invalid JSON") from e

    async def suggest_gl_code(self, item: LineItem) -> Optional[AISuggestion]:
        """
        Ask the service for a GL code.

        Returns None when the service is disabled or has no suggestion.
        Raises SuggestionAPIError on transport or HTTP errors.
        """
        if not self.enabled:
            return None

        response = await self._request(
            "POST",
            self.SUGGEST_ENDPOINT,
            {
                "description": item.description,
                "vendor_name": item.vendor_name,
                "amount": item.amount,
                "date": item.date,
                "category": item.category,
            },
        )

        if not isinstance(response, dict):
            return None
        data = response.get("data", response)
        if not isinstance(data, dict):
            return None

        gl_code = data.get("gl_code")
        if not gl_code:
            return None

        try:
            confidence = float(data.get("confidence", 0))
        except (TypeError, ValueError):
            confidence = 0.0
        if not math.isfinite(confidence):
            confidence = 0.0

        return AISuggestion(
            gl_code=str(gl_code),
            confidence=min(max(confidence, 0.0), 1.0),
        )


class SuggestionAPIError(Exception):
    """Exception raised for suggestion service errors."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"Suggestion API Error ({status_code}): {message}")
