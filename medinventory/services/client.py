"""
GeminiClient - Async HTTP client for the Gemini generateContent API.

Maps transport and HTTP failures onto the service error taxonomy so
callers can tell rate limiting apart from everything else.
"""

from datetime import datetime
from typing import Any

import httpx
from loguru import logger
from pydantic import BaseModel, Field

from medinventory.services.errors import (
    MalformedResponseError,
    MissingCredentialsError,
    RateLimitedError,
    RequestTimeoutError,
    ServiceError,
    UpstreamHTTPError,
)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.0-flash"


class KeyValidation(BaseModel):
    """Result of checking an API key against the live API."""

    valid: bool
    message: str
    last_validated: datetime = Field(default_factory=datetime.now)


class GeminiClient:
    """
    Thin client over POST /models/{model}:generateContent.

    Usage:
        async with GeminiClient(api_key="...") as client:
            text = await client.generate("Summarize ...")
    """

    SERVICE_ID = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise MissingCredentialsError(
                "Gemini API key not provided", service_id=self.SERVICE_ID
            )

        self.model = model
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

        # HTTP client (lazy initialization)
        self._http_client: httpx.AsyncClient | None = None

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/models/{self.model}:generateContent"

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._http_client

    async def generate(self, prompt: str) -> str:
        """
        Send a single-turn prompt and return the generated text.

        Raises:
            RateLimitedError: On HTTP 429
            RequestTimeoutError: If the request times out
            MalformedResponseError: If the response carries no text
            ServiceError: For other HTTP or transport errors
        """
        data = await self._post({"contents": [{"parts": [{"text": prompt}]}]})
        return self._extract_text(data)

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Execute the actual HTTP request."""
        client = await self._get_http_client()

        try:
            response = await client.post(
                self.endpoint,
                json=payload,
                headers={"x-goog-api-key": self._api_key},
            )
            response.raise_for_status()
            return response.json()

        except httpx.TimeoutException as e:
            raise RequestTimeoutError(self.SERVICE_ID, self._timeout) from e

        except httpx.HTTPStatusError as e:
            if e.response.status_code == 429:
                raise RateLimitedError(
                    self.SERVICE_ID, _retry_after(e.response)
                ) from e
            raise UpstreamHTTPError(
                self.SERVICE_ID, e.response.status_code, e.response.text
            ) from e

        except httpx.RequestError as e:
            raise ServiceError(str(e), service_id=self.SERVICE_ID) from e

        except ValueError as e:
            raise MalformedResponseError(
                f"Response body is not JSON: {e}", service_id=self.SERVICE_ID
            ) from e

    def _extract_text(self, data: dict[str, Any]) -> str:
        candidates = data.get("candidates") or []
        if not candidates:
            reason = (data.get("promptFeedback") or {}).get("blockReason")
            raise MalformedResponseError(
                f"No candidates in response{f' (blocked: {reason})' if reason else ''}",
                service_id=self.SERVICE_ID,
            )

        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts)
        if not text:
            raise MalformedResponseError(
                "Candidate carried no text", service_id=self.SERVICE_ID
            )
        return text

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
        logger.debug("GeminiClient closed")

    async def __aenter__(self) -> "GeminiClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("retry-after")
    try:
        return float(value) if value else None
    except ValueError:
        return None


async def validate_api_key(
    api_key: str,
    model: str = DEFAULT_MODEL,
    base_url: str = DEFAULT_BASE_URL,
    timeout: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> KeyValidation:
    """Check an API key by sending a minimal prompt. Never raises."""
    if not api_key:
        return KeyValidation(valid=False, message="API key is required")

    client = GeminiClient(
        api_key=api_key,
        model=model,
        base_url=base_url,
        timeout=timeout,
        transport=transport,
    )
    try:
        await client.generate("Hello")
    except RateLimitedError:
        # Key was accepted, quota is the problem
        return KeyValidation(
            valid=True, message="API key is valid but currently rate limited"
        )
    except ServiceError as e:
        logger.warning(f"[GeminiClient] API key validation failed: {e}")
        return KeyValidation(valid=False, message=f"API key validation failed: {e}")
    finally:
        await client.close()

    return KeyValidation(valid=True, message="API key is valid and working correctly")
