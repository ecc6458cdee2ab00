"""
Brevo transactional email client.

Admin codes are short lived, so retries are bounded and back off quickly:
a code that arrives after its own expiry is useless.
"""

import asyncio
import random
from typing import Any

from fastapi import status as http_status
import httpx
from pydantic import BaseModel

from nextsub.core.config import brevo_logger, settings
from nextsub.core.exceptions.types import AppException
from nextsub.core.services.base import SingletonService


class Contact(BaseModel):
    email: str
    name: str | None = None


class TransactionalEmail(BaseModel):
    sender: Contact
    to: list[Contact]
    subject: str
    htmlContent: str | None = None
    textContent: str | None = None
    tags: list[str] | None = None


class BrevoService(SingletonService):
    _base_url: str = settings.BREVO_BASE_URL
    _api_key: str = settings.BREVO_API_KEY
    _sender_email: str = settings.BREVO_SENDER_EMAIL
    _sender_name: str = settings.BREVO_SENDER_NAME
    _client: httpx.AsyncClient | None = None

    # Bounded retries + backoff
    _BACKOFF_BASE: float = 1.0
    _BACKOFF_MAX: float = 10.0
    _JITTER: float = 0.2  # +/-20%
    _TIMEOUT: float = 15.0

    @classmethod
    def _init_client(cls) -> None:
        """
        Create the HTTP client if it does not exist yet.

        Returns:
            None
        """
        if cls._client is None:
            cls._client = httpx.AsyncClient(
                base_url=cls._base_url,
                timeout=httpx.Timeout(cls._TIMEOUT),
            )
            brevo_logger.info("Brevo HTTP client initialized")

    @classmethod
    async def aclose(cls) -> None:
        """
        Close the HTTP client if it is open.

        Returns:
            None
        """
        if cls._client is not None:
            try:
                await cls._client.aclose()
            finally:
                cls._client = None
                cls._initialized = False
                brevo_logger.info("Brevo HTTP client closed")

    @classmethod
    async def init(
        cls,
        api_key: str | None = None,
        sender_email: str | None = None,
        sender_name: str | None = None,
    ) -> None:
        """
        Configure the service and (re)create its HTTP client.

        Args:
            api_key (str | None): Brevo API key. Defaults to settings.BREVO_API_KEY.
            sender_email (str | None): Sender address. Defaults to settings.BREVO_SENDER_EMAIL.
            sender_name (str | None): Sender display name. Defaults to settings.BREVO_SENDER_NAME.

        Returns:
            None
        """
        if api_key is not None:
            cls._api_key = api_key
        if sender_email is not None:
            cls._sender_email = sender_email
        if sender_name is not None:
            cls._sender_name = sender_name
        await cls.aclose()
        cls._init_client()
        cls._initialized = True

    @classmethod
    def _compute_backoff(
        cls, attempt: int, err_headers: httpx.Headers | None = None
    ) -> float:
        """
        Compute the delay before the next retry.

        Brevo's `x-sib-ratelimit-reset` header wins when present and parseable;
        otherwise exponential backoff with multiplicative jitter is used.

        Args:
            attempt (int): 1-based retry attempt number.
            err_headers (httpx.Headers | None): Headers of the failed response.

        Returns:
            float: Delay in seconds.
        """
        if err_headers and "x-sib-ratelimit-reset" in err_headers:
            try:
                return min(float(err_headers["x-sib-ratelimit-reset"]), cls._BACKOFF_MAX)
            except ValueError:
                pass
        base = min(cls._BACKOFF_BASE * (2 ** (attempt - 1)), cls._BACKOFF_MAX)
        return base * random.uniform(1 - cls._JITTER, 1 + cls._JITTER)

    @classmethod
    def _auth_headers(cls) -> dict[str, str]:
        return {
            "api-key": cls._api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    @classmethod
    async def _request(
        cls,
        method: str,
        endpoint: str,
        *,
        json: dict[str, Any] | None = None,
        max_attempts: int = 3,
    ) -> dict[str, Any] | str:
        """
        Call the Brevo API with retries.

        5xx responses, 429 responses and network errors are retried with
        backoff up to `max_attempts`. Other 4xx responses fail immediately.
        Response bodies are logged; request bodies are not, since they carry
        the code.

        Args:
            method (str): HTTP method.
            endpoint (str): Path relative to the Brevo base URL.
            json (dict[str, Any] | None): JSON body.
            max_attempts (int): Initial try plus retries.

        Returns:
            dict[str, Any] | str: Parsed JSON body, or raw text if not JSON.

        Raises:
            AppException: When the request fails for good.
        """
        if cls._client is None:
            cls._init_client()
        assert cls._client is not None

        for attempt in range(1, max_attempts + 1):
            try:
                resp: httpx.Response = await cls._client.request(
                    method, endpoint, headers=cls._auth_headers(), json=json
                )
                resp.raise_for_status()
                try:
                    body = resp.json()
                except ValueError:
                    body = resp.text

                brevo_logger.info(f"Brevo response: {body}")
                return body

            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                try:
                    err_body = exc.response.json()
                except ValueError:
                    err_body = exc.response.text

                retriable = status == 429 or 500 <= status < 600
                if not retriable:
                    brevo_logger.error(f"4xx error {status}: {err_body}")
                    raise AppException(
                        message=f"HTTP error {status}: {err_body}", status_code=status
                    ) from exc

                wait = cls._compute_backoff(
                    attempt, exc.response.headers if status == 429 else None
                )
                brevo_logger.warning(
                    f"{status} from Brevo; attempt {attempt}/{max_attempts}; wait={wait:.1f}s; body={err_body}"
                )
                if attempt < max_attempts:
                    await asyncio.sleep(wait)
                    continue
                brevo_logger.error(f"Brevo error after retries: {status}: {err_body}")
                raise AppException(
                    message=f"Brevo error after retries: {status}",
                    status_code=status,
                ) from exc

            except (httpx.TimeoutException, httpx.TransportError) as exc:
                wait = cls._compute_backoff(attempt)
                brevo_logger.warning(
                    f"Timeout/transport error; attempt {attempt}/{max_attempts}; wait={wait:.1f}s; err={exc}"
                )
                if attempt < max_attempts:
                    await asyncio.sleep(wait)
                    continue
                brevo_logger.error(f"Network error after retries: {exc}")
                raise AppException(
                    message="Brevo network error after retries",
                    status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE,
                ) from exc

        raise AppException(
            message="Unexpected state: no response after all attempts",
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    @classmethod
    async def send_transactional_email(
        cls,
        subject: str,
        to: list[Contact],
        htmlContent: str | None = None,
        textContent: str | None = None,
        tags: list[str] | None = None,
    ) -> dict[str, Any] | str:
        """
        Send one transactional email.

        Args:
            subject (str): Subject line.
            to (list[Contact]): Recipients.
            htmlContent (str | None): HTML body.
            textContent (str | None): Plain text body.
            tags (list[str] | None): Brevo tags for filtering in the dashboard.

        Returns:
            dict[str, Any] | str: Brevo's response (contains the messageId).

        Raises:
            ValueError: If no body or no recipient is given.
            AppException: If Brevo rejects the message or cannot be reached.
        """
        if not htmlContent and not textContent:
            raise ValueError("Either htmlContent or textContent must be provided")
        if not to:
            raise ValueError("At least one recipient must be provided")

        email = TransactionalEmail(
            sender=Contact(email=cls._sender_email, name=cls._sender_name),
            to=to,
            subject=subject,
            htmlContent=htmlContent,
            textContent=textContent,
            tags=tags,
        )
        return await cls._request(
            method="POST",
            endpoint="/smtp/email",
            json=email.model_dump(exclude_none=True),
        )


__all__ = ["BrevoService", "Contact", "TransactionalEmail"]
