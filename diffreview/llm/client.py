"""Review backend client.

A single synchronous call to an Anthropic-style Messages endpoint, wrapped
in a bounded retry loop:

- connection failures and statuses in ``transient_status_codes`` are
  retried with exponential backoff and jitter
- 401/403 raise AuthError, any other non-2xx raises RequestRejectedError,
  both without retrying
- an overall deadline bounds every attempt and backoff; a timeout is never
  retried
"""

import time
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

import httpx

from diffreview.llm.pricing import estimate_cost
from diffreview.review.errors import (
    AuthError,
    BadResponseError,
    ClientTimeoutError,
    RateLimitExceeded,
    RequestRejectedError,
    TransientNetworkError,
)
from diffreview.review.models import ReviewRequest, ReviewResult
from diffreview.utils.config import LLMConfig
from diffreview.utils.logging import get_logger
from diffreview.utils.retry import DeadlineExceeded, RetryContext

logger = get_logger("llm.client")

MESSAGES_PATH = "/v1/messages"


def _retry_after_seconds(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("retry-after")
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None


def _error_detail(response: httpx.Response) -> str:
    """Best-effort error message from a backend error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200].strip()
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
    return ""


class ReviewClient:
    """Send review requests to the backend.

    Usage::

        client = ReviewClient(config.llm)
        result = client.send(request)

    With ``dry_run=True`` nothing is sent; the rendered request comes back
    as the result so it can be audited before spending tokens.
    """

    def __init__(
        self,
        config: LLMConfig,
        dry_run: bool = False,
        http_client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.dry_run = dry_run
        self._http_client = http_client
        self._sleep = sleep
        self._clock = clock
        self.transient_status_codes = frozenset(int(c) for c in config.transient_status_codes)

    @property
    def endpoint(self) -> str:
        return self.config.base_url.rstrip("/") + MESSAGES_PATH

    def send(self, request: ReviewRequest) -> ReviewResult:
        """Send ``request`` and return the backend's answer.

        Raises:
            AuthError: Missing or rejected API key.
            RateLimitExceeded: HTTP 429 on every attempt.
            TransientNetworkError: Connection or 5xx failures on every attempt.
            ClientTimeoutError: The deadline expired.
            RequestRejectedError: Non-transient HTTP error.
            BadResponseError: Unparseable success response.
        """
        if self.dry_run:
            logger.info("Dry run: returning rendered request without calling the backend")
            return ReviewResult(
                raw_markdown=request.to_text(),
                model=self.config.model,
                estimated_cost_usd=Decimal(0),
                dry_run=True,
            )

        if not self.config.api_key:
            raise AuthError("no API key configured; set ANTHROPIC_API_KEY")

        payload = self._build_payload(request)
        if self._http_client is not None:
            return self._send_with_retries(self._http_client, payload)

        with httpx.Client() as http_client:
            return self._send_with_retries(http_client, payload)

    def _build_payload(self, request: ReviewRequest) -> Dict[str, Any]:
        return {
            "model": self.config.model,
            "max_tokens": request.max_output_tokens,
            "system": request.system_prompt,
            "messages": [
                {"role": "user", "content": request.user_message},
            ],
        }

    def _headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.config.api_key or "",
            "anthropic-version": self.config.api_version,
            "content-type": "application/json",
            "accept": "application/json",
        }

    def _send_with_retries(self, http_client: httpx.Client, payload: Dict[str, Any]) -> ReviewResult:
        deadline = self._clock() + self.config.deadline

        retry = RetryContext(
            max_retries=self.config.max_retries,
            base_delay=self.config.retry_base_delay,
            max_delay=self.config.retry_max_delay,
            exponential_base=2.0,
            jitter=True,
            deadline=deadline,
            sleep=self._sleep,
            clock=self._clock,
            on_retry=lambda e, attempt, delay: logger.warning(
                f"Review request failed ({e}); retry {attempt + 1}/"
                f"{self.config.max_retries} in {delay:.1f}s"
            ),
        )

        try:
            with retry:
                for attempt in retry:
                    remaining = deadline - self._clock()
                    if remaining <= 0:
                        raise ClientTimeoutError(
                            f"review request exceeded the {self.config.deadline:.0f}s deadline"
                        )

                    try:
                        response = self._post(http_client, payload, remaining)
                    except httpx.TimeoutException as e:
                        raise ClientTimeoutError(
                            f"review request timed out on attempt {attempt + 1}: {e}"
                        ) from e
                    except httpx.TransportError as e:
                        retry.record_failure(
                            TransientNetworkError(f"connection to review backend failed: {e}")
                        )
                        continue

                    status = response.status_code
                    if status in self.transient_status_codes:
                        if status == 429:
                            retry_after = _retry_after_seconds(response)
                            retry.record_failure(
                                RateLimitExceeded(
                                    "review backend rate limit exceeded (HTTP 429)",
                                    retry_after=retry_after,
                                ),
                                delay=retry_after,
                            )
                        else:
                            retry.record_failure(
                                TransientNetworkError(
                                    f"review backend unavailable (HTTP {status})",
                                    status_code=status,
                                )
                            )
                        continue

                    if status in (401, 403):
                        detail = _error_detail(response)
                        message = f"review backend rejected the credentials (HTTP {status})"
                        raise AuthError(f"{message}: {detail}" if detail else message)
                    if not 200 <= status < 300:
                        raise RequestRejectedError(status, _error_detail(response))

                    return self._parse_response(response)
        except DeadlineExceeded as e:
            raise ClientTimeoutError(
                f"review request deadline of {self.config.deadline:.0f}s expired "
                f"before the next retry: {retry.last_exception}"
            ) from e

        # Unreachable: RetryContext re-raises the last failure when exhausted
        raise TransientNetworkError("review request failed")

    def _post(self, http_client: httpx.Client, payload: Dict[str, Any], remaining: float) -> httpx.Response:
        read_timeout = min(self.config.request_timeout, remaining)
        timeout = httpx.Timeout(
            read_timeout,
            connect=min(self.config.connect_timeout, read_timeout),
        )
        logger.debug(f"POST {self.endpoint} (timeout {read_timeout:.0f}s)")
        return http_client.post(
            self.endpoint,
            json=payload,
            headers=self._headers(),
            timeout=timeout,
        )

    def _parse_response(self, response: httpx.Response) -> ReviewResult:
        try:
            body = response.json()
        except ValueError as e:
            raise BadResponseError(f"review backend returned invalid JSON: {e}") from e
        if not isinstance(body, dict):
            raise BadResponseError("review backend returned an unexpected payload")

        text = _extract_text(body.get("content"))
        if not text.strip():
            raise BadResponseError("review backend returned an empty response")

        usage = body.get("usage") or {}
        if not isinstance(usage, dict):
            raise BadResponseError("review backend returned invalid usage data")
        try:
            input_tokens = int(usage.get("input_tokens", 0))
            output_tokens = int(usage.get("output_tokens", 0))
        except (TypeError, ValueError) as e:
            raise BadResponseError(f"review backend returned invalid usage data: {e}") from e

        model = self.config.model
        cost = estimate_cost(model, input_tokens, output_tokens)
        logger.info(
            f"Review received: {input_tokens} input / {output_tokens} output tokens"
        )
        return ReviewResult(
            raw_markdown=text,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            estimated_cost_usd=cost,
            model=model,
        )


def _extract_text(content: Any) -> str:
    """Join text from a string or a list of content blocks."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text") or ""))
        return "".join(parts)
    raise BadResponseError("review backend response has no content")
