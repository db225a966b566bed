"""HTTP email client with retries, a circuit breaker, and context headers.

This module implements the concrete HTTP client for ``EmailNotifierPort``
using ``httpx``. It adds:

- Request correlation: propagates ``X-Request-ID`` from the ContextVar set
    by the request-id middleware.
- A circuit around the email relay, so confirmations fail fast while the
    relay is down instead of holding up every checkout for the full retry
    budget.
- A simple retry policy with exponential backoff for transport errors and
    5xx responses.
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Iterator, Optional

import httpx

from . import settings
from .domain import EmailNotifierPort
from .middleware import REQUEST_ID_CTX

logger = logging.getLogger("storefront.email")


class CircuitOpenError(RuntimeError):
    """Raised when a send is refused because the email circuit is open."""


# ---------------- Circuit ---------------- #

class EmailCircuit:
    """Health gate for the email relay.

    The circuit is CLOSED until ``fail_threshold`` sends in a row have given
    up. It then stays OPEN for ``reset_timeout`` seconds, refusing sends, and
    after that is HALF_OPEN: one trial send is let through and its outcome
    closes the circuit or opens it for another ``reset_timeout``.

    A send counts as failed only when the relay was unreachable or kept
    answering 5xx. A 4xx means the relay is up and the message was refused.
    """

    def __init__(self, fail_threshold: int, reset_timeout: float):
        self.fail_threshold = fail_threshold
        self.reset_timeout = reset_timeout
        self._lock = threading.Lock()
        self._failures = 0
        self._opened_at: Optional[float] = None
        self._trial_running = False

    def _current(self) -> str:
        if self._opened_at is None:
            return "CLOSED"
        if time.monotonic() - self._opened_at < self.reset_timeout:
            return "OPEN"
        return "HALF_OPEN"

    @property
    def state(self) -> str:
        with self._lock:
            return self._current()

    @contextmanager
    def guard(self) -> Iterator[str]:
        """Admit one send and yield the state it was admitted under.

        Raises:
            CircuitOpenError: If the circuit is OPEN, or HALF_OPEN with the
                trial send already running.
        """
        with self._lock:
            state = self._current()
            if state == "OPEN" or (state == "HALF_OPEN" and self._trial_running):
                raise CircuitOpenError(f"email circuit is {state}")
            if state == "HALF_OPEN":
                self._trial_running = True
        try:
            yield state
        finally:
            if state == "HALF_OPEN":
                with self._lock:
                    self._trial_running = False

    def record(self, healthy: bool) -> None:
        """Record whether the relay handled the last send."""
        with self._lock:
            if healthy:
                self._failures = 0
                self._opened_at = None
                return
            self._failures += 1
            if self._opened_at is not None or self._failures >= self.fail_threshold:
                if self._opened_at is None:
                    logger.warning("email circuit opened", extra={"failures": self._failures})
                self._opened_at = time.monotonic()

    def reset(self) -> None:
        self.record(healthy=True)


_email_circuit = EmailCircuit(settings.HTTP_CIRCUIT_FAIL_THRESHOLD, settings.HTTP_CIRCUIT_RESET_TIMEOUT)


# ---------------- Helpers ---------------- #

def _request_headers(extra: Optional[dict] = None) -> dict:
    """Build base headers including X-Request-ID and any extras."""
    headers: dict[str, str] = {}
    rid = REQUEST_ID_CTX.get()
    if rid and rid != "-":
        headers["X-Request-ID"] = rid
    if extra:
        headers.update(extra)
    return headers


def _backoff(attempt: int) -> float:
    """Seconds to wait before retry number ``attempt`` (1-based)."""
    return min(settings.HTTP_RETRY_BACKOFF_BASE * (2 ** (attempt - 1)), settings.HTTP_RETRY_MAX_SLEEP)


# ---------------- Email Adapter ---------------- #

class HttpEmailClient(EmailNotifierPort):
    """HTTP client for the email service with retry and circuit breaker."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = base_url or settings.EMAIL_BASE_URL
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECS

    def send_order_confirmation(self, to: str, subject: str, body: str) -> None:
        """POST the message to ``{base_url}/send``.

        Any 2xx response counts as delivered. Transport errors and 5xx are
        retried with exponential backoff up to ``HTTP_RETRY_MAX`` attempts;
        other statuses fail immediately.

        Args:
            to: Recipient email address.
            subject: Message subject.
            body: Plain-text message body.

        Raises:
            CircuitOpenError: When the circuit refuses the call.
            httpx.RequestError: For network/transport errors after retries.
            httpx.HTTPStatusError: For non-2xx responses that are not
                retried or are still failing after retries.
        """
        payload = {"to": to, "subject": subject, "body": body}
        attempts = max(1, settings.HTTP_RETRY_MAX)

        with _email_circuit.guard() as state, httpx.Client(timeout=self.timeout) as client:
            headers = _request_headers({"X-Circuit-State": state})
            error: Optional[httpx.RequestError] = None
            resp = None
            for attempt in range(attempts):
                if attempt:
                    time.sleep(_backoff(attempt))
                headers["X-Retry-Count"] = str(attempt)
                try:
                    resp = client.post(f"{self.base_url}/send", json=payload, headers=headers)
                except httpx.RequestError as e:
                    error, resp = e, None
                    continue
                if resp.status_code < 500:
                    _email_circuit.record(healthy=True)
                    if not 200 <= resp.status_code < 300:
                        resp.raise_for_status()
                    return

            _email_circuit.record(healthy=False)
            logger.warning("email relay gave up after %s attempts", attempts)
            if resp is None:
                raise error
            resp.raise_for_status()
