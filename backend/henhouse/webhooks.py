# Overview: Fire-and-forget delivery of JSON payloads to chat webhooks.

"""
Webhook Notifier

Outbound notifications never block or fail the request that triggered them.
Each POST runs on a small thread pool; failures are logged at warning level
and dropped. There is no retry.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Iterable

import httpx


def _redact(url: str) -> str:
    # Webhook URLs embed their secret in the path; only log the host.
    try:
        return httpx.URL(url).host or "<invalid url>"
    except (httpx.InvalidURL, TypeError):
        return "<invalid url>"


class WebhookNotifier:
    """Flask extension owning the webhook delivery pool."""

    def __init__(self, app=None):
        self.enabled = True
        self.timeout = 5.0
        self.logger = None
        # Optional httpx transport, replaced by httpx.MockTransport in tests
        self.transport: httpx.BaseTransport | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._pending: set[Future] = set()
        self._lock = threading.Lock()
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        self.enabled = bool(app.config.get("WEBHOOKS_ENABLED", True))
        self.timeout = float(app.config.get("WEBHOOK_TIMEOUT_SECONDS", 5.0))
        self.logger = app.logger
        if self._executor is not None:
            self._executor.shutdown(wait=False)
        self._executor = ThreadPoolExecutor(
            max_workers=int(app.config.get("WEBHOOK_MAX_WORKERS", 4)),
            thread_name_prefix="henhouse-webhook",
        )
        app.extensions["henhouse_notifier"] = self

    def dispatch(self, urls: Iterable[str], payload: dict) -> list[Future]:
        """
        Queue one POST per URL and return immediately.

        The returned futures resolve to True/False (delivered or not); they
        never raise.
        """
        urls = [u for u in urls if u]
        if not urls:
            return []
        if not self.enabled or self._executor is None:
            if self.logger:
                self.logger.info("Webhooks disabled; dropped notification for %d target(s)", len(urls))
            return []

        futures = []
        for url in urls:
            future = self._executor.submit(self._post, url, payload)
            with self._lock:
                self._pending.add(future)
            future.add_done_callback(self._on_done)
            futures.append(future)
        return futures

    def _post(self, url: str, payload: dict) -> bool:
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(url, json=payload)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            if self.logger:
                self.logger.warning(
                    "Webhook delivery to %s failed: HTTP %s", _redact(url), exc.response.status_code,
                )
            return False
        except httpx.HTTPError as exc:
            # Error messages can embed the full URL
            if self.logger:
                self.logger.warning("Webhook delivery to %s failed: %s", _redact(url), type(exc).__name__)
            return False
        return True

    def _on_done(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None and self.logger:
            self.logger.error("Unexpected webhook delivery error: %r", exc)

    def flush(self, timeout: float | None = None) -> None:
        """Wait for queued deliveries (tests and shutdown)."""
        with self._lock:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
