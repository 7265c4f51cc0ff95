# User value: This file talks to the remote document analyzer so users get structured results from uploaded documents.
# services/job_client.py
import logging
import time
from typing import Callable, Optional

import httpx
from pydantic import BaseModel, model_validator

import config
from schemas.analysis import AnalysisResult, OperationHandle
from schemas.analysis_contract import OPERATION_FAILED, OPERATION_SUCCEEDED
from services.errors import (
    AnalysisError,
    AnalysisTimedOut,
    SubmissionError,
    TerminalFailure,
    TransientPollError,
)
from services.result_transformer import normalize
from utils.metrics import incr, observe_ms

logger = logging.getLogger("api.job_client")

OPERATION_LOCATION_HEADER = "Operation-Location"


class ContentUnderstandingSettings(BaseModel):
    """
    Connection settings for the analyzer service.

    Built once (usually via ``from_env``) and passed into ``JobClient``.
    """

    endpoint: str
    api_version: str
    analyzer_id: str
    subscription_key: Optional[str] = None
    aad_token: Optional[str] = None
    user_agent: str = "docvalidator-service"
    request_timeout_sec: float = 30.0
    poll_timeout_sec: float = 270.0
    poll_interval_sec: float = 3.0

    @model_validator(mode="after")
    def _check(self):
        if not self.endpoint.strip():
            raise ValueError("Endpoint must be provided")
        if not self.api_version.strip():
            raise ValueError("API version must be provided")
        if not self.analyzer_id.strip():
            raise ValueError("Analyzer id must be provided")
        if not self.subscription_key and not self.aad_token:
            raise ValueError("Either subscription_key or aad_token must be provided")
        if self.poll_interval_sec <= 0:
            raise ValueError("poll_interval_sec must be positive")
        self.endpoint = self.endpoint.strip().rstrip("/")
        return self

    @classmethod
    def from_env(cls) -> "ContentUnderstandingSettings":
        return cls(
            endpoint=config.CU_ENDPOINT,
            api_version=config.CU_API_VERSION,
            analyzer_id=config.CU_ANALYZER_ID,
            subscription_key=config.CU_API_KEY or None,
            aad_token=config.CU_AAD_TOKEN or None,
            user_agent=config.CU_USER_AGENT,
            request_timeout_sec=config.CU_REQUEST_TIMEOUT_SEC,
            poll_timeout_sec=config.ANALYSIS_POLL_TIMEOUT_SEC,
            poll_interval_sec=config.ANALYSIS_POLL_INTERVAL_SEC,
        )


def operation_id_from_location(operation_location: str) -> str:
    tail = operation_location.rstrip("/").split("/")[-1]
    return tail.split("?")[0]


class JobClient:
    """
    Submit documents to the analyzer and poll the resulting operation.

    Args:
        settings: analyzer connection settings
        http_client: optional preconfigured ``httpx.Client`` (tests pass one
            backed by ``httpx.MockTransport``)
        clock: monotonic clock in seconds
        sleep: blocking sleep used between poll attempts
    """

    def __init__(
        self,
        settings: ContentUnderstandingSettings,
        *,
        http_client: Optional[httpx.Client] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=settings.request_timeout_sec)
        self._clock = clock
        self._sleep = sleep
        self._headers = self._build_headers()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def _build_headers(self) -> dict:
        headers = {"x-ms-useragent": self.settings.user_agent}
        if self.settings.subscription_key:
            headers["Ocp-Apim-Subscription-Key"] = self.settings.subscription_key
        elif self.settings.aad_token:
            headers["Authorization"] = f"Bearer {self.settings.aad_token}"
        return headers

    def analyze_url(self) -> str:
        return (
            f"{self.settings.endpoint}/contentunderstanding/analyzers/"
            f"{self.settings.analyzer_id}:analyze"
        )

    # =========================================================
    # SUBMIT
    # =========================================================
    def submit(self, locator: str) -> OperationHandle:
        if not (locator.startswith("http://") or locator.startswith("https://")):
            raise SubmissionError("Only URL-based analysis is supported; locator must be http(s)")

        started = time.perf_counter()
        try:
            response = self._http.post(
                self.analyze_url(),
                params={"api-version": self.settings.api_version, "stringEncoding": "utf16"},
                headers={"Content-Type": "application/json", **self._headers},
                json={"url": locator},
            )
        except httpx.HTTPError as exc:
            incr("analysis_submit_failed_total", reason="transport")
            raise SubmissionError(f"Analyzer request failed: {exc.__class__.__name__}: {exc}") from exc

        observe_ms("analysis_submit_latency_ms", (time.perf_counter() - started) * 1000.0)

        if response.is_error:
            incr("analysis_submit_failed_total", reason="rejected", status_code=response.status_code)
            raise SubmissionError(
                f"HTTP {response.status_code}: {response.text[:500]}",
                status_code=response.status_code,
            )

        operation_location = (response.headers.get(OPERATION_LOCATION_HEADER) or "").strip()
        if not operation_location:
            incr("analysis_submit_failed_total", reason="missing_operation_location")
            raise SubmissionError("Operation location not found in response headers")

        operation_id = operation_id_from_location(operation_location)
        if not operation_id:
            incr("analysis_submit_failed_total", reason="bad_operation_location")
            raise SubmissionError(f"Could not extract operation id from {operation_location}")

        incr("analysis_submitted_total", analyzer=self.settings.analyzer_id)
        logger.info(
            "analysis_submitted analyzer=%s operation_id=%s",
            self.settings.analyzer_id,
            operation_id,
        )
        return OperationHandle(operation_id=operation_id, operation_location=operation_location)

    # =========================================================
    # POLL
    # =========================================================
    def fetch_status(self, handle: OperationHandle) -> dict:
        """Single status read. Any failure surfaces as ``TransientPollError``."""
        try:
            response = self._http.get(
                handle.operation_location,
                headers={"Content-Type": "application/json", **self._headers},
            )
        except httpx.HTTPError as exc:
            raise TransientPollError(f"{exc.__class__.__name__}: {exc}") from exc

        if response.is_error:
            raise TransientPollError(f"HTTP {response.status_code}: {response.text[:200]}")

        try:
            body = response.json()
        except ValueError as exc:
            raise TransientPollError("Operation status was not valid JSON") from exc

        if not isinstance(body, dict):
            raise TransientPollError("Operation status was not a JSON object")
        return body

    def wait_for_terminal(
        self,
        handle: OperationHandle,
        timeout_sec: Optional[float] = None,
        interval_sec: Optional[float] = None,
    ) -> dict:
        """
        Poll until the operation succeeds, fails, or the budget runs out.

        Returns the raw succeeded response. Raises ``TerminalFailure`` when
        the remote job failed and ``AnalysisTimedOut`` when the budget is
        exceeded.
        """
        budget = self.settings.poll_timeout_sec if timeout_sec is None else float(timeout_sec)
        interval = self.settings.poll_interval_sec if interval_sec is None else float(interval_sec)

        if budget < interval:
            incr("analysis_poll_timed_out_total", reason="budget_below_interval")
            raise AnalysisTimedOut(
                f"Timeout budget {budget:.2f}s is shorter than poll interval {interval:.2f}s",
                elapsed_sec=0.0,
                attempts=0,
            )

        start = self._clock()
        attempts = 0
        while True:
            elapsed = self._clock() - start
            if elapsed > budget:
                incr("analysis_poll_timed_out_total", reason="budget_exceeded")
                raise AnalysisTimedOut(
                    f"Operation timed out after {elapsed:.2f} seconds.",
                    elapsed_sec=elapsed,
                    attempts=attempts,
                )

            attempts += 1
            try:
                body = self.fetch_status(handle)
            except TransientPollError as exc:
                incr("analysis_poll_transient_errors_total")
                logger.warning(
                    "poll_attempt_failed operation_id=%s attempt=%s elapsed=%.2f error=%s",
                    handle.operation_id,
                    attempts,
                    elapsed,
                    exc,
                )
            else:
                status = str(body.get("status") or "").strip().lower()
                if status == OPERATION_SUCCEEDED:
                    observe_ms("analysis_poll_duration_ms", elapsed * 1000.0, outcome="succeeded")
                    logger.info(
                        "poll_succeeded operation_id=%s attempts=%s elapsed=%.2f",
                        handle.operation_id,
                        attempts,
                        elapsed,
                    )
                    return body
                if status == OPERATION_FAILED:
                    error = body.get("error") if isinstance(body.get("error"), dict) else {}
                    message = str(error.get("message") or "Analysis failed")
                    observe_ms("analysis_poll_duration_ms", elapsed * 1000.0, outcome="failed")
                    logger.warning(
                        "poll_failed operation_id=%s attempts=%s error=%s",
                        handle.operation_id,
                        attempts,
                        message,
                    )
                    raise TerminalFailure(message, code=error.get("code"), raw=body)

                logger.debug(
                    "poll_running operation_id=%s attempt=%s status=%s elapsed=%.2f",
                    handle.operation_id,
                    attempts,
                    status or "unknown",
                    elapsed,
                )

            self._sleep(interval)

    def poll(
        self,
        handle: OperationHandle,
        timeout_sec: Optional[float] = None,
        interval_sec: Optional[float] = None,
    ) -> AnalysisResult:
        try:
            raw = self.wait_for_terminal(handle, timeout_sec=timeout_sec, interval_sec=interval_sec)
        except TerminalFailure as exc:
            raw = exc.raw or {"status": "Failed", "error": {"message": str(exc)}}
        return normalize(handle.operation_id, raw)

    # =========================================================
    # ANALYZER ADMIN (READ ONLY)
    # =========================================================
    def _get_json(self, url: str) -> dict:
        try:
            response = self._http.get(
                url,
                params={"api-version": self.settings.api_version},
                headers=self._headers,
            )
        except httpx.HTTPError as exc:
            raise AnalysisError(f"Analyzer request failed: {exc.__class__.__name__}: {exc}") from exc
        if response.is_error:
            raise AnalysisError(f"HTTP {response.status_code}: {response.text[:500]}")
        return response.json()

    def list_analyzers(self) -> list[dict]:
        body = self._get_json(f"{self.settings.endpoint}/contentunderstanding/analyzers")
        analyzers = body.get("value") if isinstance(body, dict) else None
        return list(analyzers or [])

    def get_analyzer(self, analyzer_id: str) -> dict:
        return self._get_json(f"{self.settings.endpoint}/contentunderstanding/analyzers/{analyzer_id}")
