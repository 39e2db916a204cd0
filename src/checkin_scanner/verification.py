"""Client for the spreadsheet-backed verification endpoint."""
from __future__ import annotations

import json
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

import requests

logger = logging.getLogger(__name__)

FORM_FIELD = "qrCode"
SUCCESS_STATUS = "success"
DEFAULT_PRIORITY = "no"


@dataclass(frozen=True, slots=True)
class VerificationResponse:
    """Success flag and priority flag returned by the backend."""

    success: bool
    priority: str = DEFAULT_PRIORITY

    @classmethod
    def failed(cls) -> "VerificationResponse":
        return cls(False, DEFAULT_PRIORITY)


def parse_response(body: bytes | bytearray | str | None) -> VerificationResponse:
    """Decode the backend's JSON reply.

    The reply must be a JSON object whose values are all strings. ``status``
    equal to ``"success"`` marks the code as valid and ``priority`` defaults to
    ``"no"`` when absent. Any other shape is treated as a failed verification.
    """

    if not body:
        logger.warning("verification: empty response body")
        return VerificationResponse.failed()

    try:
        data = json.loads(body)
    except (TypeError, ValueError) as exc:
        logger.warning("verification: undecodable response - %s", exc)
        return VerificationResponse.failed()

    if not isinstance(data, dict) or not all(isinstance(value, str) for value in data.values()):
        logger.warning("verification: unexpected response shape %r", data)
        return VerificationResponse.failed()

    return VerificationResponse(
        success=data.get("status") == SUCCESS_STATUS,
        priority=data.get("priority", DEFAULT_PRIORITY),
    )


class VerificationClient:
    """POST scanned codes to the verification endpoint.

    ``verify`` runs the request on a single background thread and hands back a
    :class:`~concurrent.futures.Future`. The future always resolves with a
    :class:`VerificationResponse`; transport and decoding problems are folded
    into :meth:`VerificationResponse.failed`.
    """

    def __init__(
        self,
        endpoint: Optional[str],
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self._endpoint = endpoint
        self._timeout = timeout
        self._session = session or requests.Session()
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="verification"
        )

    @property
    def endpoint(self) -> Optional[str]:
        return self._endpoint

    def verify(self, code: str) -> "Future[VerificationResponse]":
        return self._executor.submit(self.verify_sync, code)

    def verify_sync(self, code: str) -> VerificationResponse:
        if not self._endpoint:
            logger.error("verification: no endpoint configured, rejecting %r", code)
            return VerificationResponse.failed()

        try:
            response = self._session.post(
                self._endpoint,
                data={FORM_FIELD: code},
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.Timeout:
            logger.error("verification: request timeout for %r", code)
            return VerificationResponse.failed()
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else "?"
            logger.error("verification: HTTP %s for %r", status, code)
            return VerificationResponse.failed()
        except requests.RequestException as exc:
            logger.error("verification: network error for %r - %s", code, exc)
            return VerificationResponse.failed()

        result = parse_response(response.content)
        logger.info(
            "verification: %r -> success=%s priority=%s", code, result.success, result.priority
        )
        return result

    def close(self) -> None:
        self._executor.shutdown(wait=False)
        self._session.close()


__all__ = [
    "DEFAULT_PRIORITY",
    "FORM_FIELD",
    "SUCCESS_STATUS",
    "VerificationClient",
    "VerificationResponse",
    "parse_response",
]
