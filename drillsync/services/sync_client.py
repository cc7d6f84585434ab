"""HTTP client for the Apps Script web app.

Every call is a single POST of a ``{"type": ..., "data": ...}`` envelope sent
as text/plain (the script platform rejects JSON preflights). The response is
classified before anything else is done with it, see ``SyncClient.send``.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests
from requests.exceptions import RequestException

from drillsync.config import SyncConfig
from drillsync.domain.records import RecordKind, WireRecord
from drillsync.errors import (
    AppError,
    ConfigurationError,
    ConnectivityError,
    InvalidResponseError,
    RemoteDeploymentError,
    RemoteLogicError,
    ValidationError,
)

log = logging.getLogger(__name__)

CONTENT_TYPE = 'text/plain;charset=utf-8'


@dataclass(frozen=True)
class Envelope:
    """Tagged request wrapper: one record kind, one payload."""
    kind: RecordKind
    payload: Any

    @classmethod
    def for_record(cls, record, kind=None):
        """Wrap a typed record (or a stored dict together with its kind)."""
        if isinstance(record, WireRecord):
            return cls(kind or record.kind, record.to_dict())
        if kind is None:
            raise ValidationError("A record kind is required to wrap a plain dict")
        return cls(kind, dict(record))

    def to_wire(self):
        return {"type": self.kind.value, "data": self.payload}

    def serialize(self) -> str:
        return json.dumps(self.to_wire(), ensure_ascii=False)


@dataclass(frozen=True)
class SyncResult:
    success: bool
    message: str
    data: Any = None
    error: Optional[type] = None

    @classmethod
    def failed(cls, error: AppError):
        return cls(False, error.message, error.details, type(error))

    def raise_for_error(self):
        """Raise the classified error for a failed result."""
        if not self.success and self.error is not None:
            raise self.error(self.message)
        return self


def looks_like_markup(text: str) -> bool:
    """True for login and error pages returned instead of JSON."""
    stripped = text.strip()
    return stripped.startswith('<') or '<!doctype html' in stripped.lower()


class SyncClient:
    """Sends one envelope to the remote endpoint and classifies the outcome."""

    def __init__(self, config: Optional[SyncConfig] = None, session=None):
        self.config = config or SyncConfig()
        self.timeout = self.config.timeout
        self.session = session or requests.Session()

    def send(self, record, url, kind=None) -> SyncResult:
        """Upload one record.

        Failure classes, first match wins: missing configuration (no
        request made), transport failure, markup body, unparsable body,
        ``success: false`` from the script.
        """
        envelope = record if isinstance(record, Envelope) else Envelope.for_record(record, kind)
        try:
            body = self._exchange(envelope, url)
            result = self._interpret(body)
        except AppError as e:
            log.warning(f"{envelope.kind.value} upload failed ({type(e).__name__}): {e.message}")
            return SyncResult.failed(e)
        if envelope.kind.queued:
            log.info(f"{envelope.kind.value} {self._record_id(envelope)} uploaded")
        else:
            log.debug(f"{envelope.kind.value} request succeeded")
        return result

    def fetch(self, kind: RecordKind, url) -> SyncResult:
        """Request a read-only operation (``*_fetch`` tags)."""
        return self.send(Envelope(kind, {}), url)

    def _exchange(self, envelope: Envelope, url) -> str:
        if self.config.is_placeholder(url):
            raise ConfigurationError("Script URL is not configured.")

        try:
            response = self.session.post(
                url,
                data=envelope.serialize().encode('utf-8'),
                headers={'Content-Type': CONTENT_TYPE},
                timeout=self.timeout,
                allow_redirects=True,
            )
            response.raise_for_status()
        except RequestException as e:
            raise ConnectivityError(f"Connection error: {e}")

        return response.text

    @staticmethod
    def _interpret(body: str) -> SyncResult:
        if looks_like_markup(body):
            raise RemoteDeploymentError(details={"body": body[:200]})

        try:
            parsed = json.loads(body)
        except ValueError:
            raise InvalidResponseError(details={"body": body[:200]})
        if not isinstance(parsed, dict):
            raise InvalidResponseError(details={"body": body[:200]})

        message = parsed.get('message') or ''
        if parsed.get('success') is not True:
            raise RemoteLogicError(message or "The remote script reported an error",
                                   details=parsed.get('data'))
        return SyncResult(True, message or "OK", parsed.get('data'))

    @staticmethod
    def _record_id(envelope):
        if isinstance(envelope.payload, dict):
            return envelope.payload.get('id', '')
        return ''
