"""
nudge_studio/services/api_client.py -- HTTP client for the campaign backend.

Talks to the admin campaign endpoints with ``urllib.request``.  Every
failure surfaces as :class:`ApiError`:

    - non-2xx responses carry the status plus the ``message`` / ``code`` /
      ``details`` from the JSON error body when there is one;
    - timeouts become status 408, code ``TIMEOUT``;
    - unreachable hosts become status 0, code ``NETWORK``;
    - a 2xx body that is not JSON becomes status 500, code ``INVALID_JSON``.

Usage::

    client = ApiClient("http://localhost:4000", api_key="admin-secret-key")
    campaigns, total = client.list_campaigns(limit=20)
    saved = client.create_campaign(export_payload(doc))
"""

from __future__ import annotations

import json
import logging
import socket
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Optional

from nudge_engine.autosave import SaveTicket
from nudge_engine.models.campaign import CampaignDocument
from nudge_engine.serialization import document_from_payload

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
HEALTH_TIMEOUT = 5.0

CAMPAIGNS_PATH = "/v1/admin/campaigns"
HEALTH_PATH = "/v1/health"


class ApiError(Exception):
    """A failed request to the campaign backend."""

    def __init__(self, message: str, status: int, code: Optional[str] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.details = details

    def __str__(self) -> str:
        if self.status:
            return f"{self.message} (HTTP {self.status})"
        return self.message


class ApiClient:
    """Thin JSON client for ``/v1/admin/campaigns`` and ``/v1/health``.

    Parameters
    ----------
    base_url : str
        Backend origin, e.g. ``http://localhost:4000``.
    api_key : str, optional
        Sent as both ``Authorization: Bearer`` and ``x-api-key``.
    timeout : float
        Seconds per request.
    """

    def __init__(self, base_url: str, api_key: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> ApiClient:
        return cls(settings.base_url, settings.api_key, settings.timeout)

    def set_api_key(self, key: str) -> None:
        if not key or not key.strip():
            raise ValueError("API key cannot be empty")
        self.api_key = key.strip()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _headers(self, skip_auth: bool) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_key and not skip_auth:
            headers["Authorization"] = f"Bearer {self.api_key}"
            headers["x-api-key"] = self.api_key
        return headers

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        timeout: Optional[float] = None,
        skip_auth: bool = False,
    ) -> Any:
        """Send one request and return the decoded JSON body ({} for 204)."""
        url = f"{self.base_url}{path}"
        data = json.dumps(body).encode("utf-8") if body is not None else None
        req = urllib.request.Request(url, data=data, method=method, headers=self._headers(skip_auth))
        logger.debug("%s %s", method, url)
        try:
            with urllib.request.urlopen(req, timeout=timeout or self.timeout) as resp:
                status = resp.status
                raw = resp.read()
        except urllib.error.HTTPError as exc:
            raise self._http_error(exc) from None
        except (socket.timeout, TimeoutError):
            raise ApiError("Request timeout", 408, "TIMEOUT") from None
        except urllib.error.URLError as exc:
            if isinstance(exc.reason, (socket.timeout, TimeoutError)):
                raise ApiError("Request timeout", 408, "TIMEOUT") from None
            raise ApiError(f"Cannot reach {self.base_url}: {exc.reason}", 0, "NETWORK") from None

        if status == 204 or not raw:
            return {}
        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            raise ApiError("Invalid JSON response", 500, "INVALID_JSON") from None

    @staticmethod
    def _http_error(exc: urllib.error.HTTPError) -> ApiError:
        try:
            text = exc.read().decode("utf-8", errors="replace")
        except OSError:
            text = ""
        try:
            body = json.loads(text) if text else {}
        except json.JSONDecodeError:
            body = {"message": text}
        if not isinstance(body, dict):
            body = {}
        message = body.get("message") or body.get("error") or f"HTTP {exc.code}"
        return ApiError(message, exc.code, body.get("code"), body.get("details"))

    # ------------------------------------------------------------------
    # Campaigns
    # ------------------------------------------------------------------

    def list_campaigns(self, limit: int = 20, offset: int = 0) -> tuple[list[dict], int]:
        query = urllib.parse.urlencode({"limit": limit, "offset": offset})
        data = self.request("GET", f"{CAMPAIGNS_PATH}?{query}")
        campaigns = data.get("campaigns", [])
        return campaigns, data.get("total", len(campaigns))

    def get_campaign(self, campaign_id: str) -> dict:
        return self.request("GET", self._campaign_path(campaign_id))

    def load_campaign(self, campaign_id: str) -> CampaignDocument:
        """Fetch a campaign and validate it into a document."""
        return document_from_payload(self.get_campaign(campaign_id))

    def create_campaign(self, payload: dict) -> dict:
        return self.request("POST", CAMPAIGNS_PATH, payload)

    def update_campaign(self, campaign_id: str, payload: dict) -> dict:
        return self.request("PUT", self._campaign_path(campaign_id), payload)

    def delete_campaign(self, campaign_id: str) -> bool:
        return bool(self.request("DELETE", self._campaign_path(campaign_id)).get("ok", True))

    def save_ticket(self, ticket: SaveTicket) -> str:
        """Persist an autosave ticket; returns the id the server knows it by.

        Campaigns never saved before are created, others are updated.
        """
        if ticket.is_new:
            saved = self.create_campaign(ticket.payload)
        else:
            saved = self.update_campaign(ticket.campaign_id, ticket.payload)
        return str(saved.get("id") or saved.get("_id") or ticket.campaign_id)

    def check_health(self) -> bool:
        try:
            data = self.request("GET", HEALTH_PATH, timeout=HEALTH_TIMEOUT, skip_auth=True)
        except ApiError as exc:
            logger.debug("Health check failed: %s", exc)
            return False
        return data.get("status") == "ok"

    @staticmethod
    def _campaign_path(campaign_id: str) -> str:
        return f"{CAMPAIGNS_PATH}/{urllib.parse.quote(campaign_id, safe='')}"
