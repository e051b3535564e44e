"""GitHub contents API client used as a versioned blob host."""

from __future__ import annotations

import base64
import binascii
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from gt_cli.core.constants import GITHUB_API_BASE

RETRY_STATUSES = (429, 500, 502, 503, 504)
CONFLICT_STATUSES = (409, 412, 422)


class APIError(RuntimeError):
    """Raised for API failures after retries."""


class VersionConflictError(APIError):
    """Raised when a conditional write is rejected because the version is stale."""


class MalformedPayloadError(APIError):
    """Raised when the host answers with content that cannot be decoded."""


@dataclass(frozen=True)
class RemoteBlob:
    """Decoded file content plus the version token needed to replace it."""

    text: str
    version: str


class GitHubContentsAPI:
    """Thin wrapper around the repository contents endpoints."""

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        base_url: str = GITHUB_API_BASE,
        rate_limit_delay: float = 0.0,
        max_retries: int = 3,
        timeout_seconds: int = 30,
    ) -> None:
        self.token = token
        self.owner = owner
        self.repo = repo
        self.base_url = base_url.rstrip("/")
        self.rate_limit_delay = rate_limit_delay
        self.max_retries = max(max_retries, 1)
        self.timeout_seconds = timeout_seconds
        self._has_sent_request = False

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"token {self.token}",
            "Accept": "application/vnd.github+json",
            "Content-Type": "application/json",
        }

    def _contents_path(self, path: str) -> str:
        return f"/repos/{self.owner}/{self.repo}/contents/{path.lstrip('/')}"

    def _request(
        self,
        method: str,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        url = f"{self.base_url}{path}"
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                if self.rate_limit_delay > 0 and self._has_sent_request:
                    time.sleep(self.rate_limit_delay)

                self._has_sent_request = True
                response = requests.request(
                    method=method,
                    url=url,
                    headers=self._headers,
                    json=json_data,
                    timeout=self.timeout_seconds,
                )
                if response.status_code in RETRY_STATUSES:
                    raise requests.HTTPError(response.text, response=response)
                return response
            except requests.RequestException as exc:
                last_error = exc
                if attempt >= self.max_retries:
                    break
                time.sleep(min(2**attempt, 8))

        raise APIError(f"API request failed for {method} {path}: {last_error}")

    def fetch(self, path: str) -> Optional[RemoteBlob]:
        """Read a file and its version token; None when it does not exist."""
        response = self._request("GET", self._contents_path(path))
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise APIError(f"GET {path} failed with HTTP {response.status_code}: {response.text}")

        try:
            payload = response.json()
            encoded = str(payload["content"])
            version = str(payload["sha"])
            text = base64.b64decode(encoded).decode("utf-8")
        except (ValueError, KeyError, TypeError, binascii.Error, UnicodeDecodeError) as exc:
            raise MalformedPayloadError(f"Unexpected contents payload for {path}: {exc}") from exc
        return RemoteBlob(text=text, version=version)

    def replace(self, path: str, text: str, version: Optional[str], message: str) -> str:
        """Write a file conditioned on `version`; no version means create.

        Returns the new version token.
        """
        body: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(text.encode("utf-8")).decode("ascii"),
        }
        if version:
            body["sha"] = version

        response = self._request("PUT", self._contents_path(path), json_data=body)
        if response.status_code in CONFLICT_STATUSES:
            raise VersionConflictError(
                f"Version conflict writing {path} (HTTP {response.status_code}): {response.text}"
            )
        if response.status_code >= 400:
            raise APIError(f"PUT {path} failed with HTTP {response.status_code}: {response.text}")

        try:
            return str(response.json()["content"]["sha"])
        except (ValueError, KeyError, TypeError) as exc:
            raise MalformedPayloadError(f"Unexpected write response for {path}: {exc}") from exc
