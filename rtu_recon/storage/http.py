from __future__ import annotations

import logging
import os
from typing import Any

import requests

from ..models.dataset import Dataset, UploadedFile
from .base import UploadStore, UploadStoreError

"""REST upload store.

Talks to the dashboard backend:

    GET {base_url}/api/uploads            -> {"success": true, "files": [...]}
    GET {base_url}/api/uploads/{fileId}   -> {"success": true, "file": {"headers": [...], "rows": [...]}}

Requests carry ``Authorization: Bearer <token>`` when a token is configured
(env RECON_API_TOKEN).
"""

__all__ = [
    "HttpUploadStore",
    "TOKEN_ENV",
]

logger = logging.getLogger(__name__)

TOKEN_ENV = "RECON_API_TOKEN"


def _file_entry(raw: dict[str, Any]) -> UploadedFile | None:
    file_id = raw.get("fileId") or raw.get("file_id") or raw.get("_id")
    if not file_id:
        return None
    return UploadedFile(
        file_id=str(file_id),
        name=str(raw.get("name") or raw.get("originalName") or file_id),
        upload_type=raw.get("uploadType"),
        uploaded_at=raw.get("uploadedAt"),
        created_at=raw.get("createdAt"),
    )


class HttpUploadStore(UploadStore):
    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        token = token if token is not None else os.getenv(TOKEN_ENV)
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _get(self, path: str) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            raise UploadStoreError(f"GET {url} failed: {e}") from e
        except ValueError as e:
            raise UploadStoreError(f"GET {url} returned invalid JSON: {e}") from e
        if not isinstance(payload, dict) or not payload.get("success"):
            message = payload.get("message") if isinstance(payload, dict) else None
            raise UploadStoreError(f"GET {url} unsuccessful: {message or 'no success flag'}")
        return payload

    def list_files(self) -> list[UploadedFile]:
        payload = self._get("/api/uploads")
        files: list[UploadedFile] = []
        for raw in payload.get("files") or []:
            entry = _file_entry(raw) if isinstance(raw, dict) else None
            if entry is None:
                logger.debug("ignoring upload listing entry without id: %r", raw)
                continue
            files.append(entry)
        return files

    def fetch(self, file_id: str) -> Dataset:
        payload = self._get(f"/api/uploads/{file_id}")
        body = payload.get("file")
        if not isinstance(body, dict):
            raise UploadStoreError(f"upload {file_id}: response has no file body")
        rows = [r for r in body.get("rows") or [] if isinstance(r, dict)]
        headers = [str(h) for h in body.get("headers") or []]
        name = str(body.get("name") or file_id)
        return Dataset.from_rows(name, rows, headers=headers)

    def close(self) -> None:
        self.session.close()
