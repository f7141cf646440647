"""Google Drive folders and files, addressed by exact name within a parent."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from googleapiclient.discovery import build

log = logging.getLogger(__name__)

FOLDER_MIME = "application/vnd.google-apps.folder"


class StorageError(RuntimeError):
    pass


def folder_url(folder_id: str) -> str:
    return f"https://drive.google.com/drive/folders/{folder_id}"


def _q(value: str) -> str:
    return (value or "").replace("\\", "\\\\").replace("'", "\\'")


class DriveStorage:
    def __init__(self, service):
        self.service = service

    @classmethod
    def from_credentials(cls, creds) -> "DriveStorage":
        return cls(build("drive", "v3", credentials=creds, cache_discovery=False))

    def _list(self, query: str, fields: str = "id, name, mimeType, webViewLink") -> list[dict]:
        results: list[dict] = []
        page_token = None
        while True:
            response = (
                self.service.files()
                .list(
                    q=query,
                    spaces="drive",
                    fields=f"nextPageToken, files({fields})",
                    pageToken=page_token,
                    pageSize=100,
                )
                .execute()
            )
            results.extend(response.get("files", []))
            page_token = response.get("nextPageToken")
            if not page_token:
                break
        return results

    def parent_folder_id(self, file_id: str) -> str:
        meta = self.service.files().get(fileId=file_id, fields="parents").execute()
        parents = meta.get("parents") or []
        if not parents:
            raise StorageError(f"No parent folder for file {file_id}")
        return parents[0]

    def find_folder(self, parent_id: str, name: str) -> Optional[str]:
        query = (
            f"'{_q(parent_id)}' in parents and name = '{_q(name)}' "
            f"and mimeType = '{FOLDER_MIME}' and trashed = false"
        )
        hits = self._list(query, fields="id, name")
        return hits[0]["id"] if hits else None

    def ensure_folder(self, parent_id: str, name: str) -> tuple[str, bool]:
        """Folder id by exact name, created when missing. Returns (id, created)."""
        existing = self.find_folder(parent_id, name)
        if existing:
            return existing, False
        body = {"name": name, "mimeType": FOLDER_MIME, "parents": [parent_id]}
        created = self.service.files().create(body=body, fields="id").execute()
        log.info("created folder %s", name)
        return created["id"], True

    def find_file(self, parent_id: str, name: str) -> Optional[dict]:
        query = (
            f"'{_q(parent_id)}' in parents and name = '{_q(name)}' "
            f"and mimeType != '{FOLDER_MIME}' and trashed = false"
        )
        hits = self._list(query)
        return hits[0] if hits else None

    def copy_file(self, file_id: str, parent_id: str, name: str) -> dict:
        body = {"name": name, "parents": [parent_id]}
        return self.service.files().copy(fileId=file_id, body=body, fields="id, name, webViewLink").execute()

    def list_children(self, folder_id: str) -> list[dict]:
        return self._list(f"'{_q(folder_id)}' in parents and trashed = false", fields="id, name, mimeType")


def has_real_files(storage, folder_id: str, depth: int = 2, excluded: Iterable[str] = ("물품리스트",)) -> bool:
    """True if the folder, or a sub-folder up to depth levels down, holds a non-excluded file."""
    excluded = tuple(k.lower() for k in excluded if k)

    def real_file(item: dict) -> bool:
        if item.get("mimeType") == FOLDER_MIME:
            return False
        name = (item.get("name") or "").lower()
        return not any(k in name for k in excluded)

    level = [folder_id]
    for _ in range(depth + 1):
        next_level: list[str] = []
        for fid in level:
            children = storage.list_children(fid)
            if any(real_file(c) for c in children):
                return True
            next_level.extend(c["id"] for c in children if c.get("mimeType") == FOLDER_MIME)
        if not next_level:
            break
        level = next_level
    return False
