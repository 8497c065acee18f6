"""
Media host: where avatars and cover images go.

The API only needs one thing from it, an upload that returns a URL. Two
backends:
- LocalMediaHost writes into MEDIA_ROOT and serves under MEDIA_BASE_URL
- HttpMediaHost posts the file (multipart) to a remote upload endpoint and
  reads the URL back from its JSON answer
"""
from __future__ import annotations

import logging
import os
import secrets
import time
from abc import ABC, abstractmethod

import requests
from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)


class MediaUploadError(Exception):
    """The media host did not accept the file."""


class MediaHost(ABC):
    @abstractmethod
    def upload(self, file: FileStorage, folder: str) -> str:
        """Store `file` and return its public URL."""


def _unique_name(file: FileStorage) -> str:
    _, ext = os.path.splitext(secure_filename(file.filename or ""))
    field = secure_filename(file.name or "file") or "file"
    return f"{field}-{int(time.time() * 1000)}-{secrets.token_hex(6)}{ext.lower()}"


class LocalMediaHost(MediaHost):
    def __init__(self, root: str, base_url: str):
        self.root = root
        self.base_url = base_url.rstrip("/")

    def upload(self, file: FileStorage, folder: str) -> str:
        name = _unique_name(file)
        target_dir = os.path.join(self.root, folder)
        try:
            os.makedirs(target_dir, exist_ok=True)
            file.save(os.path.join(target_dir, name))
        except OSError as exc:
            raise MediaUploadError(f"could not store {name}: {exc}") from exc
        logger.info("stored media file %s/%s", folder, name)
        return f"{self.base_url}/{folder}/{name}"


class HttpMediaHost(MediaHost):
    def __init__(self, upload_url: str, api_key: str | None = None, timeout: float = 30.0):
        if not upload_url:
            raise ValueError("upload_url is required for the http media backend")
        self.upload_url = upload_url
        self.api_key = api_key
        self.timeout = timeout

    def upload(self, file: FileStorage, folder: str) -> str:
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        files = {"file": (_unique_name(file), file.stream, file.mimetype or "application/octet-stream")}
        try:
            resp = requests.post(
                self.upload_url,
                files=files,
                data={"folder": folder},
                headers=headers,
                timeout=self.timeout,
            )
            resp.raise_for_status()
            body = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise MediaUploadError(f"upload to media host failed: {exc}") from exc

        url = None
        if isinstance(body, dict):
            url = body.get("secure_url") or body.get("url")
        if not url:
            raise MediaUploadError("media host response has no url")
        logger.info("uploaded media file to %s", folder)
        return url


def build_media_host(config) -> MediaHost:
    backend = (config.get("MEDIA_BACKEND") or "local").lower()
    if backend == "http":
        return HttpMediaHost(
            config.get("MEDIA_UPLOAD_URL"),
            api_key=config.get("MEDIA_API_KEY"),
            timeout=config.get("MEDIA_TIMEOUT_SECONDS", 30.0),
        )
    if backend == "local":
        return LocalMediaHost(config["MEDIA_ROOT"], config["MEDIA_BASE_URL"])
    raise ValueError(f"Unknown MEDIA_BACKEND: {backend}")


def get_media_host() -> MediaHost:
    return current_app.extensions["media_host"]
