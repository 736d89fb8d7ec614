"""
Media upload helpers.

Uploaded files are first written to a local temp directory, then pushed to
the media host. The local copy is removed after every upload attempt,
whether it succeeded or not. A failed upload is logged and reported as None
so the caller decides whether the file was required.
"""
from __future__ import annotations

import logging
import os
import uuid
from typing import Any, Dict, Optional

import cloudinary
import cloudinary.uploader
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)


def save_upload(file: Optional[FileStorage], tmp_dir: str) -> Optional[str]:
    """Write a multipart file to tmp_dir and return its path (None if no file was sent)."""
    if file is None or not file.filename:
        return None
    os.makedirs(tmp_dir, exist_ok=True)
    name = secure_filename(file.filename) or "upload"
    path = os.path.join(tmp_dir, f"{uuid.uuid4().hex}-{name}")
    file.save(path)
    return path


def discard(path: Optional[str]) -> None:
    if path and os.path.exists(path):
        os.remove(path)


class MediaUploader:
    """Base uploader: subclasses implement _push()."""

    def upload(self, local_path: Optional[str]) -> Optional[Dict[str, Any]]:
        if not local_path:
            return None
        try:
            result = self._push(local_path)
        except Exception:
            logger.exception("Media upload failed")
            result = None
        finally:
            try:
                discard(local_path)
            except OSError:
                logger.warning("Could not remove temp upload %s", os.path.basename(local_path))
        return result

    def _push(self, local_path: str) -> Dict[str, Any]:
        raise NotImplementedError


class CloudinaryUploader(MediaUploader):
    def __init__(self, cloud_name=None, api_key=None, api_secret=None):
        cloudinary.config(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret, secure=True)

    def _push(self, local_path: str) -> Dict[str, Any]:
        response = cloudinary.uploader.upload(local_path, resource_type="auto")
        if not response.get("url"):
            raise RuntimeError("Upload response carried no url")
        return response


def url_of(upload: Optional[Dict[str, Any]]) -> Optional[str]:
    if not upload:
        return None
    return upload.get("secure_url") or upload.get("url")
