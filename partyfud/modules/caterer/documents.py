"""Storage for caterer documents (food licence, trade registration)."""

from __future__ import annotations

import os
import uuid
from typing import Optional

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from partyfud.app.common.errors import abort_json

ALLOWED_EXTENSIONS = {"pdf", "png", "jpg", "jpeg"}


def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def _size(upload: FileStorage) -> int:
    stream = upload.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def check_upload(upload: FileStorage, field: str) -> None:
    if _extension(upload.filename or "") not in ALLOWED_EXTENSIONS:
        abort_json(400, "validation_error", f"{field} must be a PDF, PNG or JPG file")
    limit_mb = current_app.config.get("MAX_UPLOAD_MB", 5)
    if _size(upload) > limit_mb * 1024 * 1024:
        abort_json(400, "validation_error", f"{field} must be {limit_mb}MB or smaller")


def save_document(upload: Optional[FileStorage], existing_url: Optional[str], field: str) -> Optional[str]:
    """Store an uploaded document, or keep the URL the form sent back."""
    if upload is None or not upload.filename:
        return (existing_url or "").strip() or None

    check_upload(upload, field)
    folder = current_app.config["UPLOAD_FOLDER"]
    os.makedirs(folder, exist_ok=True)
    name = f"{uuid.uuid4().hex}_{secure_filename(upload.filename)}"
    upload.save(os.path.join(folder, name))
    return f"/uploads/{name}"
