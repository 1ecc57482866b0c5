"""Storage service — document files in Supabase Storage (prod) or local disk (dev).

Supabase bucket: SUPABASE_STORAGE_BUCKET (default "documents"; must exist).
Local fallback: instance/uploads/ directory.

Objects are stored flat under a random name that keeps the original
extension; the original filename lives on the Document row.
"""

import logging
import os
import uuid

import requests
from flask import current_app

from app.services.errors import StoreError, ValidationError, translate

logger = logging.getLogger(__name__)


def _get_supabase_config():
    """Return Supabase storage config if available, else None."""
    url = current_app.config.get("SUPABASE_URL")
    key = current_app.config.get("SUPABASE_SERVICE_KEY")
    bucket = current_app.config.get("SUPABASE_STORAGE_BUCKET") or "documents"

    if url and key:
        return {"url": url.rstrip("/"), "key": key, "bucket": bucket}
    return None


def max_file_size():
    return int(current_app.config.get("MAX_UPLOAD_MB", 25)) * 1024 * 1024


def validate_file(file):
    """Validate an uploaded file (from request.files). Raises ValidationError."""
    if not file or not file.filename:
        raise ValidationError("No file selected.")

    file.seek(0, os.SEEK_END)
    size = file.tell()
    file.seek(0)

    limit = max_file_size()
    if size > limit:
        raise ValidationError(
            f"File is too large ({size / (1024 * 1024):.1f} MB). "
            f"Maximum is {limit // (1024 * 1024)} MB."
        )
    if size == 0:
        raise ValidationError("File is empty.")


def storage_name(filename):
    ext = os.path.splitext(filename or "")[1].lower()
    return f"{uuid.uuid4().hex}{ext}"


def upload_file(file):
    """Upload a file and return metadata dict.

    Returns dict with:
        file_name: original filename
        storage_path: object name in the bucket (or under instance/uploads)
        content_type: MIME type
        file_size: bytes
        public_url: URL to access the file
    """
    validate_file(file)
    original_name = file.filename
    path = storage_name(original_name)

    file_data = file.read()
    content_type = file.content_type or "application/octet-stream"

    supabase = _get_supabase_config()
    if supabase:
        _upload_supabase(supabase, path, file_data, content_type)
    else:
        _upload_local(path, file_data)

    return {
        "file_name": original_name,
        "storage_path": path,
        "content_type": content_type,
        "file_size": len(file_data),
        "public_url": public_url(path),
    }


def _upload_supabase(config, path, data, content_type):
    url = f"{config['url']}/storage/v1/object/{config['bucket']}/{path}"
    headers = {
        "Authorization": f"Bearer {config['key']}",
        "Content-Type": content_type,
    }
    try:
        resp = requests.post(url, headers=headers, data=data, timeout=30)
        resp.raise_for_status()
    except requests.HTTPError as e:
        logger.error(f"Supabase upload failed: {e}")
        raise StoreError(f"Error uploading file: {e}") from e
    except requests.RequestException as e:
        raise translate(e, "uploading file") from e
    logger.info(f"Uploaded to Supabase: {path}")


def _upload_local(path, data):
    upload_dir = os.path.join(current_app.instance_path, "uploads")
    os.makedirs(upload_dir, exist_ok=True)

    filepath = os.path.join(upload_dir, path)
    with open(filepath, "wb") as f:
        f.write(data)
    logger.info(f"Uploaded locally: {filepath}")


def public_url(storage_path):
    if not storage_path:
        return None
    supabase = _get_supabase_config()
    if supabase:
        return f"{supabase['url']}/storage/v1/object/public/{supabase['bucket']}/{storage_path}"
    return f"/uploads/{storage_path}"


def local_path(storage_path):
    """Absolute path of a locally stored upload, or None if it escapes the folder."""
    root = os.path.realpath(os.path.join(current_app.instance_path, "uploads"))
    candidate = os.path.realpath(os.path.join(root, storage_path))
    if not candidate.startswith(root + os.sep):
        return None
    return candidate


def delete_file(storage_path):
    """Delete a file from storage. Best-effort, does not raise."""
    if not storage_path:
        return
    supabase = _get_supabase_config()
    if supabase:
        try:
            url = f"{supabase['url']}/storage/v1/object/{supabase['bucket']}/{storage_path}"
            headers = {"Authorization": f"Bearer {supabase['key']}"}
            requests.delete(url, headers=headers, timeout=10)
        except requests.RequestException as e:
            logger.warning(f"Failed to delete from Supabase: {e}")
    else:
        filepath = local_path(storage_path)
        if filepath is None:
            return
        try:
            os.remove(filepath)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to delete local file: {e}")
