import mimetypes
import time
from dataclasses import dataclass
from typing import Optional

from werkzeug.utils import secure_filename


MIME_TYPE_MAP = {
    "pdf": ["application/pdf"],
    "jpg": ["image/jpeg"],
    "jpeg": ["image/jpeg"],
    "png": ["image/png"],
    "doc": ["application/msword"],
    "docx": ["application/vnd.openxmlformats-officedocument.wordprocessingml.document"],
    "xls": ["application/vnd.ms-excel"],
    "xlsx": ["application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"],
}

MAX_STORED_NAME = 200


@dataclass
class UploadFile:
    file_name: str
    content: bytes
    mime_type: Optional[str] = None

    @property
    def size(self):
        return len(self.content)

    @classmethod
    def from_storage(cls, storage):
        """Reads a werkzeug FileStorage fully into memory."""
        content = storage.read()
        mime = storage.mimetype or mimetypes.guess_type(storage.filename or "")[0]
        return cls(file_name=storage.filename or "upload", content=content, mime_type=mime)


def parse_formats(accepted_formats):
    if not accepted_formats:
        return []
    return [f.strip().lower().lstrip(".") for f in accepted_formats.split(",") if f.strip()]


def allowed_mime_types(accepted_formats):
    mimes = []
    for fmt in parse_formats(accepted_formats):
        mimes.extend(MIME_TYPE_MAP.get(fmt, []))
    return mimes


def validate_file_type(mime_type, accepted_formats):
    allowed = allowed_mime_types(accepted_formats)
    # Empty allow-list => no restriction
    if not allowed:
        return True
    return mime_type in allowed


def validate_file_size(size_bytes, max_size_mb):
    return size_bytes <= max_size_mb * 1024 * 1024


def storage_key(request_id, assignment_id, file_name):
    safe = secure_filename(file_name or "") or "file"
    stamp = int(time.time() * 1000)
    return f"{request_id}/{assignment_id}/{stamp}-{safe[:MAX_STORED_NAME]}"
