import logging
import os

logger = logging.getLogger(__name__)


class LocalFileStore:
    """Document blobs on local disk, addressed by a relative key."""

    def __init__(self, base_dir):
        self.base_dir = os.path.abspath(base_dir)

    def _resolve(self, key):
        path = os.path.abspath(os.path.join(self.base_dir, key))
        # Keys come from storage_key(); refuse anything escaping the root anyway
        if os.path.commonpath([path, self.base_dir]) != self.base_dir:
            raise ValueError(f"Invalid storage key: {key!r}")
        return path

    def save(self, data, path_hint):
        path = self._resolve(path_hint)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as fh:
            fh.write(data)
        return path_hint

    def read(self, key):
        with open(self._resolve(key), "rb") as fh:
            return fh.read()

    def delete(self, key):
        try:
            os.remove(self._resolve(key))
        except FileNotFoundError:
            logger.info("File already gone: %s", key)

    def exists(self, key):
        return os.path.exists(self._resolve(key))
