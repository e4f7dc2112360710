"""
File-backed local cache holding the last known snapshot of each collection.
Used as the read fallback when the Record Store is unreachable.
"""
import json
import os
import re
from typing import Any, Optional

from salonbook.core.config import settings
from salonbook.core.logger import logger

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class LocalCache:
    """JSON cache wrapper, one file per key"""

    def __init__(self, directory: str = None):
        self.directory = directory or settings.CACHE_DIR

    def _path(self, key: str) -> str:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid cache key: {key!r}")
        return os.path.join(self.directory, f"{key}.json")

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        path = self._path(key)
        if not os.path.exists(path):
            logger.debug(f"❌ Cache MISS: {key}")
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                value = json.load(f)
            logger.debug(f"✅ Cache HIT: {key}")
            return value
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any) -> bool:
        """Write value atomically (temp file + rename)"""
        path = self._path(key)
        tmp_path = f"{path}.tmp"
        try:
            os.makedirs(self.directory, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(value, f, ensure_ascii=False)
            os.replace(tmp_path, path)
            logger.debug(f"✅ Cache SET: {key}")
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False
