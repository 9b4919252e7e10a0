import json
import logging
from functools import lru_cache
import redis
from sk8spot.core.config import get_settings
from sk8spot.core.exceptions import CacheError

logger = logging.getLogger(__name__)

class CacheClient:
    """
    Redisを使ったJSON値のキャッシュ．
    Redisに繋がらない・URL未設定の場合でも例外は外に出さず，常にキャッシュミスとして振る舞う．
    """
    def __init__(self, url: str | None, client: redis.Redis | None = None):
        self.enabled = bool(url) or client is not None
        self._client = client
        if self._client is None and url:
            # from_urlは接続を遅延するので，ここで失敗することはない．
            self._client = redis.from_url(url, decode_responses=True)
        if not self.enabled:
            logger.info("REDIS_URL is not set, caching disabled")

    def _call(self, op: str, key: str, fn):
        try:
            return fn()
        except (redis.RedisError, TypeError, ValueError) as e:
            raise CacheError(f"cache {op} failed for {key}: {e}") from e

    def get(self, key: str):
        if not self.enabled:
            return None
        try:
            data = self._call('get', key, lambda: self._client.get(key))
            return json.loads(data) if data else None
        except CacheError as e:
            logger.warning(e.message)
            return None

    def set(self, key: str, value, ttl_seconds: int) -> None:
        if not self.enabled:
            return
        try:
            self._call('set', key, lambda: self._client.setex(key, ttl_seconds, json.dumps(value)))
        except CacheError as e:
            logger.warning(e.message)

    def delete(self, key: str) -> None:
        if not self.enabled:
            return
        try:
            self._call('delete', key, lambda: self._client.delete(key))
        except CacheError as e:
            logger.warning(e.message)

    def clear_pattern(self, pattern: str) -> None:
        """
        パターンに一致するキーを全て消す．KEYSはRedisをブロックするのでSCANで少しずつ集める．
        """
        if not self.enabled:
            return

        def _clear():
            keys = list(self._client.scan_iter(match=pattern, count=100))
            if keys:
                self._client.delete(*keys)
            return len(keys)

        try:
            cleared = self._call('clear', pattern, _clear)
            logger.debug(f"Cleared {cleared} cache keys matching {pattern}")
        except CacheError as e:
            logger.warning(e.message)

@lru_cache
def get_cache() -> CacheClient:
    return CacheClient(get_settings().REDIS_URL)
