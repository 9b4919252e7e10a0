import logging
from functools import lru_cache
import httpx
from sk8spot.core.config import Settings, get_settings
from sk8spot.schemas.analysis import AnalysisResult

logger = logging.getLogger(__name__)

class Notifier:
    """
    解析完了などの通知を外部の通知サービスへ送る．
    通知はベストエフォートで，失敗はログに残すだけで呼び出し元には伝えない．
    """
    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.url = settings.NOTIFICATION_SERVICE_URL
        self.timeout = settings.NOTIFICATION_TIMEOUT_SECONDS
        self._transport = transport

    async def notify_analysis_complete(
        self,
        user_id: str,
        result: AnalysisResult,
        spot_id: str | None = None
    ) -> bool:
        if not self.url:
            return False

        payload = {
            'type': 'analysis_complete',
            'userId': user_id,
            'spotId': spot_id,
            'result': result.model_dump(mode='json', by_alias=True),
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(f"{self.url.rstrip('/')}/notifications", json=payload)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Failed to send analysis notification to user {user_id}: {e}")
            return False

        logger.info(f"Sent analysis notification to user {user_id}")
        return True

@lru_cache
def get_notifier() -> Notifier:
    return Notifier(get_settings())
