import base64
import logging
from functools import lru_cache
import httpx
from pydantic import ValidationError as PydanticValidationError
from sk8spot.core.config import Settings, get_settings
from sk8spot.core.exceptions import ClassifierError
from sk8spot.schemas.analysis import ClassifierResponse, Detection

logger = logging.getLogger(__name__)

class ClassifierClient:
    """
    外部の物体検出サービスへ画像を投げ，検出結果（predictions）を受け取る．
    ・ROBOFLOW_API_KEYとROBOFLOW_MODEL_IDがあれば，ホスト型のRoboflowにbase64で送る．
    ・そうでなければ，自前のMLサービス（ML_SERVICE_URL/analyze）にmultipartで送る．
    失敗は全てClassifierErrorにまとめる（タイムアウト，HTTPエラー，不正なレスポンス，未設定）．
    """
    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self.timeout = settings.ML_TIMEOUT_SECONDS
        self._transport = transport # テスト用の差し替え口

    @property
    def configured(self) -> bool:
        return self.settings.classifier_configured

    @property
    def uses_roboflow(self) -> bool:
        return bool(self.settings.ROBOFLOW_API_KEY and self.settings.ROBOFLOW_MODEL_ID)

    async def predict(self, image_bytes: bytes) -> list[Detection]:
        if not self.configured:
            raise ClassifierError('classifier is not configured')

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                if self.uses_roboflow:
                    response = await self._post_roboflow(client, image_bytes)
                else:
                    response = await self._post_ml_service(client, image_bytes)
                response.raise_for_status()
                payload = response.json()
        except httpx.TimeoutException as e:
            raise ClassifierError(f"classifier timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise ClassifierError(f"classifier request failed: {e}") from e
        except ValueError as e: # JSONでないレスポンス
            raise ClassifierError(f"classifier returned invalid JSON: {e}") from e

        try:
            return ClassifierResponse.model_validate(payload).predictions
        except PydanticValidationError as e:
            raise ClassifierError(f"classifier returned an unexpected response: {e}") from e

    async def _post_roboflow(self, client: httpx.AsyncClient, image_bytes: bytes) -> httpx.Response:
        s = self.settings
        url = f"{s.ROBOFLOW_API_URL.rstrip('/')}/{s.ROBOFLOW_MODEL_ID}/{s.ROBOFLOW_VERSION_NUMBER}"
        return await client.post(
            url,
            params={'api_key': s.ROBOFLOW_API_KEY},
            content=base64.b64encode(image_bytes),
            headers={'Content-Type': 'application/x-www-form-urlencoded'}
        )

    async def _post_ml_service(self, client: httpx.AsyncClient, image_bytes: bytes) -> httpx.Response:
        url = f"{self.settings.ML_SERVICE_URL.rstrip('/')}/analyze"
        return await client.post(url, files={'image': ('image.jpg', image_bytes, 'image/jpeg')})

@lru_cache
def get_classifier_client() -> ClassifierClient:
    return ClassifierClient(get_settings())
