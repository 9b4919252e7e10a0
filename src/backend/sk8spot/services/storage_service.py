import logging
import mimetypes
import uuid
from pathlib import Path
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import Depends
from sk8spot.core.config import Settings, get_settings
from sk8spot.core.exceptions import StorageError, NotFoundError
from sk8spot.services.spot_query import SpotQueryEngine, get_spot_query_engine

logger = logging.getLogger(__name__)

class SpotImageStorage:
    """
    スポット画像をS3に保存し，spot_imagesに紐付ける．
    キーは spots/{spot_id}/{ランダム}.{拡張子}．
    """
    def __init__(self, engine: SpotQueryEngine, settings: Settings, s3_client=None):
        self.engine = engine
        self.bucket = settings.S3_BUCKET_NAME
        self.public_base_url = settings.S3_PUBLIC_BASE_URL
        self._s3 = s3_client
        self._settings = settings

    @property
    def s3(self):
        if self._s3 is None:
            self._s3 = self._settings.s3_client
        return self._s3

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        return f"https://{self.bucket}.s3.amazonaws.com/{key}"

    def upload_spot_image(
        self,
        spot_id: str,
        data: bytes,
        filename: str | None,
        content_type: str | None,
        user_id: str | None = None,
        angle: str = 'main'
    ) -> str:
        if not self.bucket:
            raise StorageError('S3_BUCKET_NAME is not configured')
        if self.engine.get_spot_by_id(spot_id) is None:
            raise NotFoundError(f"Spot {spot_id} not found")

        ext = Path(filename or '').suffix.lower() or mimetypes.guess_extension(content_type or '') or '.jpg'
        key = f"spots/{spot_id}/{uuid.uuid4().hex}{ext}"

        try:
            self.s3.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type or 'application/octet-stream'
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"S3 upload failed for {self.bucket}/{key}: {e}")
            raise StorageError(f"Storage upload failed: {e}") from e

        url = self.public_url(key)
        self.engine.add_image(spot_id, url, user_id=user_id, angle=angle)
        logger.info(f"Uploaded image for spot {spot_id}: {key}")
        return url

def get_spot_image_storage(
    engine: SpotQueryEngine = Depends(get_spot_query_engine),
    settings: Settings = Depends(get_settings)
) -> SpotImageStorage:
    return SpotImageStorage(engine, settings)
