# sk8spot/routers/uploads.py
from fastapi import HTTPException, UploadFile, status
from sk8spot.core.exceptions import ValidationError

async def read_image_upload(upload: UploadFile, max_size: int) -> bytes:
    """
    アップロードされた画像を読み込む．画像以外は400，サイズ超過は413．
    """
    if not (upload.content_type or '').startswith('image/'):
        raise ValidationError('Only image files are allowed')
    data = await upload.read()
    if len(data) > max_size:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Image exceeds the maximum size of {max_size} bytes"
        )
    return data
