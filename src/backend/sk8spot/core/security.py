import logging
from dataclasses import dataclass
import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sk8spot.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

MOCK_DEVELOPMENT_TOKEN = 'mock-development-token'

bearer_scheme = HTTPBearer(auto_error=False)

@dataclass
class CurrentUser:
    id: str
    role: str = 'user'

    @property
    def is_admin(self) -> bool:
        return self.role == 'admin'

def decode_token(token: str, settings: Settings) -> CurrentUser:
    """
    JWTを検証してユーザーを取り出す．開発・テスト環境では固定のモックトークンも受け付ける．
    """
    if token == MOCK_DEVELOPMENT_TOKEN and settings.ENVIRONMENT in ('development', 'test'):
        return CurrentUser(id='test-user-id', role='user')

    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.PyJWTError as e:
        logger.info(f"Rejected bearer token: {e}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid or expired token')

    user_id = payload.get('sub') or payload.get('userId')
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Token has no subject')
    return CurrentUser(id=str(user_id), role=payload.get('role', 'user'))

def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings)
) -> CurrentUser:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='Authentication required',
            headers={'WWW-Authenticate': 'Bearer'}
        )
    return decode_token(credentials.credentials, settings)

def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Admin role required')
    return user

def ensure_owner_or_admin(user: CurrentUser, owner_id: str | None) -> None:
    if user.is_admin or (owner_id is not None and owner_id == user.id):
        return
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Not allowed to modify this resource')
