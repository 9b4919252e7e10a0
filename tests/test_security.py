import jwt
import pytest
from fastapi import HTTPException

from sk8spot.core.config import Settings
from sk8spot.core.security import CurrentUser, decode_token, ensure_owner_or_admin

def test_decodes_sub_and_role():
    settings = Settings(JWT_SECRET='s3cret')
    token = jwt.encode({'sub': 'user-5', 'role': 'admin'}, 's3cret', algorithm='HS256')

    user = decode_token(token, settings)

    assert user == CurrentUser(id='user-5', role='admin')
    assert user.is_admin

def test_legacy_user_id_claim():
    settings = Settings(JWT_SECRET='s3cret')
    token = jwt.encode({'userId': 'user-6'}, 's3cret', algorithm='HS256')

    assert decode_token(token, settings) == CurrentUser(id='user-6', role='user')

def test_wrong_secret_is_rejected():
    settings = Settings(JWT_SECRET='s3cret')
    token = jwt.encode({'sub': 'user-5'}, 'other', algorithm='HS256')

    with pytest.raises(HTTPException) as excinfo:
        decode_token(token, settings)
    assert excinfo.value.status_code == 401

def test_mock_token_only_outside_production():
    assert decode_token('mock-development-token', Settings(ENVIRONMENT='development')).id == 'test-user-id'
    with pytest.raises(HTTPException):
        decode_token('mock-development-token', Settings(ENVIRONMENT='production'))

def test_owner_or_admin():
    ensure_owner_or_admin(CurrentUser(id='a'), 'a')
    ensure_owner_or_admin(CurrentUser(id='b', role='admin'), 'a')
    with pytest.raises(HTTPException) as excinfo:
        ensure_owner_or_admin(CurrentUser(id='b'), 'a')
    assert excinfo.value.status_code == 403
