import asyncio
import base64

import httpx
import pytest

from sk8spot.core.config import Settings
from sk8spot.core.exceptions import ClassifierError
from sk8spot.services.classifier_client import ClassifierClient

PREDICTIONS = {'predictions': [{'class': 'rail', 'confidence': 0.9, 'x': 1, 'y': 1, 'width': 10, 'height': 5}]}

def ml_settings(**overrides):
    values = {'USE_EXTERNAL_ML_SERVICE': True, 'ML_SERVICE_URL': 'http://ml.test'}
    values.update(overrides)
    return Settings(**values)

def predict(settings, handler, image=b'image-bytes'):
    client = ClassifierClient(settings, transport=httpx.MockTransport(handler))
    return asyncio.run(client.predict(image))

def test_ml_service_multipart():
    seen = {}

    def handler(request):
        seen['path'] = request.url.path
        seen['content_type'] = request.headers['content-type']
        return httpx.Response(200, json=PREDICTIONS)

    detections = predict(ml_settings(), handler)

    assert seen['path'] == '/analyze'
    assert seen['content_type'].startswith('multipart/form-data')
    assert detections[0].class_name == 'rail'
    assert detections[0].area == 50

def test_roboflow_base64_body():
    seen = {}

    def handler(request):
        seen['url'] = request.url
        seen['body'] = request.content
        return httpx.Response(200, json=PREDICTIONS)

    settings = Settings(
        ROBOFLOW_API_KEY='key-123',
        ROBOFLOW_MODEL_ID='skate-spots',
        ROBOFLOW_VERSION_NUMBER='3',
        ROBOFLOW_API_URL='https://detect.test'
    )
    predict(settings, handler, image=b'jpeg')

    assert seen['url'].host == 'detect.test'
    assert seen['url'].path == '/skate-spots/3'
    assert seen['url'].params['api_key'] == 'key-123'
    assert base64.b64decode(seen['body']) == b'jpeg'

def test_http_error_raises_classifier_error():
    with pytest.raises(ClassifierError):
        predict(ml_settings(), lambda request: httpx.Response(500, text='boom'))

def test_timeout_raises_classifier_error():
    def handler(request):
        raise httpx.ReadTimeout('timed out', request=request)

    with pytest.raises(ClassifierError) as excinfo:
        predict(ml_settings(ML_TIMEOUT_SECONDS=1), handler)
    assert 'timed out' in excinfo.value.message

def test_unexpected_payload_raises_classifier_error():
    with pytest.raises(ClassifierError):
        predict(ml_settings(), lambda request: httpx.Response(200, json={'foo': 1}))

def test_non_json_raises_classifier_error():
    with pytest.raises(ClassifierError):
        predict(ml_settings(), lambda request: httpx.Response(200, text='<html>'))

def test_not_configured():
    client = ClassifierClient(Settings(USE_EXTERNAL_ML_SERVICE=False))

    assert client.configured is False
    with pytest.raises(ClassifierError):
        asyncio.run(client.predict(b'image-bytes'))
