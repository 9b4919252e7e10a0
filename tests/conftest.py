import os

# sk8spotをインポートする前に，必須の環境変数を埋めておく（Settingsは起動時に検証する）．
os.environ.setdefault('DB_NAME', 'sk8spot_test')
os.environ.setdefault('DB_USER', 'sk8spot')
os.environ.setdefault('DB_PASSWORD', 'sk8spot')
os.environ.setdefault('JWT_SECRET', 'test-secret')
os.environ['ENVIRONMENT'] = 'test'
for name in ('REDIS_URL', 'ROBOFLOW_API_KEY', 'ROBOFLOW_MODEL_ID', 'NOTIFICATION_SERVICE_URL', 'S3_BUCKET_NAME'):
    os.environ.pop(name, None)

import random

import pytest
from fastapi.testclient import TestClient

from fakes import FakeCache, FakeClassifier, FakeNotifier, FakeSpotRepository
from sk8spot.main import app
from sk8spot.services.notification import get_notifier
from sk8spot.services.spot_analysis import SpotClassificationEngine, get_spot_classification_engine
from sk8spot.services.spot_query import SpotQueryEngine, get_spot_query_engine

@pytest.fixture
def cache():
    return FakeCache()

@pytest.fixture
def repository():
    return FakeSpotRepository()

@pytest.fixture
def engine(repository, cache):
    return SpotQueryEngine(repository, cache, cache_ttl=3600)

@pytest.fixture
def classifier():
    return FakeClassifier(predictions=[
        {'class': 'rail', 'confidence': 0.9, 'x': 100, 'y': 100, 'width': 200, 'height': 100},
    ])

@pytest.fixture
def notifier():
    return FakeNotifier()

@pytest.fixture
def client(engine, classifier, notifier):
    app.dependency_overrides[get_spot_query_engine] = lambda: engine
    app.dependency_overrides[get_spot_classification_engine] = (
        lambda: SpotClassificationEngine(classifier, rng=random.Random(0))
    )
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
