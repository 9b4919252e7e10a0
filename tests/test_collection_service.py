from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from fakes import FakeCache, make_row
from sk8spot.core.exceptions import DatastoreError, DataIntegrityError, NotFoundError, QueryFailedError
from sk8spot.schemas.collection import CollectionCreate, CollectionUpdate
from sk8spot.services.collection_service import CollectionService

NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)

def collection_row(**overrides):
    values = {
        'id': 'col-1', 'user_id': 'user-1', 'name': 'Favourites', 'description': None,
        'icon': None, 'created_at': NOW, 'updated_at': NOW,
    }
    values.update(overrides)
    return SimpleNamespace(**values)

@pytest.fixture
def repo(mocker):
    return mocker.MagicMock()

@pytest.fixture
def service(repo):
    return CollectionService(repo, FakeCache(), cache_ttl=60)

def test_create_collection_clears_user_cache(service, repo):
    service.cache.set('collections:user:user-1:1:20', {'stale': True}, 60)
    repo.create.side_effect = lambda values: SimpleNamespace(**values)

    created = service.create_collection('user-1', CollectionCreate(name='  Street  '))

    assert created.name == 'Street'
    assert created.user_id == 'user-1'
    assert created.spot_count == 0
    assert service.cache.store == {}

def test_get_collection_is_cached(service, repo):
    repo.get.return_value = collection_row()
    repo.spot_count.return_value = 3

    first = service.get_collection('col-1')
    second = service.get_collection('col-1')

    assert first.spot_count == 3
    assert second == first
    repo.get.assert_called_once_with('col-1')

def test_get_missing_collection(service, repo):
    repo.get.return_value = None
    assert service.get_collection('nope') is None

def test_user_collections_page(service, repo):
    repo.list_by_user.return_value = (3, [(collection_row(id='a'), 2), (collection_row(id='b'), 0)])

    page = service.get_user_collections('user-1', page=1, limit=2)

    assert page.total == 3
    assert page.total_pages == 2
    assert [c.spot_count for c in page.data] == [2, 0]
    repo.list_by_user.assert_called_once_with('user-1', 0, 2)

def test_add_spot_is_idempotent(service, repo):
    repo.get.return_value = collection_row()
    repo.has_spot.side_effect = [False, True]

    service.add_spot('col-1', 'spot-1')
    service.add_spot('col-1', 'spot-1')

    repo.add_spot.assert_called_once_with('col-1', 'spot-1')

def test_add_spot_to_missing_collection(service, repo):
    repo.get.return_value = None

    with pytest.raises(NotFoundError):
        service.add_spot('nope', 'spot-1')

def test_update_and_delete(service, repo):
    repo.update.return_value = collection_row(name='Renamed')
    repo.spot_count.return_value = 0

    assert service.update_collection('col-1', CollectionUpdate(name='Renamed')).name == 'Renamed'
    values = repo.update.call_args.args[1]
    assert values['name'] == 'Renamed'
    assert 'updated_at' in values

    repo.get.return_value = collection_row()
    assert service.delete_collection('col-1') is True
    repo.get.return_value = None
    assert service.delete_collection('col-1') is False

def test_collection_spots_use_spot_formatter(service, repo):
    repo.list_spots.return_value = (1, [make_row(1)])

    page = service.get_collection_spots('col-1')

    assert page.data[0].id == 'spot-1'
    assert page.total_pages == 1

    repo.list_spots.return_value = (1, [make_row(2, latitude=None)])
    with pytest.raises(DataIntegrityError):
        service.get_collection_spots('col-1', page=2)

def test_datastore_errors_become_query_failed(service, repo):
    repo.get.side_effect = DatastoreError('down')

    with pytest.raises(QueryFailedError):
        service.get_collection('col-1')

def test_add_unknown_spot(service, repo):
    repo.get.return_value = collection_row()
    repo.spot_exists.return_value = False

    with pytest.raises(NotFoundError):
        service.add_spot('col-1', 'no-such-spot')
    repo.add_spot.assert_not_called()
