import pytest

from fakes import FakeSpotRepository, make_row
from sk8spot.core.exceptions import DataIntegrityError, QueryFailedError, ValidationError
from sk8spot.schemas.query import SpotQueryOptions, SortField
from sk8spot.schemas.spot import GeoLocation, SpotDraft, SpotStatus, SpotUpdate
from sk8spot.services.spot_query import SpotQueryEngine

def draft(**overrides):
    values = {'name': 'Courthouse Ledges', 'location': {'latitude': 40.7128, 'longitude': -74.0060}}
    values.update(overrides)
    return SpotDraft(**values)

def test_get_spots_uses_defaults(engine, repository):
    repository.rows = {row.id: row for row in [make_row(i) for i in range(3)]}

    page = engine.get_spots()

    assert page.total == 3
    assert page.page == 1
    assert page.limit == 20
    assert page.total_pages == 1
    # 既定の並び：created_at の降順
    assert [spot.id for spot in page.data] == ['spot-2', 'spot-1', 'spot-0']

def test_second_identical_query_is_served_from_cache(engine, repository):
    repository.rows = {row.id: row for row in [make_row(i) for i in range(2)]}
    options = SpotQueryOptions(page=1, limit=10)

    first = engine.get_spots(options)
    second = engine.get_spots(SpotQueryOptions(page=1, limit=10))

    assert repository.search_calls == 1
    assert second.model_dump() == first.model_dump()

def test_pagination_second_page(engine, repository):
    repository.rows = {row.id: row for row in [make_row(i) for i in range(25)]}

    page = engine.get_spots(SpotQueryOptions(page=2, limit=10))

    assert len(page.data) == 10
    assert page.total == 25
    assert page.total_pages == 3

def test_radius_excludes_far_spots_and_attaches_distance(engine, repository):
    near = make_row(1, latitude=0.1, longitude=0.1)
    far = make_row(2, latitude=9.0, longitude=0.0) # 約1000km
    repository.rows = {near.id: near, far.id: far}

    page = engine.get_spots(SpotQueryOptions(near_location=GeoLocation(latitude=0, longitude=0), radius=100))

    assert [spot.id for spot in page.data] == ['spot-1']
    assert page.data[0].distance == pytest.approx(15.72, abs=0.05)

def test_radius_defaults_to_ten_km(engine, repository):
    inside = make_row(1, latitude=0.05, longitude=0.0)  # 約5.6km
    outside = make_row(2, latitude=0.2, longitude=0.0)  # 約22km
    repository.rows = {inside.id: inside, outside.id: outside}

    page = engine.get_spots(SpotQueryOptions(near_location=GeoLocation(latitude=0, longitude=0)))

    assert [spot.id for spot in page.data] == ['spot-1']

def test_row_without_location_fails_the_request(engine, repository):
    good = make_row(1)
    broken = make_row(2, latitude=None)
    repository.rows = {good.id: good, broken.id: broken}

    with pytest.raises(DataIntegrityError):
        engine.get_spots()

def test_get_spot_by_id_rejects_row_without_location(engine, repository):
    broken = make_row(1, longitude=None)
    repository.rows = {broken.id: broken}

    with pytest.raises(DataIntegrityError):
        engine.get_spot_by_id('spot-1')

def test_get_spot_by_id_missing_returns_none(engine):
    assert engine.get_spot_by_id('does-not-exist') is None

def test_get_spot_by_id_is_cached(engine, repository, cache):
    row = make_row(1)
    repository.rows = {row.id: row}

    engine.get_spot_by_id('spot-1')
    del repository.rows['spot-1'] # キャッシュから返るならDBは見ない．

    assert engine.get_spot_by_id('spot-1').id == 'spot-1'
    assert 'spot:spot-1' in cache.store

def test_negative_min_score_is_rejected(engine, repository):
    with pytest.raises(ValidationError):
        engine.get_spots(SpotQueryOptions(min_skateability_score=-1))
    assert repository.search_calls == 0

def test_distance_sort_requires_near_location(engine):
    with pytest.raises(ValidationError):
        engine.get_spots(SpotQueryOptions(sort_by=SortField.DISTANCE))

def test_datastore_failure_becomes_query_failed(engine, repository):
    repository.fail = True

    with pytest.raises(QueryFailedError) as excinfo:
        engine.get_spots()
    assert excinfo.value.message.startswith('query failed')

def test_search_requires_every_keyword(engine, repository):
    a = make_row(1, name='Downtown Ledges', description='smooth marble')
    b = make_row(2, name='Downtown Rail', description=None)
    repository.rows = {a.id: a, b.id: b}

    page = engine.search_spots('Downtown marble')

    assert [spot.id for spot in page.data] == ['spot-1']

def test_non_numeric_features_are_dropped(engine, repository):
    row = make_row(1, features={'height': 40, 'material': 'granite'})
    repository.rows = {row.id: row}

    spot = engine.get_spot_by_id('spot-1')

    assert spot.features.root == {'height': 40.0}
    assert spot.features.height == 40.0

def test_create_spot_then_list_contains_it(engine, repository):
    before = engine.get_spots()
    assert before.total == 0

    created = engine.create_spot(draft(), user_id='user-9')
    after = engine.get_spots()

    assert after.total == 1
    assert after.data[0].id == created.id
    assert created.status == SpotStatus.ACTIVE
    assert created.skateability_score == 5.0
    assert created.verified is False
    assert created.user_id == 'user-9'
    assert repository.rows[created.id].geom == 'SRID=4326;POINT(-74.006 40.7128)'

def test_create_spot_accepts_flat_coordinates(engine):
    created = engine.create_spot(SpotDraft(name='Flat', latitude=10.0, longitude=20.0))

    assert created.location.latitude == 10.0
    assert created.location.longitude == 20.0

def test_create_spot_first_image_is_primary(engine, repository):
    created = engine.create_spot(draft(images=['https://img/a.jpg', 'https://img/b.jpg']))

    images = repository.rows[created.id].images
    assert [image.is_primary for image in images] == [True, False]
    assert created.images == ['https://img/a.jpg', 'https://img/b.jpg']

@pytest.mark.parametrize('bad', [
    {'name': ''},
    {'name': '   '},
    {'location': None},
    {'location': {'latitude': 95, 'longitude': 0}},
    {'location': {'latitude': 0, 'longitude': 181}},
    {'latitude': 1.0, 'longitude': 2.0}, # locationと両方指定
])
def test_create_spot_validation(engine, repository, bad):
    with pytest.raises(ValidationError):
        engine.create_spot(draft(**bad))
    assert repository.insert_calls == 0

def test_create_spot_missing_location_message(engine):
    with pytest.raises(ValidationError) as excinfo:
        engine.create_spot(SpotDraft(name='No Location'))
    assert 'latitude and longitude are required' in excinfo.value.message

def test_update_spot_moves_location_and_invalidates(engine, repository, cache):
    row = make_row(1)
    repository.rows = {row.id: row}
    engine.get_spot_by_id('spot-1')
    engine.get_spots()

    updated = engine.update_spot('spot-1', SpotUpdate(location={'latitude': 1.5, 'longitude': 2.5}, name='Moved'))

    assert updated.name == 'Moved'
    assert updated.location.latitude == 1.5
    assert row.geom == 'SRID=4326;POINT(2.5 1.5)'
    assert row.id == 'spot-1'
    assert row.created_at < row.updated_at
    assert cache.store == {}

def test_update_missing_spot_returns_none(engine):
    assert engine.update_spot('nope', SpotUpdate(name='x')) is None

def test_delete_spot(engine, repository):
    row = make_row(1)
    repository.rows = {row.id: row}

    assert engine.delete_spot('spot-1') is True
    assert engine.delete_spot('spot-1') is False

def test_verify_and_status(engine, repository):
    row = make_row(1)
    repository.rows = {row.id: row}

    assert engine.verify_spot('spot-1').verified is True
    assert engine.change_spot_status('spot-1', SpotStatus.FLAGGED).status == SpotStatus.FLAGGED

def test_skateability_score_bounds(engine, repository):
    row = make_row(1)
    repository.rows = {row.id: row}

    assert engine.update_skateability_score('spot-1', 9.5).skateability_score == 9.5
    with pytest.raises(ValidationError):
        engine.update_skateability_score('spot-1', 11)

def test_get_user_spots(engine, repository):
    mine = make_row(1, user_id='me')
    theirs = make_row(2, user_id='someone-else')
    repository.rows = {mine.id: mine, theirs.id: theirs}

    page = engine.get_user_spots('me')

    assert [spot.id for spot in page.data] == ['spot-1']

def test_find_nearby_spots_sorted_by_distance(engine, repository):
    a = make_row(1, latitude=0.03, longitude=0.0)
    b = make_row(2, latitude=0.01, longitude=0.0)
    repository.rows = {a.id: a, b.id: b}
    options = SpotQueryOptions(sort_by=SortField.DISTANCE, sort_order='asc')

    page = engine.find_nearby_spots(GeoLocation(latitude=0, longitude=0), 5, options)

    assert [spot.id for spot in page.data] == ['spot-2', 'spot-1']
    assert page.data[0].distance < page.data[1].distance

def test_get_spots_by_distance(repository, cache):
    rows = [
        make_row(1, latitude=0.2, longitude=0.0),
        make_row(2, latitude=0.0, longitude=0.05),
        make_row(3, latitude=5.0, longitude=5.0),
    ]
    engine = SpotQueryEngine(FakeSpotRepository(rows), cache)

    spots = engine.get_spots_by_distance(0.0, 0.0, radius_km=50, limit=10)

    assert [spot.id for spot in spots] == ['spot-2', 'spot-1']
    assert spots[0].distance == pytest.approx(5.56, abs=0.05)

def test_search_ignores_case(engine, repository):
    a = make_row(1, name='Downtown Ledges', description=None)
    b = make_row(2, name='Bank', description='Smooth LEDGE along the wall')
    c = make_row(3, name='Stair Set', description=None)
    repository.rows = {row.id: row for row in (a, b, c)}

    page = engine.search_spots('ledge')

    assert sorted(spot.id for spot in page.data) == ['spot-1', 'spot-2']

@pytest.mark.parametrize('field', ['type', 'difficulty', 'features'])
def test_update_spot_rejects_null_for_required_columns(engine, repository, field):
    row = make_row(1)
    repository.rows = {row.id: row}

    with pytest.raises(ValidationError):
        engine.update_spot('spot-1', SpotUpdate.model_validate({field: None}))
    assert row.type == 'ledge'
    assert row.features == {'height': 40}

def test_update_spot_clears_collection_spot_pages(engine, repository, cache):
    row = make_row(1)
    repository.rows = {row.id: row}
    cache.set('collections:spots:col-1:1:20', {'data': []}, 60)
    cache.set('collections:col-1', {'id': 'col-1'}, 60)

    engine.update_spot('spot-1', SpotUpdate(name='Renamed'))

    assert 'collections:spots:col-1:1:20' not in cache.store
    assert 'collections:col-1' in cache.store

def test_delete_spot_clears_collection_spot_pages(engine, repository, cache):
    row = make_row(1)
    repository.rows = {row.id: row}
    cache.set('collections:spots:col-1:1:20', {'data': []}, 60)

    engine.delete_spot('spot-1')

    assert cache.store == {}
