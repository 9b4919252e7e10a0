import asyncio
import logging
import random

import pytest

from fakes import FakeClassifier, UnavailableClassifier
from sk8spot.schemas.analysis import AnalysisSource
from sk8spot.schemas.spot import DifficultyRating, SpotType
from sk8spot.services.spot_analysis import (
    FALLBACK_TYPES, SUGGESTED_TRICKS, SpotClassificationEngine, class_to_spot_type, rate_difficulty
)

def analyze(predictions=None, error=None, image=b'image-bytes'):
    engine = SpotClassificationEngine(FakeClassifier(predictions, error), rng=random.Random(7))
    return asyncio.run(engine.analyze(image))

def detection(cls, confidence=0.8, width=100, height=50):
    return {'class': cls, 'confidence': confidence, 'x': 0, 'y': 0, 'width': width, 'height': height}

def test_empty_image_returns_default_without_calling_classifier():
    classifier = FakeClassifier([detection('rail')])
    engine = SpotClassificationEngine(classifier)

    result = asyncio.run(engine.analyze(b''))

    assert result.type == SpotType.UNKNOWN
    assert result.confidence == 0
    assert result.features == {}
    assert result.surface_quality == 'unknown'
    assert result.difficulty == DifficultyRating.MEDIUM
    assert result.source == AnalysisSource.DEFAULT
    assert classifier.calls == 0

def test_primary_result_from_detections():
    result = analyze([
        detection('rail', 0.9, width=200, height=100),
        detection('rail', 0.7, width=100, height=50),
        detection('smooth_surface', 0.8),
    ])

    assert result.source == AnalysisSource.PRIMARY
    assert result.type == SpotType.RAIL
    assert result.confidence == pytest.approx(0.8)
    assert result.skateability_score == 8.0
    assert result.difficulty == DifficultyRating.HARD
    # 最大面積の検出（200x100px）から推定
    assert result.features == {'height': 50.0, 'width': 100.0, 'length': 120.0}
    assert result.surface_quality == 'smooth'
    assert result.suggested_tricks == SUGGESTED_TRICKS[SpotType.RAIL]

def test_tie_goes_to_first_seen_class():
    result = analyze([detection('ledge'), detection('bowl')])
    assert result.type == SpotType.LEDGE
    assert result.difficulty == DifficultyRating.MEDIUM

def test_gap_anywhere_makes_it_hard():
    result = analyze([detection('ledge'), detection('ledge'), detection('gap')])
    assert result.type == SpotType.LEDGE
    assert result.difficulty == DifficultyRating.HARD

def test_stairs_estimate_steps():
    result = analyze([detection('stairs', width=300, height=200)])
    assert result.type == SpotType.STAIRS
    assert result.features['height'] == 100.0
    assert result.features['steps'] == 6.0

def test_no_detections_is_other_with_default_confidence():
    result = analyze([])
    assert result.type == SpotType.OTHER
    assert result.confidence == pytest.approx(0.7)
    assert result.skateability_score == 7.0
    assert result.difficulty == DifficultyRating.MEDIUM
    assert result.features == {}

def test_flat_ground_is_easy():
    result = analyze([detection('flat_ground')])
    assert result.type == SpotType.OTHER
    assert result.difficulty == DifficultyRating.EASY

@pytest.mark.parametrize('class_name, expected', [
    ('half_pipe', SpotType.HALFPIPE),
    ('Handrail', SpotType.RAIL),
    ('stair-set', SpotType.STAIRS),
    ('manual-pad', SpotType.MANUAL_PAD),
    ('launch ramp', SpotType.RAMP),
    ('plaza', SpotType.PLAZA),
    ('bench', SpotType.OTHER),
])
def test_class_to_spot_type(class_name, expected):
    assert class_to_spot_type(class_name) == expected

def test_unavailable_classifier_degrades(caplog):
    engine = SpotClassificationEngine(UnavailableClassifier(), rng=random.Random(1))

    with caplog.at_level(logging.WARNING):
        result = asyncio.run(engine.analyze(b'image-bytes'))

    assert result.source == AnalysisSource.DEGRADED
    assert result.type in FALLBACK_TYPES
    assert 0.7 <= result.confidence <= 1.0
    assert result.features
    assert 'degraded' in caplog.text

def test_unexpected_error_returns_default():
    result = analyze(error=RuntimeError('boom'))
    assert result.source == AnalysisSource.DEFAULT
    assert result.type == SpotType.UNKNOWN

@pytest.mark.parametrize('features, expected', [
    ({}, DifficultyRating.EASY),
    ({'height': 10}, DifficultyRating.EASY),
    ({'height': 60, 'angle': 20}, DifficultyRating.MEDIUM),
    ({'height': 120, 'length': 600}, DifficultyRating.HARD),
    ({'height': 160}, DifficultyRating.HARD),
    ({'height': 250, 'angle': 50}, DifficultyRating.PRO),
    ({'angle': 40, 'length': 1200}, DifficultyRating.MEDIUM),
    ({'height': 60, 'angle': 10}, DifficultyRating.EASY),
    # 高さだけでは+6点なのでproには届かない．
    ({'height': 250}, DifficultyRating.HARD),
])
def test_rate_difficulty(features, expected):
    assert rate_difficulty(features) == expected

def test_measure_obstacle_falls_back_to_typical_dimensions():
    engine = SpotClassificationEngine(FakeClassifier([]))

    stairs = asyncio.run(engine.measure_obstacle(b'image-bytes', 'stairs'))
    pad = asyncio.run(engine.measure_obstacle(b'image-bytes', 'manual pad'))
    unknown = asyncio.run(engine.measure_obstacle(b'image-bytes', 'bench'))

    assert stairs == {'height': 80.0, 'width': 200.0, 'length': 300.0, 'steps': 5.0}
    assert pad == {'height': 30.0, 'width': 100.0, 'length': 200.0}
    assert unknown == {'height': 50.0, 'width': 100.0, 'length': 200.0}

def test_detect_type_and_surface():
    engine = SpotClassificationEngine(FakeClassifier([detection('ledge'), detection('cracked concrete')]))

    assert asyncio.run(engine.detect_spot_type(b'image-bytes')) == SpotType.LEDGE
    assert asyncio.run(engine.analyze_surface(b'image-bytes')) == 'cracked'

def test_analyze_image_file(tmp_path):
    engine = SpotClassificationEngine(FakeClassifier([detection('bowl')]))
    image = tmp_path / 'spot.jpg'
    image.write_bytes(b'\xff\xd8fake-jpeg')

    assert asyncio.run(engine.analyze_image_file(image)).type == SpotType.BOWL
    assert asyncio.run(engine.analyze_image_file(tmp_path / 'missing.jpg')).source == AnalysisSource.DEFAULT
