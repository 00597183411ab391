"""Exploration Schemas — request validation at the API boundary.

Invariants:
    - hometown_district is stripped and must not be blank
    - samples are passed through untyped, capped at 50
    - seed coordinates must be valid WGS84 degrees
"""

import pytest
from pydantic import ValidationError

from waypoint.schemas.exploration import (
    AdminOverrideRequest,
    CatalogSeed,
    GpsSample,
    InitializeRequest,
    RerollRequest,
    SeedAttraction,
    VisitRequest,
)

PLACE_ID = "0b8f3c1e-6a52-4c7e-9a57-3f5a2f1c9d10"


def test_initialize_strips_hometown():
    assert InitializeRequest(hometown_district="  Kandy ").hometown_district == "Kandy"


def test_initialize_rejects_blank_hometown():
    with pytest.raises(ValidationError):
        InitializeRequest(hometown_district="   ")


def test_visit_keeps_malformed_samples_for_core_filtering():
    req = VisitRequest(place_id=PLACE_ID, samples=[{"latitude": "x"}, 3, None])
    assert req.samples == [{"latitude": "x"}, 3, None]


def test_visit_caps_sample_count():
    with pytest.raises(ValidationError):
        VisitRequest(place_id=PLACE_ID, samples=[{}] * 51)


def test_visit_requires_uuid():
    with pytest.raises(ValidationError):
        VisitRequest(place_id="nope", samples=[])


def test_reroll_fields_optional():
    req = RerollRequest()
    assert req.reason is None
    assert req.reason_detail is None


def test_override_requires_reason():
    with pytest.raises(ValidationError):
        AdminOverrideRequest(user_id="u-1", place_id=PLACE_ID, reason="")


def test_seed_attraction_defaults_type():
    assert SeedAttraction(name="Fort", lat=6.03, lon=80.21).type == "attraction"


def test_seed_attraction_rejects_bad_longitude():
    with pytest.raises(ValidationError):
        SeedAttraction(name="Fort", lat=6.03, lon=181)


def test_catalog_seed_needs_a_district():
    with pytest.raises(ValidationError):
        CatalogSeed(districts=[])


def test_gps_sample_accepts_either_accuracy_key():
    a = GpsSample.model_validate({"latitude": 7.29, "longitude": 80.63, "accuracy_meters": 9})
    b = GpsSample.model_validate({"latitude": 7.29, "longitude": 80.63, "accuracyMeters": 9})
    assert a.accuracy_meters == b.accuracy_meters == 9.0


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_gps_sample_rejects_non_finite(value):
    with pytest.raises(ValidationError):
        GpsSample.model_validate({"latitude": value, "longitude": 80.63, "accuracy_meters": 5})


@pytest.mark.parametrize("value", ["7.29", True])
def test_gps_sample_rejects_strings_and_bools(value):
    with pytest.raises(ValidationError):
        GpsSample.model_validate({"latitude": value, "longitude": 80.63, "accuracy_meters": 5})
