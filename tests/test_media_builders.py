# tests/test_media_builders.py
"""Tests for location, location-request, image and document builders."""

import pytest

from conftest import PHONE
from nearbuy.models.payload import MessageKind
from nearbuy.shared.whatsapp import (
    DocumentMessageBuilder,
    ImageMessageBuilder,
    LocationContext,
    LocationMessageBuilder,
    LocationRequestBuilder,
    StructuralValidationError,
)
from nearbuy.shared.whatsapp.media import LOCATION_REQUEST_TEXTS, PRIVACY_NOTES


# ── Ubicación ────────────────────────────────────────────


def test_location_pin_api_shape():
    payload = (
        LocationMessageBuilder(PHONE)
        .coordinates(9.9312, 76.2673)
        .name("Spice Mart")
        .address("MG Road, Kochi")
        .build()
    )

    data = payload.to_api()
    assert data["type"] == "location"
    assert data["location"] == {
        "latitude": 9.9312,
        "longitude": 76.2673,
        "name": "Spice Mart",
        "address": "MG Road, Kochi",
    }


@pytest.mark.parametrize("lat,lng", [(91, 0), (-90.5, 0), (0, 181), (0, -180.1)])
def test_location_pin_rejects_out_of_range_coordinates(lat, lng):
    with pytest.raises(StructuralValidationError):
        LocationMessageBuilder(PHONE).coordinates(lat, lng)


def test_location_pin_requires_coordinates():
    with pytest.raises(StructuralValidationError):
        LocationMessageBuilder(PHONE).name("Spice Mart").build()


# ── Solicitud de ubicación ───────────────────────────────


def test_location_request_for_registration():
    payload = LocationRequestBuilder(PHONE).for_registration().build()

    data = payload.to_api()
    assert payload.kind == MessageKind.LOCATION_REQUEST
    assert data["type"] == "interactive"
    assert data["interactive"] == {
        "type": "location_request_message",
        "body": {"text": LOCATION_REQUEST_TEXTS[LocationContext.REGISTRATION]["en"]},
        "action": {"name": "send_location"},
    }


def test_location_request_localized_and_fallback():
    malayalam = LocationRequestBuilder(PHONE).for_nearby_offers("ml").build()
    unknown = LocationRequestBuilder(PHONE).for_nearby_offers("fr").build()

    assert malayalam.body_text == LOCATION_REQUEST_TEXTS[LocationContext.NEARBY_OFFERS]["ml"]
    assert unknown.body_text == LOCATION_REQUEST_TEXTS[LocationContext.NEARBY_OFFERS]["en"]


def test_every_location_preset_mentions_privacy_or_purpose():
    builder = LocationRequestBuilder(PHONE)
    for preset in (
        builder.for_generic,
        builder.for_registration,
        builder.for_shop_registration,
        builder.for_nearby_offers,
        builder.for_product_search,
        builder.for_update,
    ):
        assert preset().build().body_text.startswith("📍")


def test_custom_location_request_adds_privacy_note():
    payload = LocationRequestBuilder(PHONE).custom("📍 Where should we deliver?").build()

    assert payload.body_text == "📍 Where should we deliver?" + PRIVACY_NOTES["en"]


def test_location_request_requires_body():
    with pytest.raises(StructuralValidationError):
        LocationRequestBuilder(PHONE).build()


# ── Imagen y documento ───────────────────────────────────


def test_image_by_url_with_caption():
    payload = ImageMessageBuilder(PHONE).url("https://cdn.nearbuy.in/offers/rice.jpg").caption("20% off").build()

    assert payload.to_api()["image"] == {"link": "https://cdn.nearbuy.in/offers/rice.jpg", "caption": "20% off"}


def test_media_id_replaces_url():
    payload = ImageMessageBuilder(PHONE).url("https://cdn.nearbuy.in/a.jpg").media_id("1044").build()

    assert payload.to_api()["image"] == {"id": "1044"}


def test_invalid_image_url_is_rejected():
    with pytest.raises(StructuralValidationError):
        ImageMessageBuilder(PHONE).url("not a url")


def test_media_requires_source():
    with pytest.raises(StructuralValidationError):
        ImageMessageBuilder(PHONE).caption("No image").build()


def test_document_with_filename():
    payload = (
        DocumentMessageBuilder(PHONE)
        .media_id("2088")
        .filename("agreement.pdf")
        .caption("Your agreement")
        .build()
    )

    data = payload.to_api()
    assert data["type"] == "document"
    assert data["document"] == {"id": "2088", "filename": "agreement.pdf", "caption": "Your agreement"}
