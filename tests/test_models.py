import pytest
from pydantic import ValidationError

from iplookup.models.common import IPInfoData
from tests.common import FULL_PAYLOAD


def test_coordinates_are_parsed_from_loc() -> None:
    data = IPInfoData(ip="8.8.8.8", loc="37.4056,-122.0775")
    assert data.coordinates == (pytest.approx(37.4056), pytest.approx(-122.0775))


@pytest.mark.parametrize("loc", [None, "", "37.4", "north,south", "1,2,3"])
def test_malformed_loc_has_no_coordinates(loc: str | None) -> None:
    data = IPInfoData(ip="8.8.8.8", loc=loc)
    assert data.coordinates is None
    assert data.latitude is None
    assert data.longitude is None


def test_blank_ip_is_rejected() -> None:
    with pytest.raises(ValidationError):
        IPInfoData(ip="  ")


def test_payload_keeps_unknown_fields_and_drops_nulls() -> None:
    data = IPInfoData.model_validate({**FULL_PAYLOAD, "hostname": None, "asn": {"asn": "AS15169"}})
    payload = data.to_payload()

    assert "hostname" not in payload
    assert payload["asn"] == {"asn": "AS15169"}
    assert payload["privacy"]["hosting"] is True
