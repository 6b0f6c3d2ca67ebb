import json

import pytest

from iplookup.errors import UnknownFieldError
from iplookup.models.common import IPInfoData
from iplookup.models.request_models import OutputFormat
from iplookup.renderers import extract_field, render, render_compact, render_human, render_json, render_table
from tests.common import FULL_PAYLOAD, GOOGLE_DNS_PAYLOAD


@pytest.fixture
def google() -> IPInfoData:
    return IPInfoData.model_validate(GOOGLE_DNS_PAYLOAD)


@pytest.fixture
def full() -> IPInfoData:
    return IPInfoData.model_validate(FULL_PAYLOAD)


def test_human_output_lists_present_fields(google: IPInfoData) -> None:
    output = render_human(google)

    assert output.splitlines()[0] == "IP:           8.8.8.8"
    assert "Hostname:     dns.google" in output
    assert "Organization: AS15169 Google LLC" in output
    assert "Privacy" not in output
    assert "Abuse contact" not in output


def test_human_output_omits_missing_fields() -> None:
    output = render_human(IPInfoData(ip="1.1.1.1", city="Sydney"))
    assert output == "IP:           1.1.1.1\nCity:         Sydney"


def test_human_output_includes_privacy_and_abuse_sections(full: IPInfoData) -> None:
    output = render_human(full)

    assert "\nPrivacy\n" in output
    assert "  VPN:      no" in output
    assert "  Hosting:  yes" in output
    assert "\nAbuse contact\n" in output
    assert "  Email:    network-abuse@google.com" in output


def test_json_output_is_the_payload(full: IPInfoData) -> None:
    assert json.loads(render_json(full)) == FULL_PAYLOAD
    assert render_json(full).startswith('{\n  "ip": "8.8.8.8"')


def test_compact_output(google: IPInfoData) -> None:
    assert render_compact(google) == "8.8.8.8 (dns.google) | Mountain View, California, US | AS15169 Google LLC"


def test_compact_output_drops_empty_parts() -> None:
    assert render_compact(IPInfoData(ip="10.1.2.3")) == "10.1.2.3"
    assert render_compact(IPInfoData(ip="1.1.1.1", country="AU")) == "1.1.1.1 | AU"


def test_table_output(full: IPInfoData) -> None:
    output = render_table(full)

    assert "IP info: 8.8.8.8" in output
    assert "Field" in output and "Value" in output
    assert "Mountain View" in output
    assert "privacy.hosting" in output
    assert "abuse.email" in output


@pytest.mark.parametrize("output_format", list(OutputFormat))
def test_render_dispatches_every_format(google: IPInfoData, output_format: OutputFormat) -> None:
    assert "8.8.8.8" in render(google, output_format)


def test_extract_field(full: IPInfoData) -> None:
    assert extract_field(full, "city") == "Mountain View"
    assert extract_field(full, "privacy.vpn") == "false"
    assert extract_field(full, "anycast") == "true"
    assert json.loads(extract_field(full, "abuse"))["country"] == "US"


@pytest.mark.parametrize("field", ["asn", "privacy.vpn.extra", "city.name"])
def test_extract_unknown_field_raises(google: IPInfoData, field: str) -> None:
    with pytest.raises(UnknownFieldError):
        extract_field(google, field)
