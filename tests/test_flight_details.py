import pytest

from skyhex.models import (
    FlightDetails,
    Fr24FlightDetails,
    OpenSkyFlightDetails,
    SourceKind,
    flight_details_from_dict,
)


def test_each_kind_round_trips() -> None:
    variants = [
        OpenSkyFlightDetails(icao24='4ca7b5', callsign='RYR1AB', squawk='7000', position_source=2),
        Fr24FlightDetails(icao24='461f2a', flight_number='AY123', airline='Finnair', aircraft_age=4.5),
        FlightDetails(icao24='abc123', registration='OH-LWA', kind=SourceKind.ADSBEXCHANGE),
    ]
    for details in variants:
        restored = flight_details_from_dict(details.to_dict())
        assert type(restored) is type(details)
        assert restored == details


def test_tag_is_written_as_plain_string() -> None:
    data = Fr24FlightDetails(icao24='461f2a').to_dict()
    assert data['kind'] == 'fr24'
    assert type(data['kind']) is str


def test_dispatch_uses_tag_not_fields() -> None:
    # FR24-only fields under an OpenSky tag are ignored, not guessed at
    details = flight_details_from_dict({'kind': 'opensky', 'icao24': 'abc123', 'airline': 'Finnair'})
    assert isinstance(details, OpenSkyFlightDetails)
    assert not hasattr(details, 'airline')


@pytest.mark.parametrize('data', [{'icao24': 'abc123'}, {'icao24': 'abc123', 'kind': 'radarbox'}])
def test_unknown_tag_is_rejected(data) -> None:
    with pytest.raises(ValueError):
        flight_details_from_dict(data)


def test_source_kind_parse_is_lenient() -> None:
    assert SourceKind.parse('fr24') is SourceKind.FR24
    assert SourceKind.parse('radarbox') is SourceKind.UNKNOWN
    assert SourceKind.parse(None) is SourceKind.UNKNOWN
