"""
Source-specific flight metadata.

Each provider reports a different set of extras on top of the common
identification fields. FlightDetails is a closed tagged variant: every
concrete class carries a fixed `kind`, and deserialization dispatches on
that tag instead of guessing from which keys happen to be present.
"""

from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Dict, Optional, Type


class SourceKind(str, Enum):
    """Data provider an observation came from."""
    OPENSKY = 'opensky'
    FR24 = 'fr24'
    ADSBEXCHANGE = 'adsbexchange'
    UNKNOWN = 'unknown'

    @classmethod
    def parse(cls, value: Optional[str]) -> 'SourceKind':
        """Lenient parse for stored/tagged values; unknown strings map to UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class FlightDetails:
    """
    Identification fields every provider can fill in.

    Used as-is for sources without extras (adsbexchange, unknown).
    """
    icao24: str
    callsign: Optional[str] = None
    registration: Optional[str] = None
    aircraft_model: Optional[str] = None
    origin_iata: Optional[str] = None
    destination_iata: Optional[str] = None
    kind: SourceKind = SourceKind.UNKNOWN

    def to_dict(self) -> dict:
        data = asdict(self)
        data['kind'] = self.kind.value
        return data


@dataclass(frozen=True)
class OpenSkyFlightDetails(FlightDetails):
    """Extras from an OpenSky state vector."""
    on_ground: bool = False
    squawk: Optional[str] = None
    spi: bool = False
    # 0=ADS-B, 1=ASTERIX, 2=MLAT, 3=FLARM
    position_source: Optional[int] = None
    kind: SourceKind = SourceKind.OPENSKY


@dataclass(frozen=True)
class Fr24FlightDetails(FlightDetails):
    """Extras from FlightRadar24."""
    flight_number: Optional[str] = None
    airline: Optional[str] = None
    aircraft_age: Optional[float] = None
    kind: SourceKind = SourceKind.FR24


_DETAILS_BY_KIND: Dict[SourceKind, Type[FlightDetails]] = {
    SourceKind.OPENSKY: OpenSkyFlightDetails,
    SourceKind.FR24: Fr24FlightDetails,
    SourceKind.ADSBEXCHANGE: FlightDetails,
    SourceKind.UNKNOWN: FlightDetails,
}


def flight_details_from_dict(data: dict) -> FlightDetails:
    """
    Rebuild FlightDetails from its to_dict() form.

    Raises ValueError for a missing or unrecognised kind tag.
    """
    try:
        kind = SourceKind(data['kind'])
    except (KeyError, ValueError) as e:
        raise ValueError(f'Unknown flight details kind: {data.get("kind")!r}') from e

    details_cls = _DETAILS_BY_KIND[kind]
    allowed = {f.name for f in fields(details_cls)}
    kwargs = {k: v for k, v in data.items() if k in allowed and k != 'kind'}
    return details_cls(kind=kind, **kwargs)
