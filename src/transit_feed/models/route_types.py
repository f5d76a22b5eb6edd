"""Mapping of extended route type codes onto the basic GTFS set."""

from __future__ import annotations

TRAM = 0
SUBWAY = 1
RAIL = 2
BUS = 3
FERRY = 4
CABLE_TRAM = 5
GONDOLA = 6
FUNICULAR = 7
TROLLEYBUS = 11
MONORAIL = 12

BASIC_ROUTE_TYPES = frozenset(
    {TRAM, SUBWAY, RAIL, BUS, FERRY, CABLE_TRAM, GONDOLA, FUNICULAR, TROLLEYBUS, MONORAIL}
)

_EXTENDED: dict[int, int] = {}


def _register(basic: int, *codes: int | range) -> None:
    for code in codes:
        for value in code if isinstance(code, range) else (code,):
            _EXTENDED[value] = basic


_register(RAIL, 2, range(100, 116), 117, 300, 1503)
_register(BUS, 3, range(200, 210), range(700, 718), 1500, 1501, 1505, 1506, 1507)
_register(SUBWAY, 1, range(400, 405), 500, 600)
_register(TRAM, 0, range(900, 907))
_register(FERRY, 4, range(1000, 1022), 1200, 1502)
_register(GONDOLA, 6, 1300, 1301, 1304, 1306, 1307)
_register(FUNICULAR, 7, 116, 1302, 1303, 1400)
_register(CABLE_TRAM, 5)
_register(TROLLEYBUS, 11, 800)
_register(MONORAIL, 12, 405)


def to_basic_route_type(code: int) -> int:
    """Return the basic route type for ``code``; unknown codes map to rail."""
    return _EXTENDED.get(code, RAIL)
