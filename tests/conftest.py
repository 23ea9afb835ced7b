"""
Fixtures partagées pour les tests KDGeo.
"""

import pytest

# Pieds par degré de latitude / longitude
GEO_WEIGHTS = {"Lat": 364000, "Long": 288200}
GEO_MAX_DISTANCE = 500


@pytest.fixture
def abc_points():
    """Trois points alignés: A(1,1), B(2,2), C(3,3)."""
    return [
        {"id": "A", "Lat": 1, "Long": 1},
        {"id": "B", "Lat": 2, "Long": 2},
        {"id": "C", "Lat": 3, "Long": 3},
    ]


@pytest.fixture
def geo_points():
    """Huit points géographiques; A et B sont quasiment confondus, H est isolé."""
    return [
        {"id": "A", "Lat": 33.776500, "Long": -84.392100, "name": "Station A"},
        {"id": "B", "Lat": 33.776510, "Long": -84.392110, "name": "Station B"},
        {"id": "C", "Lat": 33.776900, "Long": -84.391500, "name": "Station C"},
        {"id": "D", "Lat": 33.780000, "Long": -84.388000, "name": "Station D"},
        {"id": "E", "Lat": 33.749000, "Long": -84.388000, "name": "Station E"},
        {"id": "F", "Lat": 33.760000, "Long": -84.140000, "name": "Station F"},
        {"id": "G", "Lat": 33.790000, "Long": -84.300000, "name": "Station G"},
        {"id": "H", "Lat": 33.752103, "Long": -84.138643, "name": "Station H"},
    ]
