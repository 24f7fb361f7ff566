"""Shared fixtures: an isolated data file, a scripted geocoder and a test client."""

import sys
from pathlib import Path
from typing import Dict, List, Tuple

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from eventmap import create_app
from eventmap.core.config import AppSettings
from eventmap.services.geocoding import Coordinates, GeocodingError

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "password123"


class FakeGeocoder:
    """Answers from a fixed table; anything else is a failed lookup."""

    def __init__(self, answers: Dict[str, Tuple[float, float]] | None = None) -> None:
        self.answers = dict(answers or {})
        self.calls: List[str] = []

    async def lookup(self, text: str) -> Coordinates:
        self.calls.append(text)
        if text not in self.answers:
            raise GeocodingError(f"No match for {text!r}")
        lat, lon = self.answers[text]
        return Coordinates(lat=lat, lon=lon)


@pytest.fixture()
def settings(tmp_path):
    return AppSettings(
        _env_file=None,
        DATA_FILE=tmp_path / "db.json",
        ADMIN_USERNAME=ADMIN_USERNAME,
        DEFAULT_ADMIN_PASSWORD=ADMIN_PASSWORD,
        BCRYPT_ROUNDS=4,
    )


@pytest.fixture()
def geocoder():
    return FakeGeocoder({"12 Main St ardlethan nsw 2665": (-34.33, 146.9)})


@pytest.fixture()
def app(settings, geocoder):
    return create_app(settings, geocoder=geocoder)


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def admin_client(client):
    response = client.post(
        "/signin",
        data={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
        follow_redirects=False,
    )
    assert response.status_code == 303
    return client
