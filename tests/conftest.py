"""Shared fixtures for the delivery core test suite."""

import csv
import io

import pytest

from delivery_core import DataPaths, Repositories
from delivery_core.models import Client, Location

CLIENT_ID = "capriottis"


def csv_bytes(header: list[str], rows: list[list[object]], caption: str | None = None) -> bytes:
    """Render rows as an uploaded CSV buffer, optionally with a caption line."""
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    if caption is not None:
        writer.writerow([caption] + [""] * (len(header) - 1))
    writer.writerow(header)
    for row in rows:
        writer.writerow(row)
    return out.getvalue().encode("utf-8")


def add_location(repos: Repositories, location_id: str, name: str, **kwargs) -> Location:
    """Save a verified location for the test client."""
    location = Location(
        id=location_id,
        client_id=kwargs.pop("client_id", CLIENT_ID),
        canonical_name=name,
        is_verified=True,
        **kwargs,
    )
    return repos.locations.save(location)


@pytest.fixture
def repos() -> Repositories:
    """In-memory repositories with one registered client."""
    repos = Repositories.in_memory()
    repos.clients.save(Client(id=CLIENT_ID, name="Capriotti's"))
    return repos


@pytest.fixture
def paths(tmp_path) -> DataPaths:
    paths = DataPaths.from_root(tmp_path / "data")
    paths.ensure_dirs()
    return paths
