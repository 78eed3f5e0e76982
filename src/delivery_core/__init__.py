"""Delivery Core - payments ingestion and reporting for food-delivery platforms.

This package turns raw settlement exports from Uber Eats, DoorDash and
Grubhub into one clean, deduplicated, location-resolved transaction store,
and derives restaurant-level metrics and income statements from it.

Module Structure:
    delivery_core.ingest: CSV normalization, deduplication, ingestion runs
    delivery_core.locations: Location resolution, master list, maintenance
    delivery_core.metrics: Per-platform metrics, weekly financials, exports
    delivery_core.reconciliation: Income statement line items
    delivery_core.repositories: Repository protocols, in-memory and CSV stores
    delivery_core.strategies: Per-platform behaviour table

Quick Start:
    >>> from delivery_core import DataPaths, Platform, Repositories
    >>> from delivery_core.ingest.pipeline import ingest_file
    >>> from delivery_core.metrics.aggregate import aggregate
    >>> from delivery_core.models import MetricsFilter
    >>>
    >>> paths = DataPaths.from_root("data")
    >>> repos = Repositories.from_paths(paths)
    >>> ingest_file(repos, "client-1", Platform.DOORDASH, "doordash.csv", paths=paths)
    >>> aggregate(repos, MetricsFilter(client_id="client-1"), group_by="platform")
"""

__version__ = "0.1.0"

from delivery_core.config import COGS_RATE, DataPaths
from delivery_core.exceptions import (
    ConfigError,
    DataQualityError,
    DeliveryCoreError,
    IngestionError,
    MissingParameterError,
    NotFoundError,
    RepositoryError,
)
from delivery_core.platforms import Platform
from delivery_core.repositories import Repositories

__all__ = [
    "COGS_RATE",
    "ConfigError",
    "DataPaths",
    "DataQualityError",
    "DeliveryCoreError",
    "IngestionError",
    "MissingParameterError",
    "NotFoundError",
    "Platform",
    "Repositories",
    "RepositoryError",
    "__version__",
]
