"""Dagster resources for the sourcing pipeline."""

from talent_sourcing.resources.discovery import MockDiscoveryResource
from talent_sourcing.resources.sourcing import SourcingResource

__all__ = [
    "MockDiscoveryResource",
    "SourcingResource",
]
