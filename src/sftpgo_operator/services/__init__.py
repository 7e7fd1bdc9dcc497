"""
Service layer for the SFTPGo operator.

This module provides the lifecycle adapters that talk to the SFTPGo REST
API, the reconciler that drives them and the read-only listings of the
objects already defined in SFTPGo, separated from the kopf handler layer.
"""

from .adapters import ADAPTERS, get_adapter
from .base_adapter import ResourceAdapter, RestResourceAdapter
from .data_sources import DATA_SOURCES, collect_inventory, get_license
from .reconciler import ResourceReconciler

__all__ = [
    "ADAPTERS",
    "DATA_SOURCES",
    "ResourceAdapter",
    "RestResourceAdapter",
    "ResourceReconciler",
    "collect_inventory",
    "get_adapter",
    "get_license",
]
