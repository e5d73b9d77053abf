"""
Data Models Layer.

This package contains the Pydantic models and dataclasses that define the core
data structures used throughout the application: configuration, the sync plan
and the results of a run.
"""

from .config import MediaFormat, SyncOptions, SyncTarget
from .plan import Action, LocalArtifact, Plan, PlanEntry, RemoteItem
from .results import (
    FetchFatal,
    FetchResult,
    FetchRetryable,
    FetchSuccess,
    ItemOutcome,
    RunReport,
    SyncResult,
    TargetState,
)

__all__ = [
    "Action",
    "FetchFatal",
    "FetchResult",
    "FetchRetryable",
    "FetchSuccess",
    "ItemOutcome",
    "LocalArtifact",
    "MediaFormat",
    "Plan",
    "PlanEntry",
    "RemoteItem",
    "RunReport",
    "SyncOptions",
    "SyncResult",
    "SyncTarget",
    "TargetState",
]
