"""Data models for bucketctl.

This module exports the core data structures used throughout the application.
"""

from bucketctl.models.bucket import DEFAULT_PRIORITY, Bucket
from bucketctl.models.event import Event, EventKind
from bucketctl.models.manifest import Artifact, License, Manifest, parse_hash
from bucketctl.models.package import InstalledRecord, InstalledSet, Package
from bucketctl.models.plan import (
    Diagnostic,
    DiagnosticKind,
    PlanStep,
    ResolutionPlan,
    StepAction,
)
from bucketctl.models.query import OperationKind, QueryOptions, QuerySpec
from bucketctl.models.report import StepOutcome, StepStatus, SyncReport

__all__ = [
    "DEFAULT_PRIORITY",
    "Artifact",
    "Bucket",
    "Diagnostic",
    "DiagnosticKind",
    "Event",
    "EventKind",
    "InstalledRecord",
    "InstalledSet",
    "License",
    "Manifest",
    "OperationKind",
    "Package",
    "PlanStep",
    "QueryOptions",
    "QuerySpec",
    "ResolutionPlan",
    "StepAction",
    "StepOutcome",
    "StepStatus",
    "SyncReport",
    "parse_hash",
]
