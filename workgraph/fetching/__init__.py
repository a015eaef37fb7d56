"""Fetching package: transport providers, retry/cancellation primitives,
multi-source orchestration and the workspace service facade.
"""

from .cancellation import CancellationToken
from .errors import (
    MalformedResponseError,
    TransportError,
    UpstreamError,
    WorkspaceError,
    describe_upstream_error,
)
from .orchestrator import FetchOrchestrator
from .progress import ProgressAggregator
from .retry import RetryDecision, RetryPolicy
from .service import WorkspaceService, build_workspace_service

__all__ = [
    "CancellationToken",
    "MalformedResponseError",
    "TransportError",
    "UpstreamError",
    "WorkspaceError",
    "describe_upstream_error",
    "FetchOrchestrator",
    "ProgressAggregator",
    "RetryDecision",
    "RetryPolicy",
    "WorkspaceService",
    "build_workspace_service",
]
