"""Upstream job API: client, mock and polling orchestrator."""

from __future__ import annotations

from tweetsearch.jobs.backoff import PollPolicy, backoff_ms, backoff_schedule
from tweetsearch.jobs.client import HttpJobClient, JobClient
from tweetsearch.jobs.mock import MockJobClient, generate_mock_items
from tweetsearch.jobs.orchestrator import PollingOrchestrator, PollOutcome, RunState

__all__ = [
    "HttpJobClient",
    "JobClient",
    "MockJobClient",
    "PollOutcome",
    "PollPolicy",
    "PollingOrchestrator",
    "RunState",
    "backoff_ms",
    "backoff_schedule",
    "generate_mock_items",
]
