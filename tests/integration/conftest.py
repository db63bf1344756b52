"""Shared fixtures for klaw integration tests.

The pipelines built by ``fakes.build_pipeline`` use the real sampler,
history store, alert store, rules, chart renderer and dispatcher around
in-memory ClusterQuery fakes, so no real cluster or chat platform is
touched.
"""

from __future__ import annotations

import pytest
from fakes import RecordingNotifier


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
