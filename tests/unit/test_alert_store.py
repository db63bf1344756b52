"""Tests for the alert store, alert ids and notification message formatting."""

from __future__ import annotations

import pytest
from fakes import T0, MutableClock

from klaw.errors import AlertNotFoundError
from klaw.models.alerts import AlertLevel, AlertType, alert_id
from klaw.monitoring.alerts import AlertStore, format_alert_message


class TestAlertId:
    def test_format(self) -> None:
        assert alert_id("prod", AlertType.NODE, T0) == "prod-node-20260301120000"


class TestCreate:
    def test_create_returns_new_alert(self) -> None:
        store = AlertStore(clock=MutableClock())
        alert = store.create("a", AlertType.NODE, AlertLevel.WARNING, "1 nodes are not ready")
        assert alert is not None
        assert alert.id == "a-node-20260301120000"
        assert alert.created_at == T0
        assert alert.resolved is False
        assert len(store) == 1

    def test_same_second_same_type_is_deduplicated(self) -> None:
        store = AlertStore(clock=MutableClock())
        first = store.create("a", AlertType.POD, AlertLevel.CRITICAL, "3 pods have failed")
        second = store.create("a", AlertType.POD, AlertLevel.WARNING, "11 pods are pending")
        assert first is not None
        assert second is None
        assert len(store) == 1
        assert store.get(first.id).message == "3 pods have failed"

    def test_next_second_creates_new_alert(self) -> None:
        clock = MutableClock()
        store = AlertStore(clock=clock)
        store.create("a", AlertType.POD, AlertLevel.CRITICAL, "x")
        clock.advance(1)
        assert store.create("a", AlertType.POD, AlertLevel.CRITICAL, "x") is not None
        assert len(store) == 2

    def test_different_clusters_do_not_collide(self) -> None:
        store = AlertStore(clock=MutableClock())
        assert store.create("a", AlertType.NODE, AlertLevel.WARNING, "x") is not None
        assert store.create("b", AlertType.NODE, AlertLevel.WARNING, "x") is not None


class TestResolve:
    def test_resolve_sets_flag(self) -> None:
        store = AlertStore(clock=MutableClock())
        alert = store.create("a", AlertType.NODE, AlertLevel.WARNING, "x")
        assert alert is not None
        assert store.resolve(alert.id) is True
        assert store.get(alert.id).resolved is True

    def test_resolve_twice_reports_no_change(self) -> None:
        store = AlertStore(clock=MutableClock())
        alert = store.create("a", AlertType.NODE, AlertLevel.WARNING, "x")
        assert alert is not None
        store.resolve(alert.id)
        assert store.resolve(alert.id) is False
        assert store.get(alert.id).resolved is True

    def test_resolve_unknown_raises(self) -> None:
        store = AlertStore()
        with pytest.raises(AlertNotFoundError):
            store.resolve("x")

    def test_returned_copies_cannot_unresolve(self) -> None:
        store = AlertStore(clock=MutableClock())
        alert = store.create("a", AlertType.NODE, AlertLevel.WARNING, "x")
        assert alert is not None
        store.resolve(alert.id)
        copy = store.get(alert.id)
        copy.resolved = False
        assert store.get(alert.id).resolved is True
        assert all(a.resolved for a in store.list())


class TestList:
    def test_filter_by_cluster_in_creation_order(self) -> None:
        clock = MutableClock()
        store = AlertStore(clock=clock)
        store.create("a", AlertType.NODE, AlertLevel.WARNING, "first")
        store.create("b", AlertType.NODE, AlertLevel.WARNING, "other")
        clock.advance(1)
        store.create("a", AlertType.NODE, AlertLevel.WARNING, "second")

        assert [a.message for a in store.list("a")] == ["first", "second"]
        assert len(store.list()) == 3
        assert store.list("missing") == []


class TestFormatAlertMessage:
    def test_new_alert(self) -> None:
        store = AlertStore(clock=MutableClock())
        alert = store.create("prod", AlertType.POD, AlertLevel.CRITICAL, "3 pods have failed")
        assert alert is not None
        assert format_alert_message(alert) == (
            "[Kubernetes Alert] pod - prod-pod-20260301120000\n"
            "Cluster: prod\n"
            "Level: critical\n"
            "Message: 3 pods have failed\n"
            "Time: 2026-03-01 12:00:00"
        )

    def test_resolved_alert_uses_given_time(self) -> None:
        store = AlertStore(clock=MutableClock())
        alert = store.create("prod", AlertType.NODE, AlertLevel.WARNING, "1 nodes are not ready")
        assert alert is not None
        clock = MutableClock()
        clock.advance(90)
        text = format_alert_message(alert, resolved=True, at=clock())
        assert text.startswith("[Kubernetes Alert Resolved] node - prod-node-20260301120000\n")
        assert text.endswith("Time: 2026-03-01 12:01:30")
