"""Fixed threshold rules evaluated against a cluster's latest sample."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from klaw.models.alerts import AlertLevel, AlertType
from klaw.models.metrics import ClusterSample


@dataclass(frozen=True)
class AlertCandidate:
    """An alert a rule wants raised; the alert store decides whether it is new."""

    rule_id: str
    type: AlertType
    level: AlertLevel
    message: str


@dataclass(frozen=True)
class ThresholdRule:
    """Fires when ``value(sample) > threshold``.

    ``template`` is formatted with the observed value as ``{n}``.
    """

    rule_id: str
    alert_type: AlertType
    level: AlertLevel
    value: Callable[[ClusterSample], int]
    threshold: int
    template: str

    def match(self, sample: ClusterSample) -> bool:
        return self.value(sample) > self.threshold

    def explain(self, sample: ClusterSample) -> AlertCandidate:
        return AlertCandidate(
            rule_id=self.rule_id,
            type=self.alert_type,
            level=self.level,
            message=self.template.format(n=self.value(sample)),
        )


DEFAULT_RULES: tuple[ThresholdRule, ...] = (
    ThresholdRule(
        rule_id="nodes_not_ready",
        alert_type=AlertType.NODE,
        level=AlertLevel.WARNING,
        value=lambda s: s.nodes.not_ready,
        threshold=0,
        template="{n} nodes are not ready",
    ),
    ThresholdRule(
        rule_id="pods_failed",
        alert_type=AlertType.POD,
        level=AlertLevel.CRITICAL,
        value=lambda s: s.pods.failed,
        threshold=0,
        template="{n} pods have failed",
    ),
    ThresholdRule(
        rule_id="pods_pending",
        alert_type=AlertType.POD,
        level=AlertLevel.WARNING,
        value=lambda s: s.pods.pending,
        threshold=10,
        template="{n} pods are pending",
    ),
)


def evaluate(sample: ClusterSample, rules: tuple[ThresholdRule, ...] = DEFAULT_RULES) -> list[AlertCandidate]:
    """Apply every rule independently; each contributes at most one candidate."""
    return [rule.explain(sample) for rule in rules if rule.match(sample)]
