"""Prometheus metrics for issuance, signing and verification.

A :class:`MetricsRegistry` owns one set of counters. The process-wide
instance from :func:`get_registry` registers on the default prometheus
registry; tests pass their own ``CollectorRegistry`` to stay isolated.
"""
from __future__ import annotations

import threading
from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter


class MetricsRegistry:
    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else REGISTRY
        self.certificates_issued = Counter(
            "pqbgpsec_certificates_issued_total", "Certificates issued by an authority",
            ["algorithm"], registry=self.registry,
        )
        self.certificate_validations = Counter(
            "pqbgpsec_certificate_validations_total", "Certificate validations by outcome",
            ["result"], registry=self.registry,
        )
        self.segments_signed = Counter(
            "pqbgpsec_segments_signed_total", "Path segments signed",
            ["algorithm"], registry=self.registry,
        )
        self.segment_verifications = Counter(
            "pqbgpsec_segment_verifications_total", "Path segment verifications by outcome",
            ["result"], registry=self.registry,
        )

    def observe_issued(self, algorithm: str) -> None:
        self.certificates_issued.labels(algorithm=algorithm).inc()

    def observe_validation(self, valid: bool) -> None:
        self.certificate_validations.labels(result="valid" if valid else "invalid").inc()

    def observe_signed(self, algorithm: str) -> None:
        self.segments_signed.labels(algorithm=algorithm).inc()

    def observe_verification(self, valid: bool) -> None:
        self.segment_verifications.labels(result="valid" if valid else "invalid").inc()

    def get(self, name: str, **labels) -> float:
        """Current value of a sample, 0.0 if it was never observed."""
        value = self.registry.get_sample_value(name, labels)
        return value or 0.0


_registry: Optional[MetricsRegistry] = None
_registry_lock = threading.Lock()


def get_registry() -> MetricsRegistry:
    global _registry
    with _registry_lock:
        if _registry is None:
            _registry = MetricsRegistry()
        return _registry


__all__ = ["get_registry", "MetricsRegistry"]
