import pytest
from prometheus_client import CollectorRegistry

from pqbgpsec.monitoring import MetricsRegistry
from pqbgpsec.path import Hop
from pqbgpsec.pki import CertificateAuthority, CertificateIssuer

NOW = 1_700_000_000


@pytest.fixture
def metrics():
    """Metrics bound to a private registry so counters start at zero."""
    return MetricsRegistry(CollectorRegistry())


@pytest.fixture
def authority(metrics):
    return make_authority(metrics)


def make_authority(metrics, algorithm="ed25519", subject="Test CA", **kwargs):
    return CertificateAuthority.create(
        subject,
        algorithm,
        subject_name={"CN": subject, "O": "Test", "C": "US"},
        metrics=metrics,
        **kwargs,
    )


def router_name(subject):
    return {"CN": f"{subject} Router", "O": "Test ISP", "C": "US"}


def make_hops(authority, count, algorithm="ed25519", base_asn=65000):
    issuer = CertificateIssuer(algorithm, subject_name_func=router_name)
    hops = []
    for i in range(count):
        ident = f"AS{base_asn + i}"
        key_pair, cert = issuer.request_and_issue(authority, ident)
        hops.append(Hop(identifier=ident, key_pair=key_pair, certificate=cert))
    return hops
