"""
End-to-end chain-of-custody scenario.

Drives the reference flow: establish a root CA, issue one certificate per hop
identity, sign one path segment per adjacent hop pair, then validate every
certificate and verify every segment.

States advance strictly in order::

    UNINITIALIZED -> CA_ROOT_ESTABLISHED -> HOP_CERTIFICATES_ISSUED
                  -> SEGMENTS_SIGNED -> CHAIN_VERIFIED

A failing step raises and leaves the scenario in the last state it reached;
the authority, its ledger and any issued certificates stay inspectable.
Verification reaches CHAIN_VERIFIED only when every certificate and every
segment is valid; otherwise it reports the failures and stays put.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from . import crypto
from .config import ChainConfig
from .errors import PQBGPsecError, ScenarioError
from .monitoring import MetricsRegistry, get_registry
from .path import Hop, PathAttestationBuilder, PathAttestationVerifier, PathSignature, PathVerificationReport
from .pki import (
    Certificate,
    CertificateAuthority,
    CertificateIssuer,
    ChainValidator,
    ValidationOptions,
    ValidationReport,
    ValidationResult,
)

logger = logging.getLogger(__name__)


class ScenarioState(Enum):
    UNINITIALIZED = "uninitialized"
    CA_ROOT_ESTABLISHED = "ca_root_established"
    HOP_CERTIFICATES_ISSUED = "hop_certificates_issued"
    SEGMENTS_SIGNED = "segments_signed"
    CHAIN_VERIFIED = "chain_verified"


@dataclass
class ScenarioResult:
    """Everything a run produced, for reporting and artifact export."""
    state: ScenarioState
    authority_certificate: Certificate
    hops: List[Hop]
    signatures: List[PathSignature]
    root_result: ValidationResult
    certificate_report: ValidationReport
    path_report: PathVerificationReport
    config: ChainConfig = field(default_factory=ChainConfig)

    @property
    def success(self) -> bool:
        return self.root_result.valid and self.certificate_report.all_valid and self.path_report.all_valid

    @property
    def certificates(self) -> List[Certificate]:
        return [hop.certificate for hop in self.hops]

    def to_dict(self) -> Dict[str, object]:
        return {
            "state": self.state.value,
            "success": self.success,
            "algorithm": self.authority_certificate.algorithm,
            "authority": self.authority_certificate.subject,
            "hops": [hop.identifier for hop in self.hops],
            "certificates": self.certificate_report.summary(),
            "segments": self.path_report.summary(),
            "certificate_failures": [
                {"subject": r.subject, "serial_number": r.serial_number, "reason": r.reason}
                for r in self.certificate_report.failures
            ],
            "segment_failures": [
                {"ordinal": r.ordinal, "origin": r.origin, "next_hop": r.next_hop, "reason": r.reason}
                for r in self.path_report.failures
            ],
        }


class ChainScenario:
    def __init__(
        self,
        config: Optional[ChainConfig] = None,
        *,
        metrics: Optional[MetricsRegistry] = None,
        validation_options: Optional[ValidationOptions] = None,
    ):
        self.config = config or ChainConfig()
        self.metrics = metrics or get_registry()
        self.validation_options = validation_options
        self.state = ScenarioState.UNINITIALIZED
        self.authority: Optional[CertificateAuthority] = None
        self.hops: List[Hop] = []
        self.signatures: List[PathSignature] = []
        self.result: Optional[ScenarioResult] = None

    def _require(self, *expected: ScenarioState) -> None:
        if self.state not in expected:
            names = ", ".join(s.value for s in expected)
            raise ScenarioError(f"scenario is {self.state.value}; expected {names}")

    def _advance(self, state: ScenarioState) -> None:
        logger.debug("Scenario %s -> %s", self.state.value, state.value)
        self.state = state

    def establish_root(self) -> CertificateAuthority:
        self._require(ScenarioState.UNINITIALIZED)
        cfg = self.config
        try:
            crypto.require_algorithm(cfg.algorithm)
            self.authority = CertificateAuthority.from_config(cfg, metrics=self.metrics)
        except PQBGPsecError as e:
            logger.error("Root CA setup failed: %s", e)
            raise
        self._advance(ScenarioState.CA_ROOT_ESTABLISHED)
        return self.authority

    def issue_hop_certificates(self) -> List[Hop]:
        self._require(ScenarioState.CA_ROOT_ESTABLISHED)
        cfg = self.config
        identifiers = cfg.hop_identifiers
        issuer = CertificateIssuer(cfg.algorithm, subject_name_func=cfg.hop_subject_name)
        try:
            issued = issuer.issue_many(self.authority, identifiers, max_workers=cfg.max_workers)
        except PQBGPsecError as e:
            logger.error("Hop certificate issuance failed: %s", e)
            raise
        self.hops = [
            Hop(identifier=ident, key_pair=key_pair, certificate=cert)
            for ident, (key_pair, cert) in zip(identifiers, issued)
        ]
        logger.info("Issued %d hop certificates (%s .. %s)", len(self.hops), identifiers[0], identifiers[-1])
        self._advance(ScenarioState.HOP_CERTIFICATES_ISSUED)
        return self.hops

    def sign_segments(self) -> List[PathSignature]:
        self._require(ScenarioState.HOP_CERTIFICATES_ISSUED)
        builder = PathAttestationBuilder(chain_segments=self.config.chain_segments, metrics=self.metrics)
        try:
            self.signatures = builder.build_path(self.hops)
        except PQBGPsecError as e:
            logger.error("Path signing failed: %s", e)
            raise
        self._advance(ScenarioState.SEGMENTS_SIGNED)
        return self.signatures

    def verify(self) -> ScenarioResult:
        """Validate all certificates and segments; collects every failure."""
        self._require(ScenarioState.SEGMENTS_SIGNED, ScenarioState.CHAIN_VERIFIED)
        validator = ChainValidator(self.validation_options, metrics=self.metrics)
        verifier = PathAttestationVerifier(metrics=self.metrics)
        root = self.authority.certificate

        root_result = validator.validate_root(root)
        certificate_report = validator.validate_all([hop.certificate for hop in self.hops], root)
        path_report = verifier.verify_path(
            self.signatures,
            [hop.certificate for hop in self.hops],
            hops=[hop.identifier for hop in self.hops],
        )

        if root_result.valid and certificate_report.all_valid and path_report.all_valid:
            self._advance(ScenarioState.CHAIN_VERIFIED)
        else:
            logger.error("Chain verification failed: %s, %s",
                         certificate_report.summary(), path_report.summary())

        self.result = ScenarioResult(
            state=self.state,
            authority_certificate=root,
            hops=list(self.hops),
            signatures=list(self.signatures),
            root_result=root_result,
            certificate_report=certificate_report,
            path_report=path_report,
            config=self.config,
        )
        return self.result

    def run(self) -> ScenarioResult:
        """Run every remaining step in order."""
        if self.state == ScenarioState.UNINITIALIZED:
            self.establish_root()
        if self.state == ScenarioState.CA_ROOT_ESTABLISHED:
            self.issue_hop_certificates()
        if self.state == ScenarioState.HOP_CERTIFICATES_ISSUED:
            self.sign_segments()
        return self.verify()


__all__ = ["ScenarioState", "ScenarioResult", "ChainScenario"]
