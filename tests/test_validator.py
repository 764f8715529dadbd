"""
Tests for certificate validation, revocation and the certificate codec.
"""

import copy
from dataclasses import replace
from unittest.mock import Mock

import pytest

from pqbgpsec import crypto
from pqbgpsec.errors import DecodeError
from pqbgpsec.pki import (
    CertificateAuthority,
    ChainValidator,
    InMemoryRevocationProvider,
    NoopRevocationProvider,
    RevocationStatus,
    ValidationOptions,
    decode_certificate,
    encode_certificate,
)
from pqbgpsec.pki.authority import SECONDS_PER_DAY
from pqbgpsec.pki.codec import b64u

from conftest import NOW, make_authority


def issue(authority, subject="AS65001"):
    return authority.issue(subject, crypto.generate_key_pair("ed25519").public_key)


class TestChainValidator:
    """Test single-certificate validation against a trusted root."""

    def test_valid(self, authority, metrics):
        cert = issue(authority)
        result = ChainValidator(metrics=metrics).validate(cert, authority.certificate)
        assert result.valid
        assert result
        assert result.reason is None
        assert result.serial_number == cert.serial_number
        assert metrics.get("pqbgpsec_certificate_validations_total", result="valid") == 1

    def test_other_ca_same_subject(self, authority, metrics):
        cert = issue(authority)
        impostor = make_authority(metrics, subject=authority.subject)
        result = ChainValidator(metrics=metrics).validate(cert, impostor.certificate)
        assert not result.valid
        assert result.reason == "authority key identifier mismatch"
        assert metrics.get("pqbgpsec_certificate_validations_total", result="invalid") == 1

    def test_issuer_mismatch(self, authority, metrics):
        cert = issue(authority)
        other = make_authority(metrics, subject="Other CA")
        result = ChainValidator(metrics=metrics).validate(cert, other.certificate)
        assert result.reason == "issuer mismatch"

    def test_tampered_subject(self, authority, metrics):
        cert = replace(issue(authority), subject="AS65666")
        result = ChainValidator(metrics=metrics).validate(cert, authority.certificate)
        assert result.reason == "signature invalid"

    def test_tampered_public_key(self, authority, metrics):
        other_key = crypto.generate_key_pair("ed25519")
        cert = replace(issue(authority), public_key=other_key.public_key)
        result = ChainValidator(metrics=metrics).validate(cert, authority.certificate)
        assert result.reason == "subject key identifier mismatch"

    def test_tampered_signature(self, authority, metrics):
        cert = issue(authority)
        flipped = bytes([cert.signature[0] ^ 0x01]) + cert.signature[1:]
        result = ChainValidator(metrics=metrics).validate(replace(cert, signature=flipped), authority.certificate)
        assert result.reason == "signature invalid"

    def test_root_not_ca(self, authority, metrics):
        cert = issue(authority)
        root = replace(authority.certificate, is_ca=False)
        result = ChainValidator(metrics=metrics).validate(cert, root)
        assert result.reason == "trusted root is not a CA"

    def test_root_without_cert_sign(self, authority, metrics):
        cert = issue(authority)
        root = replace(authority.certificate, key_usage=("cRLSign",))
        result = ChainValidator(metrics=metrics).validate(cert, root)
        assert result.reason == "trusted root may not sign certificates"

    def test_expired(self, metrics):
        ca = make_authority(metrics, now_func=lambda: NOW)
        cert = issue(ca)
        later = NOW + 400 * SECONDS_PER_DAY
        validator = ChainValidator(ValidationOptions(now_func=lambda: later), metrics=metrics)
        assert validator.validate(cert, ca.certificate).reason == "outside validity period"

        lenient = ChainValidator(ValidationOptions(now_func=lambda: later, check_validity_period=False),
                                 metrics=metrics)
        assert lenient.validate(cert, ca.certificate).valid

    def test_not_yet_valid(self, metrics):
        ca = make_authority(metrics, now_func=lambda: NOW)
        cert = issue(ca)
        validator = ChainValidator(ValidationOptions(now_func=lambda: NOW - 1), metrics=metrics)
        assert not validator.validate(cert, ca.certificate).valid

    def test_inputs_not_mutated(self, authority, metrics):
        cert = issue(authority)
        before_cert, before_root = copy.deepcopy(cert), copy.deepcopy(authority.certificate)
        ChainValidator(metrics=metrics).validate(cert, authority.certificate)
        assert cert == before_cert
        assert authority.certificate == before_root


class TestRootValidation:
    """Test trust anchor checks."""

    def test_valid_root(self, authority, metrics):
        assert ChainValidator(metrics=metrics).validate_root(authority.certificate).valid

    def test_root_not_self_signed(self, authority, metrics):
        cert = issue(authority)
        result = ChainValidator(metrics=metrics).validate_root(cert)
        assert result.reason == "root is not self-signed"

    def test_expired_root(self, metrics):
        ca = make_authority(metrics, now_func=lambda: NOW, ca_validity_days=10)
        validator = ChainValidator(ValidationOptions(now_func=lambda: NOW + 11 * SECONDS_PER_DAY), metrics=metrics)
        assert not validator.validate_root(ca.certificate).valid


class TestRevocation:
    """Test revocation provider integration."""

    def test_revoked_serial(self, authority, metrics):
        cert = issue(authority)
        provider = InMemoryRevocationProvider()
        provider.revoke_serial(cert.serial_number)
        validator = ChainValidator(ValidationOptions(revocation_provider=provider), metrics=metrics)
        assert validator.validate(cert, authority.certificate).reason == "certificate revoked"

        provider.unrevoke_serial(cert.serial_number)
        assert validator.validate(cert, authority.certificate).valid

    def test_revoked_key(self, authority, metrics):
        cert = issue(authority)
        provider = InMemoryRevocationProvider()
        provider.revoke_key(cert.subject_key_id)
        validator = ChainValidator(ValidationOptions(revocation_provider=provider), metrics=metrics)
        assert validator.validate(cert, authority.certificate).reason == "certificate revoked"

    def test_unknown_status(self, authority, metrics):
        cert = issue(authority)
        provider = Mock()
        provider.check.return_value = (RevocationStatus.UNKNOWN, None)

        lenient = ChainValidator(ValidationOptions(revocation_provider=provider), metrics=metrics)
        assert lenient.validate(cert, authority.certificate).valid

        strict = ChainValidator(
            ValidationOptions(revocation_provider=provider, fail_on_revocation_unknown=True), metrics=metrics
        )
        assert strict.validate(cert, authority.certificate).reason == "revocation status unknown"
        target = provider.check.call_args[0][0]
        assert target.serial_number == cert.serial_number
        assert target.key_id == cert.subject_key_id

    def test_provider_error(self, authority, metrics):
        cert = issue(authority)
        provider = Mock()
        provider.check.return_value = (RevocationStatus.UNKNOWN, RuntimeError("backend down"))
        validator = ChainValidator(ValidationOptions(revocation_provider=provider), metrics=metrics)
        result = validator.validate(cert, authority.certificate)
        assert result.reason == "revocation check failed: backend down"

    def test_default_unknown(self, authority, metrics):
        cert = issue(authority)
        provider = InMemoryRevocationProvider(default_unknown=True)
        validator = ChainValidator(
            ValidationOptions(revocation_provider=provider, fail_on_revocation_unknown=True), metrics=metrics
        )
        assert not validator.validate(cert, authority.certificate).valid

    def test_revoke_certificate(self, authority, metrics):
        cert, sibling = issue(authority), issue(authority, "AS65002")
        provider = InMemoryRevocationProvider()
        provider.revoke(cert)
        assert provider.revoked_serials() == [cert.serial_number]
        validator = ChainValidator(ValidationOptions(revocation_provider=provider), metrics=metrics)
        assert not validator.validate(cert, authority.certificate).valid
        assert validator.validate(sibling, authority.certificate).valid

    def test_revoke_whole_key(self, authority, metrics):
        key = crypto.generate_key_pair("ed25519")
        first = authority.issue("AS65001", key.public_key)
        second = authority.issue("AS65001", key.public_key)
        provider = InMemoryRevocationProvider()
        provider.revoke(first, whole_key=True)
        validator = ChainValidator(ValidationOptions(revocation_provider=provider), metrics=metrics)
        assert validator.validate(second, authority.certificate).reason == "certificate revoked"

    def test_noop_provider(self, authority, metrics):
        cert = issue(authority)
        validator = ChainValidator(
            ValidationOptions(revocation_provider=NoopRevocationProvider()), metrics=metrics
        )
        assert validator.validate(cert, authority.certificate).valid


class TestValidateAll:
    """Test batch validation reporting."""

    def test_reports_every_failure(self, authority, metrics):
        certs = [issue(authority, f"AS{65000 + i}") for i in range(6)]
        certs[2] = replace(certs[2], subject="AS65999")
        certs[4] = replace(certs[4], not_after=certs[4].not_before)
        report = ChainValidator(metrics=metrics).validate_all(certs, authority.certificate)

        assert report.total == 6
        assert report.valid_count == 4
        assert not report.all_valid
        assert [f.serial_number for f in report.failures] == [certs[2].serial_number, certs[4].serial_number]
        assert report.summary() == "4/6 certificates valid"

    def test_empty(self, authority, metrics):
        report = ChainValidator(metrics=metrics).validate_all([], authority.certificate)
        assert report.all_valid
        assert report.summary() == "0/0 certificates valid"


class TestCertificateCodec:
    """Test certificate encoding and strict decoding."""

    def test_decoded_certificate_still_validates(self, authority, metrics):
        cert = issue(authority)
        decoded = decode_certificate(encode_certificate(cert))
        assert decoded == cert
        assert ChainValidator(metrics=metrics).validate(decoded, authority.certificate).valid

    def test_reloaded_authority_root(self, authority):
        root = decode_certificate(encode_certificate(authority.certificate))
        reloaded = CertificateAuthority(None, root)
        assert reloaded.key_id == authority.key_id

    @pytest.mark.parametrize("raw", [
        b"not json",
        b"\xff\xfe",
        b"[]",
        b"{}",
    ])
    def test_malformed(self, raw):
        with pytest.raises(DecodeError):
            decode_certificate(raw)

    def test_wrong_field_type(self, authority):
        raw = encode_certificate(issue(authority)).replace(b'"is_ca":false', b'"is_ca":0')
        with pytest.raises(DecodeError, match="is_ca"):
            decode_certificate(raw)

    def test_bool_serial_rejected(self, authority):
        cert = issue(authority)
        raw = encode_certificate(cert).replace(
            f'"serial_number":{cert.serial_number}'.encode(), b'"serial_number":true'
        )
        with pytest.raises(DecodeError, match="serial_number"):
            decode_certificate(raw)

    def test_bad_base64(self, authority):
        cert = issue(authority)
        raw = encode_certificate(cert).replace(b64u(cert.public_key).encode(), b"A")
        with pytest.raises(DecodeError):
            decode_certificate(raw)

    def test_characters_outside_alphabet(self, authority):
        cert = issue(authority)
        encoded = b64u(cert.public_key).encode()
        raw = encode_certificate(cert).replace(encoded, b"!!!!" + encoded)
        with pytest.raises(DecodeError, match="binary field malformed"):
            decode_certificate(raw)
