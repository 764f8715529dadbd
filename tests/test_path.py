"""
Tests for path segment signing, encoding and verification.
"""

from dataclasses import replace

import pytest

from pqbgpsec import crypto
from pqbgpsec.errors import DecodeError, SigningError
from pqbgpsec.path import (
    PathAttestationBuilder,
    PathAttestationVerifier,
    PathSegment,
    decode_segment,
    encode_segment,
    segment_payload,
)

from conftest import make_hops


@pytest.fixture
def hops(authority):
    return make_hops(authority, 8)


@pytest.fixture
def builder(metrics):
    return PathAttestationBuilder(metrics=metrics)


@pytest.fixture
def verifier(metrics):
    return PathAttestationVerifier(metrics=metrics)


def tamper(path_signature):
    sig = path_signature.signature
    return replace(path_signature, signature=bytes([sig[0] ^ 0x01]) + sig[1:])


class TestSegmentSigning:
    """Test signing and verifying single segments."""

    def test_sign_and_verify(self, hops, builder, verifier, metrics):
        segment = builder.make_segment(0, hops[0], hops[1])
        sig = builder.sign_segment(hops[0].key_pair, segment)
        assert sig.signer_key_id == hops[0].certificate.subject_key_id
        assert segment.payload == "BGPsec path segment: AS65000 → AS65001\n".encode("utf-8")
        assert verifier.verify_segment(sig, hops[0].certificate, hops[1].certificate)
        assert metrics.get("pqbgpsec_segments_signed_total", algorithm="ed25519") == 1
        assert metrics.get("pqbgpsec_segment_verifications_total", result="valid") == 1

    def test_deterministic_for_ed25519(self, hops, builder):
        segment = builder.make_segment(0, hops[0], hops[1])
        first = builder.sign_segment(hops[0].key_pair, segment)
        second = builder.sign_segment(hops[0].key_pair, segment)
        assert first.signature == second.signature

    def test_wrong_signer_certificate(self, hops, builder, verifier):
        sig = builder.sign_segment(hops[0].key_pair, builder.make_segment(0, hops[0], hops[1]))
        result = verifier.check_segment(sig, hops[2].certificate)
        assert result.reason == "signer certificate subject mismatch"
        assert not verifier.verify_segment(sig, hops[2].certificate)

    def test_missing_signer_certificate(self, hops, builder, verifier):
        sig = builder.sign_segment(hops[0].key_pair, builder.make_segment(0, hops[0], hops[1]))
        assert verifier.check_segment(sig, None).reason == "no certificate for signer"

    def test_tampered_signature(self, hops, builder, verifier):
        sig = builder.sign_segment(hops[0].key_pair, builder.make_segment(0, hops[0], hops[1]))
        assert verifier.check_segment(tamper(sig), hops[0].certificate).reason == "signature invalid"

    def test_any_single_byte_mutation_fails(self, hops, builder, verifier):
        sig = builder.sign_segment(hops[0].key_pair, builder.make_segment(0, hops[0], hops[1]))
        encoded = encode_segment(sig.segment)
        checked = 0
        for i in range(len(encoded)):
            mutated = bytearray(encoded)
            mutated[i] ^= 0x01
            try:
                segment = decode_segment(bytes(mutated))
            except DecodeError:
                continue
            checked += 1
            assert not verifier.verify_segment(replace(sig, segment=segment), hops[0].certificate)
        assert checked > 0

    def test_next_hop_key_binding(self, hops, builder, verifier):
        segment = builder.make_segment(0, hops[0], hops[1])
        sig = builder.sign_segment(hops[0].key_pair, segment)
        assert verifier.check_segment(sig, hops[0].certificate, hops[2].certificate).reason == "next hop mismatch"

        stranger = replace(hops[1], key_pair=crypto.generate_key_pair("ed25519"))
        rebound = builder.sign_segment(hops[0].key_pair, builder.make_segment(0, hops[0], stranger))
        result = verifier.check_segment(rebound, hops[0].certificate, hops[1].certificate)
        assert result.reason == "next hop key identifier mismatch"


class TestSigningErrors:
    """Test rejected signing inputs."""

    def test_nil_key_pair(self, hops, builder):
        with pytest.raises(SigningError, match="nil key pair"):
            builder.sign_segment(None, builder.make_segment(0, hops[0], hops[1]))

    def test_public_only_key(self, hops, builder):
        with pytest.raises(SigningError, match="no private key"):
            builder.sign_segment(hops[0].key_pair.public_only(), builder.make_segment(0, hops[0], hops[1]))

    def test_algorithm_mismatch(self, hops, builder):
        segment = replace(builder.make_segment(0, hops[0], hops[1]), algorithm="ed448")
        with pytest.raises(SigningError, match="does not match"):
            builder.sign_segment(hops[0].key_pair, segment)

    def test_disallowed_algorithm(self, hops, metrics):
        builder = PathAttestationBuilder(allowed_algorithms=["falcon512"], metrics=metrics)
        with pytest.raises(SigningError, match="not allowed"):
            builder.sign_segment(hops[0].key_pair, builder.make_segment(0, hops[0], hops[1]))

    def test_unencodable_segment(self, hops, builder):
        segment = replace(builder.make_segment(0, hops[0], hops[1]), ordinal=-1)
        with pytest.raises(SigningError, match="cannot be encoded"):
            builder.sign_segment(hops[0].key_pair, segment)

    def test_path_needs_two_hops(self, hops, builder):
        with pytest.raises(SigningError, match="at least two hops"):
            builder.build_path(hops[:1])


class TestBuildPath:
    """Test whole-path signing and verification."""

    def test_full_path(self, hops, builder, verifier):
        signatures = builder.build_path(hops)
        assert [s.segment.ordinal for s in signatures] == list(range(7))
        assert signatures[0].segment.previous_digest == b""
        for prev, sig in zip(signatures, signatures[1:]):
            assert sig.segment.previous_digest == prev.digest()

        report = verifier.verify_path(signatures, [h.certificate for h in hops])
        assert report.all_valid
        assert report.summary() == "7/7 path segments valid"

    def test_certificate_mapping(self, hops, builder, verifier):
        signatures = builder.build_path(hops)
        by_subject = {h.identifier: h.certificate for h in hops}
        assert verifier.verify_path(signatures, by_subject).all_valid

    def test_tampered_signature_breaks_next_binding(self, hops, builder, verifier):
        signatures = builder.build_path(hops)
        signatures[3] = tamper(signatures[3])
        report = verifier.verify_path(signatures, [h.certificate for h in hops])
        assert report.failed_ordinals == [3, 4]
        assert report.failures[0].reason == "signature invalid"
        assert report.failures[1].reason == "previous segment binding mismatch"

    def test_unchained_path(self, hops, metrics, verifier):
        builder = PathAttestationBuilder(chain_segments=False, metrics=metrics)
        signatures = builder.build_path(hops)
        assert all(s.segment.previous_digest == b"" for s in signatures)
        assert verifier.verify_path(signatures, [h.certificate for h in hops]).all_valid

        signatures[3] = tamper(signatures[3])
        report = verifier.verify_path(signatures, [h.certificate for h in hops])
        assert report.failed_ordinals == [3]

    def test_reordered_segments(self, hops, builder, verifier):
        signatures = builder.build_path(hops)
        signatures[2], signatures[3] = signatures[3], signatures[2]
        report = verifier.verify_path(signatures, [h.certificate for h in hops])
        assert not report.all_valid

    def test_missing_next_hop_certificate(self, hops, builder, verifier):
        signatures = builder.build_path(hops)
        report = verifier.verify_path(signatures, [h.certificate for h in hops[:-1]])
        assert report.failed_ordinals == [6]
        assert report.failures[0].reason == "no certificate for next hop"

    def test_swapped_key_reports_both_segments(self, hops, builder, verifier):
        hops[4] = replace(hops[4], key_pair=crypto.generate_key_pair("ed25519"))
        signatures = builder.build_path(hops)
        report = verifier.verify_path(signatures, [h.certificate for h in hops])
        assert report.failed_ordinals == [3, 4]
        assert report.failures[0].reason == "next hop key identifier mismatch"
        assert report.failures[1].reason == "signer key identifier mismatch"


class TestPathCompleteness:
    """Test that a report covers the whole hop sequence, in order."""

    def test_full_path_with_hops(self, hops, builder, verifier):
        signatures = builder.build_path(hops)
        report = verifier.verify_path(signatures, [h.certificate for h in hops], hops=[h.identifier for h in hops])
        assert report.complete
        assert report.all_valid
        assert report.summary() == "7/7 path segments valid"

    def test_dropped_segment_unchained(self, hops, metrics, verifier):
        builder = PathAttestationBuilder(chain_segments=False, metrics=metrics)
        signatures = builder.build_path(hops)
        del signatures[2]
        certificates = [h.certificate for h in hops]

        report = verifier.verify_path(signatures, certificates)
        assert not report.all_valid
        assert report.failed_ordinals[0] == 3
        assert "out of sequence" in report.failures[0].reason

        report = verifier.verify_path(signatures, certificates, hops=[h.identifier for h in hops])
        assert not report.complete
        assert not report.all_valid

    def test_truncated_path_chained(self, hops, builder, verifier):
        signatures = builder.build_path(hops)[:2]
        report = verifier.verify_path(signatures, [h.certificate for h in hops], hops=[h.identifier for h in hops])
        assert report.failed_ordinals == []
        assert not report.complete
        assert not report.all_valid
        assert report.summary() == "2/2 path segments valid (7 expected)"

    def test_segment_past_last_hop(self, hops, builder, verifier):
        signatures = builder.build_path(hops)
        report = verifier.verify_path(signatures, [h.certificate for h in hops],
                                      hops=[h.identifier for h in hops[:-1]])
        assert report.failed_ordinals == [6]
        assert report.failures[0].reason == "segment beyond the end of the path"
        assert not report.all_valid

    def test_segment_outside_hop_order(self, hops, builder, verifier):
        signatures = builder.build_path(hops)
        order = [h.identifier for h in hops]
        order[3], order[4] = order[4], order[3]
        report = verifier.verify_path(signatures, [h.certificate for h in hops], hops=order)
        assert report.failed_ordinals == [2, 3, 4]
        assert all(f.reason == "segment does not match the path hop order" for f in report.failures)

    def test_discontinuous_path(self, authority, hops, metrics, verifier):
        builder = PathAttestationBuilder(chain_segments=False, metrics=metrics)
        signatures = builder.build_path(hops)
        # a segment from another path with the right ordinal but a different origin
        others = make_hops(authority, 4, base_asn=64000)
        foreign = builder.build_path(others)[2]
        signatures[2] = foreign
        certificates = [h.certificate for h in hops + others]
        report = verifier.verify_path(signatures, certificates)
        assert 2 in report.failed_ordinals
        assert report.failures[0].reason == "segment does not continue from the previous next hop"


class TestSegmentEncoding:
    """Test the canonical segment wire format."""

    def test_header(self, hops, builder):
        encoded = encode_segment(builder.make_segment(0, hops[0], hops[1]))
        assert encoded.startswith(b"PQPS\x01\x02\x00\x00\x00\x00")

    def test_decode_inverts_encode(self, hops, builder):
        signatures = builder.build_path(hops)
        segment = signatures[2].segment
        assert decode_segment(encode_segment(segment)) == segment

    def test_distinct_segments_encode_differently(self):
        base = PathSegment(ordinal=1, origin="AS1", next_hop="AS2", algorithm="ed25519",
                           payload=segment_payload("AS1", "AS2"))
        variants = [
            replace(base, ordinal=2),
            replace(base, origin="AS11"),
            replace(base, next_hop="AS22"),
            replace(base, algorithm="ed448"),
            replace(base, next_hop_key_id="AB"),
            replace(base, previous_digest=b"\x00"),
        ]
        encodings = {encode_segment(s) for s in [base] + variants}
        assert len(encodings) == len(variants) + 1

    def test_unknown_algorithm(self):
        segment = PathSegment(ordinal=0, origin="AS1", next_hop="AS2", algorithm="rsa", payload=b"")
        with pytest.raises(ValueError, match="no path signature suite"):
            encode_segment(segment)

    @pytest.mark.parametrize("raw,match", [
        (b"", "truncated"),
        (b"XXXX\x01\x02\x00\x00\x00\x00", "magic"),
        (b"PQPS\x09\x02\x00\x00\x00\x00", "version"),
        (b"PQPS\x01\x7f\x00\x00\x00\x00", "suite"),
        (b"PQPS\x01\x02\x00\x00\x00\x00\x00\x02\xff\xfe", "UTF-8"),
    ])
    def test_decode_errors(self, raw, match):
        with pytest.raises(DecodeError, match=match):
            decode_segment(raw)

    def test_trailing_bytes(self, hops, builder):
        encoded = encode_segment(builder.make_segment(0, hops[0], hops[1]))
        with pytest.raises(DecodeError, match="trailing"):
            decode_segment(encoded + b"\x00")
