"""
Example: Post-Quantum BGPsec Chain of Custody

This example walks the full flow step by step:
- Establishing a root CA (Falcon-512 when liboqs is installed, else Ed25519)
- Issuing router certificates for AS65000..AS65015
- Signing one path segment per hop transition
- Validating every certificate and verifying every segment
- Detecting a hop that signs with a key its certificate does not certify
- Revoking a router certificate
"""

import logging
import sys
import os
from dataclasses import replace

# Add parent directory to path so we can import pqbgpsec
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pqbgpsec import crypto
from pqbgpsec.config import ChainConfig
from pqbgpsec.monitoring import get_registry
from pqbgpsec.pki import ChainValidator, InMemoryRevocationProvider, ValidationOptions
from pqbgpsec.scenario import ChainScenario


def pick_algorithm() -> str:
    if "falcon512" in crypto.available_algorithms():
        return "falcon512"
    print("   ⚠️  Falcon-512 unavailable (install the 'pq' extra); falling back to ed25519")
    return "ed25519"


def main():
    logging.basicConfig(level=logging.WARNING)
    print("🔐 Post-Quantum BGPsec Chain Demo")
    print("=" * 50)

    print("\n1. Checking signature scheme support...")
    algorithm = pick_algorithm()
    print(f"   Using {algorithm}")
    config = ChainConfig(algorithm=algorithm)

    print("\n2. Establishing root CA...")
    scenario = ChainScenario(config)
    authority = scenario.establish_root()
    print(f"   ✓ {authority.subject} (key {authority.key_id[:16]}...)")

    print(f"\n3. Issuing {config.hop_count + 1} router certificates...")
    hops = scenario.issue_hop_certificates()
    for hop in hops[:3]:
        print(f"   ✓ {hop.identifier}: serial {hop.certificate.serial_number:#x}")
    print(f"   ... {hops[-1].identifier}: serial {hops[-1].certificate.serial_number:#x}")

    print("\n4. Signing path segments...")
    signatures = scenario.sign_segments()
    print(f"   ✓ {len(signatures)} segments, {hops[0].identifier} → {hops[-1].identifier}")

    print("\n5. Verifying the chain...")
    result = scenario.verify()
    print(f"   Certificates:  {result.certificate_report.summary()}")
    print(f"   Path segments: {result.path_report.summary()}")
    if result.success:
        print("   ✅ Complete chain validates end-to-end")
    else:
        print("   ❌ Chain verification failed")
        return

    print("\n6. Testing a hop that signs with an uncertified key...")
    rogue = ChainScenario(config)
    rogue.establish_root()
    rogue.issue_hop_certificates()
    rogue.hops[7] = replace(rogue.hops[7], key_pair=crypto.generate_key_pair(algorithm))
    rogue.sign_segments()
    rogue_result = rogue.verify()
    for failure in rogue_result.path_report.failures:
        print(f"   ✅ Segment {failure.ordinal} {failure.origin} → {failure.next_hop} rejected: {failure.reason}")

    print("\n7. Testing revocation...")
    provider = InMemoryRevocationProvider()
    provider.revoke(hops[3].certificate)
    validator = ChainValidator(ValidationOptions(revocation_provider=provider))
    report = validator.validate_all(result.certificates, result.authority_certificate)
    for failure in report.failures:
        print(f"   ✅ {failure.subject} rejected: {failure.reason}")

    print("\n8. Metrics:")
    metrics = get_registry()
    print(f"   certificates issued: {metrics.get('pqbgpsec_certificates_issued_total', algorithm=algorithm)}")
    print(f"   segments signed:     {metrics.get('pqbgpsec_segments_signed_total', algorithm=algorithm)}")
    print(f"   segments invalid:    {metrics.get('pqbgpsec_segment_verifications_total', result='invalid')}")

    print("\n🎉 Path attestation demo completed successfully!")


if __name__ == "__main__":
    main()
