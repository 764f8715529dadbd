"""
Command line entry point.

    pqbgpsec build [--algorithm falcon512] [--hops 15] [--out DIR]
    pqbgpsec verify DIR
    pqbgpsec algorithms

``build`` runs the full scenario and writes artifacts; ``verify`` re-checks a
written artifact directory from scratch. Exit status is 1 on any failure.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from . import __version__, crypto
from .artifacts import load_artifacts, write_artifacts
from .config import ChainConfig
from .errors import PQBGPsecError
from .ledgerstore import create_ledger_store, save_authority
from .path import PathAttestationVerifier
from .pki import ChainValidator, ValidationOptions
from .scenario import ChainScenario

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pqbgpsec", description="Post-quantum BGPsec chain builder")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default=None, help="logging level (default from PQBGPSEC_LOG_LEVEL or INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    b = sub.add_parser("build", help="build CA, hop certificates and path signatures")
    b.add_argument("--algorithm", help="signature scheme, e.g. falcon512, ed25519")
    b.add_argument("--hops", type=int, dest="hop_count", help="number of path hops after the router")
    b.add_argument("--base-asn", type=int, help="AS number of the router (hop 0)")
    b.add_argument("--out", dest="output_dir", help="artifact output directory")
    b.add_argument("--workers", type=int, dest="max_workers", help="parallel certificate issuance workers")
    b.add_argument("--ledger", dest="ledger_url", help="ledger store: directory, file://, redis://")
    b.add_argument("--no-chain", action="store_true", help="do not bind segments to the previous signature")
    b.add_argument("--json", action="store_true", help="print the result summary as JSON")

    v = sub.add_parser("verify", help="re-verify a written artifact directory")
    v.add_argument("directory")
    v.add_argument("--no-validity", action="store_true", help="skip validity period checks")

    sub.add_parser("algorithms", help="list signature schemes and their availability")
    return parser


def _cmd_build(args, config: ChainConfig) -> int:
    overrides = {
        "algorithm": args.algorithm,
        "hop_count": args.hop_count,
        "base_asn": args.base_asn,
        "output_dir": args.output_dir,
        "max_workers": args.max_workers,
        "ledger_url": args.ledger_url,
    }
    if args.no_chain:
        overrides["chain_segments"] = False
    config = config.with_overrides(**overrides)

    scenario = ChainScenario(config)
    result = scenario.run()
    write_artifacts(result, config.output_dir)

    if config.ledger_url:
        asyncio.run(_save_ledger(config.ledger_url, scenario))

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(f"Algorithm:     {result.authority_certificate.algorithm}")
        print(f"Certificates:  {result.certificate_report.summary()}")
        print(f"Path segments: {result.path_report.summary()}")
        print(f"Artifacts:     {config.output_dir}")
        print("SUCCESS: complete chain validates end-to-end" if result.success else "FAILED")
    return 0 if result.success else 1


async def _save_ledger(url: str, scenario: ChainScenario) -> None:
    store = create_ledger_store(url)
    try:
        await save_authority(store, scenario.authority)
    finally:
        await store.close()


def _cmd_verify(args) -> int:
    loaded = load_artifacts(args.directory)
    options = ValidationOptions(check_validity_period=not args.no_validity)
    validator = ChainValidator(options)
    root = loaded.authority_certificate

    root_result = validator.validate_root(root)
    if not root_result.valid:
        print(f"✗ root certificate invalid: {root_result.reason}")
    cert_report = validator.validate_all(loaded.certificates, root)
    for failure in cert_report.failures:
        print(f"✗ certificate {failure.subject} ({failure.serial_number:#x}): {failure.reason}")
    path_report = PathAttestationVerifier().verify_path(
        loaded.signatures, loaded.certificates, hops=[c.subject for c in loaded.certificates]
    )
    for failure in path_report.failures:
        print(f"✗ segment {failure.ordinal} {failure.origin} → {failure.next_hop}: {failure.reason}")
    if not path_report.complete:
        print(f"✗ path attests {path_report.total} of {path_report.expected} hop transitions")

    print(f"Certificates:  {cert_report.summary()}")
    print(f"Path segments: {path_report.summary()}")
    ok = root_result.valid and cert_report.all_valid and path_report.all_valid
    print("✓ chain valid" if ok else "✗ chain invalid")
    return 0 if ok else 1


def _cmd_algorithms() -> int:
    available = set(crypto.available_algorithms())
    for name in crypto.registered_algorithms():
        scheme = crypto.get_scheme(name)
        kind = "post-quantum" if scheme.post_quantum else "classical"
        status = "available" if name in available else "unavailable"
        print(f"{name:<12} {kind:<13} {status}")
    return 0


def _log_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValueError(f"unknown log level: {name!r}")
    return level


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    try:
        config = ChainConfig.from_env()
        level = _log_level(args.log_level or config.log_level)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    logging.basicConfig(level=level)

    try:
        if args.command == "build":
            return _cmd_build(args, config)
        if args.command == "verify":
            return _cmd_verify(args)
        return _cmd_algorithms()
    except (PQBGPsecError, OSError, ValueError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
