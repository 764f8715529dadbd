"""
On-disk artifacts of a chain build.

Layout under the output directory::

    ca/ca.crt                     root certificate
    routers/router-<n>.crt        hop certificates, n in path order
    routers/router-<n>.ski        subject key identifier of hop n
    path/path-segment-<n>.bin     canonical segment encoding
    path/path-segment-<n>.sig     raw detached signature
    path/manifest.json            ordinal -> files and signer key id
    bgpsec-path-info.txt          human-readable summary

Private keys are never written.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Union

from .errors import DecodeError
from .path import PathSignature, decode_segment, encode_segment
from .pki import Certificate, decode_certificate, encode_certificate

logger = logging.getLogger(__name__)

MANIFEST_VERSION = 1


@dataclass
class LoadedArtifacts:
    authority_certificate: Certificate
    certificates: List[Certificate] = field(default_factory=list)
    signatures: List[PathSignature] = field(default_factory=list)


def _path_info(result) -> str:
    root = result.authority_certificate
    hops = result.hops
    lines = [
        "# Post-Quantum BGPsec Path",
        f"# All signatures use {root.algorithm}",
        f"# Path: {hops[0].identifier} → ... → {hops[-1].identifier}" if hops else "# Path: (empty)",
        "",
        f"CA Certificate: ca/ca.crt ({root.subject}, key {root.subject_key_id})",
    ]
    indent = "  "
    for i, hop in enumerate(hops):
        cert = hop.certificate
        lines.append(f"{indent}└─ signs → Router {i} ({hop.identifier}): routers/router-{i}.crt "
                     f"serial {cert.serial_number:#x}")
        indent += "    "
    lines += [
        "",
        f"Certificates: {result.certificate_report.summary()}",
        f"Path segments: {result.path_report.summary()}",
        f"Result: {'SUCCESS' if result.success else 'FAILED'}",
        "",
    ]
    return "\n".join(lines)


def write_artifacts(result, out_dir: Union[str, Path]) -> Path:
    """Write certificates, segments, signatures and a summary for ``result``."""
    out = Path(out_dir)
    ca_dir, router_dir, path_dir = out / "ca", out / "routers", out / "path"
    for d in (ca_dir, router_dir, path_dir):
        d.mkdir(parents=True, exist_ok=True)

    (ca_dir / "ca.crt").write_bytes(encode_certificate(result.authority_certificate))
    for i, hop in enumerate(result.hops):
        (router_dir / f"router-{i}.crt").write_bytes(encode_certificate(hop.certificate))
        (router_dir / f"router-{i}.ski").write_text(hop.certificate.subject_key_id + "\n", encoding="utf-8")

    entries = []
    for sig in result.signatures:
        n = sig.segment.ordinal
        (path_dir / f"path-segment-{n}.bin").write_bytes(encode_segment(sig.segment))
        (path_dir / f"path-segment-{n}.sig").write_bytes(sig.signature)
        entries.append({
            "ordinal": n,
            "segment": f"path-segment-{n}.bin",
            "signature": f"path-segment-{n}.sig",
            "signer_key_id": sig.signer_key_id,
        })
    manifest = {"version": MANIFEST_VERSION, "segments": entries}
    (path_dir / "manifest.json").write_text(json.dumps(manifest, indent=2), encoding="utf-8")
    (out / "bgpsec-path-info.txt").write_text(_path_info(result), encoding="utf-8")
    logger.info("Wrote artifacts for %d hops and %d segments to %s", len(result.hops), len(entries), out)
    return out


def load_artifacts(out_dir: Union[str, Path]) -> LoadedArtifacts:
    """Read back a directory written by :func:`write_artifacts`.

    Raises DecodeError for malformed records and FileNotFoundError for
    missing files.
    """
    out = Path(out_dir)
    loaded = LoadedArtifacts(authority_certificate=decode_certificate((out / "ca" / "ca.crt").read_bytes()))

    router_files = sorted(
        (out / "routers").glob("router-*.crt"),
        key=lambda p: int(p.stem.split("-", 1)[1]),
    )
    loaded.certificates = [decode_certificate(p.read_bytes()) for p in router_files]

    path_dir = out / "path"
    try:
        manifest = json.loads((path_dir / "manifest.json").read_text(encoding="utf-8"))
    except ValueError as e:
        raise DecodeError(f"path manifest is not valid JSON: {e}") from e
    if not isinstance(manifest, dict) or manifest.get("version") != MANIFEST_VERSION:
        raise DecodeError("unsupported path manifest")
    entries = manifest.get("segments", [])
    if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
        raise DecodeError("path manifest segments must be a list of objects")
    for entry in entries:
        ordinal = entry.get("ordinal")
        if not isinstance(ordinal, int) or isinstance(ordinal, bool):
            raise DecodeError(f"manifest entry ordinal must be an integer: {ordinal!r}")
    for entry in sorted(entries, key=lambda e: e["ordinal"]):
        try:
            segment_file, signature_file, key_id = entry["segment"], entry["signature"], entry["signer_key_id"]
        except KeyError as e:
            raise DecodeError(f"malformed manifest entry: {entry!r}") from e
        for name in (segment_file, signature_file):
            # manifest may only name files inside path/
            if not isinstance(name, str) or Path(name).name != name:
                raise DecodeError(f"invalid file name in manifest: {name!r}")
        segment = decode_segment((path_dir / segment_file).read_bytes())
        loaded.signatures.append(PathSignature(
            segment=segment,
            signer_key_id=key_id,
            signature=(path_dir / signature_file).read_bytes(),
        ))
    logger.debug("Loaded %d certificates and %d signatures from %s",
                 len(loaded.certificates), len(loaded.signatures), out)
    return loaded


__all__ = ["LoadedArtifacts", "write_artifacts", "load_artifacts"]
