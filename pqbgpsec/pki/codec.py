"""
Canonical encoding of certificates and signing requests.

Records are encoded as compact JSON with sorted keys and unpadded base64url
binary fields. The to-be-signed form is the same document without the
``signature`` member, so encoding is stable across processes and Python
versions.
"""

import base64
import binascii
import json
from typing import Any, Dict

from ..errors import DecodeError
from .types import Certificate, SigningRequest


def b64u(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64d(text: str) -> bytes:
    pad = "=" * (-len(text) % 4)
    return base64.b64decode(text + pad, altchars=b"-_", validate=True)


def _dumps(data: Dict[str, Any]) -> bytes:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def certificate_to_dict(cert: Certificate, include_signature: bool = True) -> Dict[str, Any]:
    data = {
        "version": cert.version,
        "serial_number": cert.serial_number,
        "subject": cert.subject,
        "subject_name": dict(sorted(cert.subject_name.items())),
        "issuer": cert.issuer,
        "algorithm": cert.algorithm,
        "public_key": b64u(cert.public_key),
        "signature_algorithm": cert.signature_algorithm,
        "not_before": cert.not_before,
        "not_after": cert.not_after,
        "is_ca": cert.is_ca,
        "key_usage": sorted(cert.key_usage),
        "subject_key_id": cert.subject_key_id,
        "authority_key_id": cert.authority_key_id,
    }
    if include_signature:
        data["signature"] = b64u(cert.signature)
    return data


def tbs_bytes(cert: Certificate) -> bytes:
    """The bytes an issuer signs: every field except the signature."""
    return _dumps(certificate_to_dict(cert, include_signature=False))


def encode_certificate(cert: Certificate) -> bytes:
    return _dumps(certificate_to_dict(cert))


_CERT_FIELDS = {
    "version": int,
    "serial_number": int,
    "subject": str,
    "subject_name": dict,
    "issuer": str,
    "algorithm": str,
    "public_key": str,
    "signature_algorithm": str,
    "not_before": int,
    "not_after": int,
    "is_ca": bool,
    "key_usage": list,
    "subject_key_id": str,
    "authority_key_id": str,
    "signature": str,
}


def certificate_from_dict(data: Dict[str, Any]) -> Certificate:
    if not isinstance(data, dict):
        raise DecodeError("certificate record must be an object")
    for name, expected in _CERT_FIELDS.items():
        if name not in data:
            raise DecodeError(f"certificate missing field: {name}")
        value = data[name]
        # bool is an int subclass; keep the two apart
        if expected is int and isinstance(value, bool):
            raise DecodeError(f"certificate field {name} has wrong type")
        if not isinstance(value, expected):
            raise DecodeError(f"certificate field {name} has wrong type")
    if not all(isinstance(k, str) and isinstance(v, str) for k, v in data["subject_name"].items()):
        raise DecodeError("certificate subject_name must map strings to strings")
    if not all(isinstance(u, str) for u in data["key_usage"]):
        raise DecodeError("certificate key_usage must be a list of strings")
    try:
        public_key = b64d(data["public_key"])
        signature = b64d(data["signature"])
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"certificate binary field malformed: {e}") from e
    return Certificate(
        version=data["version"],
        serial_number=data["serial_number"],
        subject=data["subject"],
        subject_name=dict(data["subject_name"]),
        issuer=data["issuer"],
        algorithm=data["algorithm"],
        public_key=public_key,
        signature_algorithm=data["signature_algorithm"],
        not_before=data["not_before"],
        not_after=data["not_after"],
        is_ca=data["is_ca"],
        key_usage=tuple(data["key_usage"]),
        subject_key_id=data["subject_key_id"],
        authority_key_id=data["authority_key_id"],
        signature=signature,
    )


def decode_certificate(raw: bytes) -> Certificate:
    """Decode bytes produced by :func:`encode_certificate`."""
    try:
        data = json.loads(raw)
    except (UnicodeDecodeError, ValueError) as e:
        raise DecodeError(f"certificate is not valid JSON: {e}") from e
    return certificate_from_dict(data)


def request_tbs_bytes(request: SigningRequest) -> bytes:
    return _dumps({
        "subject": request.subject,
        "subject_name": dict(sorted(request.subject_name.items())),
        "algorithm": request.algorithm,
        "public_key": b64u(request.public_key),
    })


__all__ = [
    "b64u",
    "b64d",
    "certificate_to_dict",
    "certificate_from_dict",
    "tbs_bytes",
    "encode_certificate",
    "decode_certificate",
    "request_tbs_bytes",
]
