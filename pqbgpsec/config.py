"""
Runtime configuration for chain building.

Defaults reproduce the reference scenario: a Falcon-512 root CA, a router at
AS65000 and 15 path hops (AS65001..AS65015). Every field can be overridden
through ``PQBGPSEC_*`` environment variables via :meth:`ChainConfig.from_env`.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Dict, Optional

logger = logging.getLogger(__name__)

ENV_PREFIX = "PQBGPSEC_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class ChainConfig:
    """Configuration for the CA, hop issuance and path signing."""
    algorithm: str = "falcon512"

    # Root authority
    ca_subject: str = "Post-Quantum BGPsec CA"
    ca_organization: str = "PQ BGPsec"
    country: str = "US"
    ca_validity_days: int = 3650
    initial_serial: int = 0x1000

    # Hops
    organization: str = "PQ BGPsec ISP"
    base_asn: int = 65000
    hop_count: int = 15
    validity_days: int = 365

    # Path signing
    chain_segments: bool = True
    max_workers: int = 1

    # Outputs
    output_dir: str = "./pq-bgpsec-output"
    ledger_url: Optional[str] = None
    log_level: str = "INFO"

    def __post_init__(self):
        if self.hop_count < 1:
            raise ValueError("hop_count must be at least 1")
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if self.initial_serial < 1:
            raise ValueError("initial_serial must be positive")

    @property
    def hop_identifiers(self) -> list[str]:
        """Router plus path hops, in path order."""
        return [f"AS{self.base_asn + i}" for i in range(self.hop_count + 1)]

    def hop_subject_name(self, identifier: str) -> Dict[str, str]:
        return {"CN": f"{identifier} Router", "O": self.organization, "C": self.country}

    def ca_subject_name(self) -> Dict[str, str]:
        return {"CN": self.ca_subject, "O": self.ca_organization, "C": self.country}

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None, **overrides) -> "ChainConfig":
        """Build a config from ``PQBGPSEC_<FIELD>`` variables.

        Explicit keyword overrides win over the environment.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            values[f.name] = _coerce(f.name, f.default, raw)
        values.update(overrides)
        if values:
            logger.debug("Config overrides: %s", sorted(values))
        return cls(**values)

    def with_overrides(self, **changes) -> "ChainConfig":
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def _coerce(name: str, default, raw: str):
    if isinstance(default, bool):
        lowered = raw.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ValueError(f"invalid boolean for {ENV_PREFIX}{name.upper()}: {raw!r}")
    if isinstance(default, int):
        try:
            return int(raw, 0)
        except ValueError:
            raise ValueError(f"invalid integer for {ENV_PREFIX}{name.upper()}: {raw!r}") from None
    return raw


__all__ = ["ChainConfig", "ENV_PREFIX"]
