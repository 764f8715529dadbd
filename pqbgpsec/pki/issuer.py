"""Key generation plus certificate request for hop identities."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .. import crypto
from .authority import CertificateAuthority, make_signing_request
from .types import Certificate

logger = logging.getLogger(__name__)

SubjectNameFunc = Callable[[str], Dict[str, str]]


class CertificateIssuer:
    """Generates a key pair per subject and has an authority certify it."""

    def __init__(self, algorithm: str, subject_name_func: Optional[SubjectNameFunc] = None):
        self.algorithm = algorithm
        self.subject_name_func = subject_name_func

    def request_and_issue(
        self,
        authority: CertificateAuthority,
        subject: str,
        subject_name: Optional[Dict[str, str]] = None,
    ) -> Tuple[crypto.KeyPair, Certificate]:
        """Return a fresh key pair for ``subject`` and its certificate.

        Raises KeyGenerationError for an unsupported algorithm; IssuanceError
        from the authority propagates unchanged.
        """
        key_pair = crypto.generate_key_pair(self.algorithm)
        if subject_name is None and self.subject_name_func is not None:
            subject_name = self.subject_name_func(subject)
        request = make_signing_request(key_pair, subject, subject_name)
        certificate = authority.issue_request(request)
        return key_pair, certificate

    def issue_many(
        self,
        authority: CertificateAuthority,
        subjects: Sequence[str],
        max_workers: int = 1,
    ) -> List[Tuple[crypto.KeyPair, Certificate]]:
        """Issue for every subject, preserving input order in the result.

        With ``max_workers > 1`` requests run in a thread pool; the authority
        serializes serial assignment. The first failure is raised once every
        submitted request has finished.
        """
        if max_workers <= 1:
            return [self.request_and_issue(authority, s) for s in subjects]
        logger.debug("Issuing %d certificates with %d workers", len(subjects), max_workers)
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = [pool.submit(self.request_and_issue, authority, s) for s in subjects]
        return [f.result() for f in futures]


__all__ = ["CertificateIssuer"]
