from __future__ import annotations

import logging

from .config import FetchOptions
from .errors import CertificateError, CertificateErrorCode
from .evaluate import evaluate, is_certificate_near_expiry, is_self_signed_certificate
from .fetch import fetch_certificate
from .hostname import is_ip_address, verify_hostname
from .info import get_certificate, get_certificate_info
from .models import (
    AltName,
    CertificateRecord,
    DistinguishedName,
    EvaluationReport,
    PeerCertificate,
)
from .normalize import normalize
from .parse import link_chain, peer_certificate_from_der

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "AltName",
    "CertificateError",
    "CertificateErrorCode",
    "CertificateRecord",
    "DistinguishedName",
    "EvaluationReport",
    "FetchOptions",
    "PeerCertificate",
    "evaluate",
    "fetch_certificate",
    "get_certificate",
    "get_certificate_info",
    "is_certificate_near_expiry",
    "is_ip_address",
    "is_self_signed_certificate",
    "link_chain",
    "normalize",
    "peer_certificate_from_der",
    "verify_hostname",
    "__version__",
]
