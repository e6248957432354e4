from __future__ import annotations

import re

from .config import WILDCARD_PREFIX
from .models import AltName, CertificateRecord, PeerCertificate
from .parse import decode_alt_names

_IPV4_RE = re.compile(r"^(\d{1,3}\.){3}\d{1,3}$")
_IPV6_RE = re.compile(r"^([0-9a-fA-F]{1,4}:){7}[0-9a-fA-F]{1,4}$")


def is_valid_ipv4(value: str) -> bool:
    if not _IPV4_RE.match(value):
        return False
    return all(0 <= int(part) <= 255 for part in value.split("."))


def is_valid_ipv6(value: str) -> bool:
    # Deliberately loose: full 8-group form, or anything using "::" compression.
    return bool(_IPV6_RE.match(value)) or "::" in value


def is_ip_address(value: str) -> bool:
    return is_valid_ipv4(value) or is_valid_ipv6(value)


def _name_matches(cert_name: str, host: str) -> bool:
    if cert_name == host:
        return True

    if is_ip_address(host):
        return False

    if cert_name.startswith(WILDCARD_PREFIX) and len(host.split(".")) == len(cert_name.split(".")):
        cert_domain = cert_name[len(WILDCARD_PREFIX):]
        host_domain = host.split(".", 1)[1] if "." in host else ""
        return host_domain == cert_domain

    return False


def _identity(cert: PeerCertificate | CertificateRecord) -> tuple[str | None, list[AltName]]:
    if isinstance(cert, CertificateRecord):
        return cert.common_name, list(cert.alt_names)
    common_name = cert.subject.get("CN") if cert.subject else None
    return common_name, decode_alt_names(cert.subjectaltname)


def verify_hostname(host: str, cert: PeerCertificate | CertificateRecord) -> bool:
    """
    Return True if `host` (domain name or IP literal) is covered by the
    certificate's CN or its SAN entries.
    """
    common_name, alt_names = _identity(cert)

    if common_name and _name_matches(common_name, host):
        return True

    if is_ip_address(host):
        return any(n.kind == "ip" and n.value == host for n in alt_names)

    return any(n.kind == "dns" and _name_matches(n.value, host) for n in alt_names)
