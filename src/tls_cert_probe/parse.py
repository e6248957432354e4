from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Iterable

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID, SignatureAlgorithmOID

from .config import DNS_PREFIX, IP_ADDRESS_PREFIX
from .models import AltName, PeerCertificate
from .utils import fingerprint

logger = logging.getLogger(__name__)


_NAME_OIDS = (
    ("CN", NameOID.COMMON_NAME),
    ("C", NameOID.COUNTRY_NAME),
    ("ST", NameOID.STATE_OR_PROVINCE_NAME),
    ("L", NameOID.LOCALITY_NAME),
    ("O", NameOID.ORGANIZATION_NAME),
    ("OU", NameOID.ORGANIZATIONAL_UNIT_NAME),
)

# OpenSSL long names, which is what the weak-algorithm check matches against
_SIGNATURE_NAMES = {
    SignatureAlgorithmOID.RSA_WITH_MD5: "md5WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA1: "sha1WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA224: "sha224WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA256: "sha256WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA384: "sha384WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA512: "sha512WithRSAEncryption",
    SignatureAlgorithmOID.RSASSA_PSS: "rsassaPss",
    SignatureAlgorithmOID.ECDSA_WITH_SHA1: "ecdsa-with-SHA1",
    SignatureAlgorithmOID.ECDSA_WITH_SHA224: "ecdsa-with-SHA224",
    SignatureAlgorithmOID.ECDSA_WITH_SHA256: "ecdsa-with-SHA256",
    SignatureAlgorithmOID.ECDSA_WITH_SHA384: "ecdsa-with-SHA384",
    SignatureAlgorithmOID.ECDSA_WITH_SHA512: "ecdsa-with-SHA512",
    SignatureAlgorithmOID.ED25519: "ED25519",
    SignatureAlgorithmOID.ED448: "ED448",
}


def _name_to_dict(name: x509.Name) -> dict[str, str]:
    out: dict[str, str] = {}
    for key, oid in _NAME_OIDS:
        attrs = name.get_attributes_for_oid(oid)
        if attrs:
            value = attrs[0].value
            out[key] = value if isinstance(value, str) else value.decode("utf-8", "replace")
    return out


def _subjectaltname(cert: x509.Certificate) -> str | None:
    try:
        ext = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        return None
    entries: list[str] = []
    for gn in ext.value:
        if isinstance(gn, x509.DNSName):
            entries.append(f"{DNS_PREFIX}{gn.value}")
        elif isinstance(gn, x509.IPAddress):
            entries.append(f"{IP_ADDRESS_PREFIX}{gn.value}")
        elif isinstance(gn, x509.RFC822Name):
            entries.append(f"email:{gn.value}")
        elif isinstance(gn, x509.UniformResourceIdentifier):
            entries.append(f"URI:{gn.value}")
    return ", ".join(entries)


_KEY_USAGE_FLAGS = (
    "digital_signature",
    "content_commitment",
    "key_encipherment",
    "data_encipherment",
    "key_agreement",
    "key_cert_sign",
    "crl_sign",
)


def _extension(cert: x509.Certificate, ext_type: type) -> Any:
    try:
        return cert.extensions.get_extension_for_class(ext_type).value
    except x509.ExtensionNotFound:
        return None


def _key_usage(ku: x509.KeyUsage | None) -> list[str]:
    if ku is None:
        return []
    flags = [name for name in _KEY_USAGE_FLAGS if getattr(ku, name)]
    # encipher_only / decipher_only raise unless key_agreement is set
    if ku.key_agreement:
        flags += [name for name in ("encipher_only", "decipher_only") if getattr(ku, name)]
    return flags


def _extensions(cert: x509.Certificate) -> dict[str, Any]:
    bc = _extension(cert, x509.BasicConstraints)
    eku = _extension(cert, x509.ExtendedKeyUsage)
    ski = _extension(cert, x509.SubjectKeyIdentifier)
    aki = _extension(cert, x509.AuthorityKeyIdentifier)
    return {
        "ca": bool(bc and bc.ca),
        "key_usage": _key_usage(_extension(cert, x509.KeyUsage)),
        "ext_key_usage": [oid.dotted_string for oid in eku] if eku else [],
        "ski": ski.digest.hex() if ski else None,
        "aki": aki.key_identifier.hex() if aki and aki.key_identifier else None,
    }


def _public_key(cert: x509.Certificate) -> Any:
    # key types cryptography cannot load still leave the rest parseable
    try:
        return cert.public_key()
    except (ValueError, UnsupportedAlgorithm) as e:
        logger.debug("public key not loadable: %s", e)
        return None


def _sig_alg(cert: x509.Certificate) -> str:
    oid = cert.signature_algorithm_oid
    return _SIGNATURE_NAMES.get(oid, oid.dotted_string)


def peer_certificate_from_der(der: bytes) -> PeerCertificate:
    """
    Parse a DER certificate into the shape the rest of the package works on.
    """
    cert = x509.load_der_x509_certificate(der)
    pk = _public_key(cert)

    modulus = exponent = None
    if isinstance(pk, rsa.RSAPublicKey):
        numbers = pk.public_numbers()
        modulus = format(numbers.n, "X")
        exponent = hex(numbers.e)

    pubkey = None
    if pk is not None:
        pubkey = pk.public_bytes(
            serialization.Encoding.DER,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )

    return PeerCertificate(
        subject=_name_to_dict(cert.subject),
        issuer=_name_to_dict(cert.issuer),
        valid_from=cert.not_valid_before_utc,
        valid_to=cert.not_valid_after_utc,
        subjectaltname=_subjectaltname(cert),
        raw=der,
        pubkey=pubkey,
        serial_number=format(cert.serial_number, "X"),
        fingerprint256=fingerprint(der),
        signature_algorithm=_sig_alg(cert),
        public_key_type=pk.__class__.__name__ if pk is not None else None,
        modulus=modulus,
        exponent=exponent,
        extensions=_extensions(cert),
    )


def is_self_issued(cert: PeerCertificate) -> bool:
    return bool(cert.subject) and dict(cert.subject) == dict(cert.issuer)


def link_chain(certs: Iterable[PeerCertificate]) -> PeerCertificate | None:
    """
    Link a presented chain (leaf first) into forward issuer references.

    Each certificate points at the next one whose subject matches its issuer.
    Linking stops at a self-issued certificate, so a root never becomes its
    own issuer, and at the first certificate with no matching successor.
    """
    pending = list(certs)
    if not pending:
        return None

    path = [pending.pop(0)]
    while not is_self_issued(path[-1]):
        wanted = dict(path[-1].issuer)
        idx = next((i for i, c in enumerate(pending) if dict(c.subject) == wanted), None)
        if idx is None:
            break
        path.append(pending.pop(idx))

    if pending:
        logger.debug("ignoring %d unrelated certificate(s) in presented chain", len(pending))

    # Rebuild from the root down since the dataclasses are frozen.
    linked: PeerCertificate | None = None
    for cert in reversed(path):
        linked = replace(cert, issuer_certificate=linked)
    return linked


def split_subjectaltname(value: str | None) -> list[str]:
    if not value:
        return []
    return [entry for entry in value.split(", ") if entry]


def decode_alt_names(value: str | None) -> list[AltName]:
    """Typed DNS / IP entries; anything else is dropped."""
    out: list[AltName] = []
    for entry in split_subjectaltname(value):
        if entry.startswith(DNS_PREFIX):
            out.append(AltName("dns", entry[len(DNS_PREFIX):].strip()))
        elif entry.startswith(IP_ADDRESS_PREFIX):
            out.append(AltName("ip", entry[len(IP_ADDRESS_PREFIX):].strip()))
    return out


def decode_subject_alt_names(value: str | None) -> list[str]:
    """Display list: known prefixes stripped, unknown entries kept verbatim."""
    out: list[str] = []
    for entry in split_subjectaltname(value):
        for prefix in (DNS_PREFIX, IP_ADDRESS_PREFIX):
            if entry.startswith(prefix):
                entry = entry[len(prefix):].strip()
                break
        out.append(entry)
    return out
