from __future__ import annotations

import logging
from datetime import datetime

from .models import AltName, CertificateRecord, DistinguishedName, PeerCertificate
from .parse import decode_alt_names, decode_subject_alt_names, is_self_issued
from .utils import as_utc, b64_der, days_between, parse_cert_time, utc_now

logger = logging.getLogger(__name__)


def _b64(value: bytes | None) -> str | None:
    if isinstance(value, (bytes, bytearray)):
        return b64_der(bytes(value))
    return None


def normalize(cert: PeerCertificate, now: datetime | None = None) -> CertificateRecord:
    """
    Derive a CertificateRecord from a peer certificate.

    `now` defaults to the current UTC time and is shared by the whole chain,
    so `days_left` and `expired` are computed from the same instant.
    """
    now = as_utc(now) if now is not None else utc_now()
    return _normalize(cert, now, seen=set())


def _normalize(cert: PeerCertificate, now: datetime, seen: set[int]) -> CertificateRecord:
    seen.add(id(cert))

    valid_from = parse_cert_time(cert.valid_from)
    valid_to = parse_cert_time(cert.valid_to)

    issuer_record: CertificateRecord | None = None
    parent = cert.issuer_certificate
    if parent is not None:
        if parent is cert or id(parent) in seen or is_self_issued(cert):
            # the root terminates the chain; never embed it as its own issuer
            logger.debug("chain terminated at %s", dict(cert.subject))
        else:
            issuer_record = _normalize(parent, now, seen)

    alt_names: tuple[AltName, ...] = tuple(decode_alt_names(cert.subjectaltname))

    return CertificateRecord(
        valid_from=valid_from,
        valid_to=valid_to,
        days_total=days_between(min(valid_from, valid_to), max(valid_from, valid_to)),
        days_left=days_between(now, valid_to),
        expired=valid_to < now,
        subject=DistinguishedName.from_mapping(cert.subject),
        issuer=DistinguishedName.from_mapping(cert.issuer),
        subject_alt_names=tuple(decode_subject_alt_names(cert.subjectaltname)),
        alt_names=alt_names,
        subjectaltname=cert.subjectaltname,
        public_key_b64=_b64(cert.pubkey),
        raw_b64=_b64(cert.raw),
        serial_number=cert.serial_number,
        fingerprint256=cert.fingerprint256,
        signature_algorithm=cert.signature_algorithm,
        public_key_type=cert.public_key_type,
        modulus=cert.modulus,
        exponent=cert.exponent,
        extensions=dict(cert.extensions),
        issuer_certificate=issuer_record,
    )
