from __future__ import annotations

from datetime import datetime, timedelta

from .config import (
    MAX_VALIDITY_DAYS,
    MIN_RSA_KEY_SIZE,
    NEAR_EXPIRY_DAYS,
    WEAK_SIGNATURE_ALGORITHMS,
)
from .hostname import verify_hostname
from .models import CertificateRecord, EvaluationReport, PeerCertificate
from .utils import as_utc, days_between, parse_cert_time, utc_now


def is_certificate_near_expiry(
    valid_to: datetime | str,
    warning_days: int = NEAR_EXPIRY_DAYS,
    now: datetime | None = None,
) -> bool:
    now = as_utc(now) if now is not None else utc_now()
    return parse_cert_time(valid_to) - now <= timedelta(days=warning_days)


def _names(cert: PeerCertificate | CertificateRecord) -> tuple[dict, dict]:
    if isinstance(cert, CertificateRecord):
        subject = cert.subject.to_dict() if cert.subject else {}
        issuer = cert.issuer.to_dict() if cert.issuer else {}
        return subject, issuer
    return dict(cert.subject), dict(cert.issuer)


def _cn_key(cert: PeerCertificate | CertificateRecord) -> str:
    return "common_name" if isinstance(cert, CertificateRecord) else "CN"


def is_self_signed_certificate(cert: PeerCertificate | CertificateRecord) -> bool:
    """
    Heuristic only: equal subject and issuer Common Names, or equal full
    names when either CN is missing, so two empty names count as
    self-signed. No signature is checked.
    """
    subject, issuer = _names(cert)
    key = _cn_key(cert)
    if subject.get(key) and issuer.get(key):
        return subject[key] == issuer[key]
    return subject == issuer


def rsa_key_size(modulus: str | None) -> int | None:
    if not modulus:
        return None
    return len(modulus) * 4


def evaluate(
    record: CertificateRecord,
    host: str | None = None,
    now: datetime | None = None,
) -> EvaluationReport:
    """
    Run every rule against `record` and collect errors and warnings.

    Errors make the certificate invalid; warnings are informational. All
    rules always run, so the report lists every finding at once.
    """
    now = as_utc(now) if now is not None else utc_now()
    errors: list[str] = []
    warnings: list[str] = []

    expired = now > record.valid_to
    days_left = days_between(now, record.valid_to)

    if now < record.valid_from:
        errors.append("Certificate is not yet valid")

    if expired:
        errors.append("Certificate has expired")

    if host is not None and not verify_hostname(host, record):
        errors.append(
            f'Hostname "{host}" does not match the certificate\'s '
            f"Common Name (CN) or Subject Alternative Names (SANs)"
        )

    if is_self_signed_certificate(record):
        errors.append("Certificate is self-signed")

    if not expired and 0 < days_left <= NEAR_EXPIRY_DAYS:
        warnings.append(f"Certificate expires in {days_left} days")

    if not record.common_name:
        warnings.append("Certificate does not have a Common Name (CN)")

    if record.issuer is None:
        warnings.append("Certificate is missing issuer information")

    if not record.subject_alt_names:
        warnings.append("Certificate is missing Subject Alternative Names (SANs)")

    if record.days_total < 1:
        warnings.append("Certificate has an unusually short validity period")

    if record.days_total > MAX_VALIDITY_DAYS:
        warnings.append(
            f"Certificate has an unusually long validity period ({record.days_total} days)"
        )

    if record.signature_algorithm and record.signature_algorithm in WEAK_SIGNATURE_ALGORITHMS:
        warnings.append(f"Certificate uses a weak signature algorithm ({record.signature_algorithm})")

    key_size = rsa_key_size(record.modulus) if record.exponent else None
    if key_size is not None and key_size < MIN_RSA_KEY_SIZE:
        warnings.append(f"Certificate uses a weak RSA key size ({key_size} bits)")

    return EvaluationReport(
        valid=not errors,
        errors=tuple(errors),
        warnings=tuple(warnings),
        certificate=record,
        expired=expired,
    )
