from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterator, Literal, Mapping


AltNameKind = Literal["dns", "ip"]

# Short attribute keys used in PeerCertificate.subject / .issuer
NAME_KEYS: tuple[tuple[str, str], ...] = (
    ("CN", "common_name"),
    ("C", "country"),
    ("ST", "state_or_province"),
    ("L", "locality"),
    ("O", "organization"),
    ("OU", "organizational_unit"),
)


@dataclass(frozen=True)
class AltName:
    kind: AltNameKind
    value: str


@dataclass(frozen=True)
class DistinguishedName:
    common_name: str | None = None
    country: str | None = None
    state_or_province: str | None = None
    locality: str | None = None
    organization: str | None = None
    organizational_unit: str | None = None

    @classmethod
    def from_mapping(cls, attrs: Mapping[str, str] | None) -> DistinguishedName | None:
        """
        Build from a CN/C/ST/L/O/OU mapping. Returns None when none of the
        well-known attributes are present.
        """
        if not attrs:
            return None
        values = {name: attrs.get(key) for key, name in NAME_KEYS}
        if not any(values.values()):
            return None
        return cls(**values)

    def to_dict(self) -> dict[str, str | None]:
        return {name: getattr(self, name) for _, name in NAME_KEYS}


@dataclass(frozen=True)
class PeerCertificate:
    """
    Certificate as presented by the peer. `issuer_certificate` links
    forward to the next certificate in the presented chain and is never
    set on a self-issued certificate.
    """
    subject: Mapping[str, str]
    issuer: Mapping[str, str]
    valid_from: datetime | str
    valid_to: datetime | str
    subjectaltname: str | None = None
    raw: bytes | None = None
    pubkey: bytes | None = None
    serial_number: str | None = None
    fingerprint256: str | None = None
    signature_algorithm: str | None = None
    public_key_type: str | None = None
    modulus: str | None = None
    exponent: str | None = None
    extensions: Mapping[str, Any] = field(default_factory=dict)
    issuer_certificate: PeerCertificate | None = None


@dataclass(frozen=True)
class CertificateRecord:
    """
    Normalized, immutable view of a certificate with derived validity metrics.
    """
    valid_from: datetime
    valid_to: datetime
    days_total: int
    days_left: int
    expired: bool
    subject: DistinguishedName | None
    issuer: DistinguishedName | None
    subject_alt_names: tuple[str, ...] = ()
    alt_names: tuple[AltName, ...] = ()
    subjectaltname: str | None = None
    public_key_b64: str | None = None
    raw_b64: str | None = None
    serial_number: str | None = None
    fingerprint256: str | None = None
    signature_algorithm: str | None = None
    public_key_type: str | None = None
    modulus: str | None = None
    exponent: str | None = None
    extensions: Mapping[str, Any] = field(default_factory=dict)
    issuer_certificate: CertificateRecord | None = None

    @property
    def common_name(self) -> str | None:
        return self.subject.common_name if self.subject else None

    @property
    def chain(self) -> Iterator[CertificateRecord]:
        """Records from this certificate up to the last known issuer."""
        node: CertificateRecord | None = self
        while node is not None:
            yield node
            node = node.issuer_certificate

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid_from": self.valid_from.isoformat(),
            "valid_to": self.valid_to.isoformat(),
            "days_total": self.days_total,
            "days_left": self.days_left,
            "expired": self.expired,
            "subject": self.subject.to_dict() if self.subject else None,
            "issuer": self.issuer.to_dict() if self.issuer else None,
            "subject_alt_names": list(self.subject_alt_names),
            "subjectaltname": self.subjectaltname,
            "public_key_b64": self.public_key_b64,
            "raw_b64": self.raw_b64,
            "serial_number": self.serial_number,
            "fingerprint256": self.fingerprint256,
            "signature_algorithm": self.signature_algorithm,
            "public_key_type": self.public_key_type,
            "extensions": dict(self.extensions),
            "issuer_certificate": (
                self.issuer_certificate.to_dict() if self.issuer_certificate else None
            ),
        }


@dataclass(frozen=True)
class EvaluationReport:
    """
    Outcome of a certificate check. `error` and `code` are only set when the
    certificate could not be retrieved at all.
    """
    valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    certificate: CertificateRecord | None = None
    expired: bool | None = None
    error: str | None = None
    code: str | None = None

    @property
    def days_left(self) -> int | None:
        return self.certificate.days_left if self.certificate else None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "expired": self.expired,
            "certificate": self.certificate.to_dict() if self.certificate else None,
        }
        if self.error is not None:
            out["error"] = self.error
        if self.code is not None:
            out["code"] = self.code
        return out
