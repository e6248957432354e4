from __future__ import annotations

from enum import Enum
from typing import Final


class CertificateErrorCode(str, Enum):
    """Stable error identifiers surfaced to callers."""

    TIMEOUT = "TIMEOUT"
    INVALID_PORT = "INVALID_PORT"
    CERT_ERROR = "CERT_ERROR"
    MISSING_CERTIFICATE = "MISSING_CERTIFICATE"

    # X.509 verification failures reported by the platform handshake
    UNABLE_TO_GET_ISSUER_CERT = "UNABLE_TO_GET_ISSUER_CERT"
    UNABLE_TO_GET_CRL = "UNABLE_TO_GET_CRL"
    UNABLE_TO_DECRYPT_CERT_SIGNATURE = "UNABLE_TO_DECRYPT_CERT_SIGNATURE"
    UNABLE_TO_DECRYPT_CRL_SIGNATURE = "UNABLE_TO_DECRYPT_CRL_SIGNATURE"
    UNABLE_TO_DECODE_ISSUER_PUBLIC_KEY = "UNABLE_TO_DECODE_ISSUER_PUBLIC_KEY"
    CERT_SIGNATURE_FAILURE = "CERT_SIGNATURE_FAILURE"
    CRL_SIGNATURE_FAILURE = "CRL_SIGNATURE_FAILURE"
    CERT_NOT_YET_VALID = "CERT_NOT_YET_VALID"
    CERT_HAS_EXPIRED = "CERT_HAS_EXPIRED"
    CRL_NOT_YET_VALID = "CRL_NOT_YET_VALID"
    CRL_HAS_EXPIRED = "CRL_HAS_EXPIRED"
    ERROR_IN_CERT_NOT_BEFORE_FIELD = "ERROR_IN_CERT_NOT_BEFORE_FIELD"
    ERROR_IN_CERT_NOT_AFTER_FIELD = "ERROR_IN_CERT_NOT_AFTER_FIELD"
    ERROR_IN_CRL_LAST_UPDATE_FIELD = "ERROR_IN_CRL_LAST_UPDATE_FIELD"
    ERROR_IN_CRL_NEXT_UPDATE_FIELD = "ERROR_IN_CRL_NEXT_UPDATE_FIELD"
    OUT_OF_MEM = "OUT_OF_MEM"
    DEPTH_ZERO_SELF_SIGNED_CERT = "DEPTH_ZERO_SELF_SIGNED_CERT"
    SELF_SIGNED_CERT_IN_CHAIN = "SELF_SIGNED_CERT_IN_CHAIN"
    UNABLE_TO_GET_ISSUER_CERT_LOCALLY = "UNABLE_TO_GET_ISSUER_CERT_LOCALLY"
    UNABLE_TO_VERIFY_LEAF_SIGNATURE = "UNABLE_TO_VERIFY_LEAF_SIGNATURE"
    CERT_CHAIN_TOO_LONG = "CERT_CHAIN_TOO_LONG"
    CERT_REVOKED = "CERT_REVOKED"
    INVALID_CA = "INVALID_CA"
    PATH_LENGTH_EXCEEDED = "PATH_LENGTH_EXCEEDED"
    INVALID_PURPOSE = "INVALID_PURPOSE"
    CERT_UNTRUSTED = "CERT_UNTRUSTED"
    CERT_REJECTED = "CERT_REJECTED"
    HOSTNAME_MISMATCH = "HOSTNAME_MISMATCH"


_C = CertificateErrorCode

# OpenSSL X509_V_ERR_* values as exposed by ssl.SSLCertVerificationError.verify_code
OPENSSL_VERIFY_CODES: Final[dict[int, CertificateErrorCode]] = {
    2: _C.UNABLE_TO_GET_ISSUER_CERT,
    3: _C.UNABLE_TO_GET_CRL,
    4: _C.UNABLE_TO_DECRYPT_CERT_SIGNATURE,
    5: _C.UNABLE_TO_DECRYPT_CRL_SIGNATURE,
    6: _C.UNABLE_TO_DECODE_ISSUER_PUBLIC_KEY,
    7: _C.CERT_SIGNATURE_FAILURE,
    8: _C.CRL_SIGNATURE_FAILURE,
    9: _C.CERT_NOT_YET_VALID,
    10: _C.CERT_HAS_EXPIRED,
    11: _C.CRL_NOT_YET_VALID,
    12: _C.CRL_HAS_EXPIRED,
    13: _C.ERROR_IN_CERT_NOT_BEFORE_FIELD,
    14: _C.ERROR_IN_CERT_NOT_AFTER_FIELD,
    15: _C.ERROR_IN_CRL_LAST_UPDATE_FIELD,
    16: _C.ERROR_IN_CRL_NEXT_UPDATE_FIELD,
    17: _C.OUT_OF_MEM,
    18: _C.DEPTH_ZERO_SELF_SIGNED_CERT,
    19: _C.SELF_SIGNED_CERT_IN_CHAIN,
    20: _C.UNABLE_TO_GET_ISSUER_CERT_LOCALLY,
    21: _C.UNABLE_TO_VERIFY_LEAF_SIGNATURE,
    22: _C.CERT_CHAIN_TOO_LONG,
    23: _C.CERT_REVOKED,
    24: _C.INVALID_CA,
    25: _C.PATH_LENGTH_EXCEEDED,
    26: _C.INVALID_PURPOSE,
    27: _C.CERT_UNTRUSTED,
    28: _C.CERT_REJECTED,
    62: _C.HOSTNAME_MISMATCH,
}


def code_for(value: int | str | None) -> CertificateErrorCode:
    """
    Resolve a platform error code to a catalog member.

    Integers are OpenSSL verify codes, strings are matched by name.
    Anything unrecognizable is CERT_ERROR.
    """
    if isinstance(value, int):
        return OPENSSL_VERIFY_CODES.get(value, CertificateErrorCode.CERT_ERROR)
    if isinstance(value, str) and value:
        try:
            return CertificateErrorCode(value)
        except ValueError:
            return CertificateErrorCode.CERT_ERROR
    return CertificateErrorCode.CERT_ERROR


class CertificateError(RuntimeError):
    """Raised by the fetcher when no usable certificate could be retrieved."""

    def __init__(
        self,
        message: str,
        code: CertificateErrorCode = CertificateErrorCode.CERT_ERROR,
    ) -> None:
        self.code = code
        self.message = message
        super().__init__(message)

    @property
    def kind(self) -> str:
        return self.code.value

    def __repr__(self) -> str:
        return f"CertificateError({self.kind}: {self.message})"
