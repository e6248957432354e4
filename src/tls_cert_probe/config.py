from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any


DEFAULT_HTTPS_PORT = 443
DEFAULT_TIMEOUT_MS = 5000

MIN_PORT = 1
MAX_PORT = 65535

MILLISECONDS_PER_DAY = 86_400_000

NEAR_EXPIRY_DAYS = 30
# Current public-CA maximum lifetime (CA/B Forum baseline requirements).
MAX_VALIDITY_DAYS = 398
MIN_RSA_KEY_SIZE = 2048

DNS_PREFIX = "DNS:"
IP_ADDRESS_PREFIX = "IP Address:"
WILDCARD_PREFIX = "*."

WEAK_SIGNATURE_ALGORITHMS = frozenset(
    {
        "md5WithRSAEncryption",
        "sha1WithRSAEncryption",
        "md5WithRSA",
        "sha1WithRSA",
    }
)


@dataclass(frozen=True)
class FetchOptions:
    """
    Connection settings shared by the fetcher and the facades.
    `timeout` is in milliseconds.
    """
    port: int = DEFAULT_HTTPS_PORT
    timeout: int = DEFAULT_TIMEOUT_MS
    detailed: bool = False
    verify_trust: bool = False

    def merged(self, **overrides: Any) -> FetchOptions:
        # None means "keep the default"
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)


FETCH_OPTIONS = FetchOptions()

# The info path always wants the issuer links and does its own checks.
INFO_OPTIONS = FetchOptions(detailed=True, verify_trust=False)
