from __future__ import annotations

import logging
from datetime import datetime

from .config import FETCH_OPTIONS, INFO_OPTIONS, FetchOptions
from .errors import CertificateError
from .evaluate import evaluate
from .fetch import fetch_certificate
from .models import EvaluationReport
from .normalize import normalize
from .utils import as_utc, utc_now

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR = "An unexpected error occurred while retrieving the certificate."


def _failed(host: str, exc: Exception) -> EvaluationReport:
    if isinstance(exc, CertificateError):
        logger.warning("certificate fetch for %s failed: %s (%s)", host, exc.message, exc.kind)
        return EvaluationReport(valid=False, error=exc.message, code=exc.kind)
    logger.exception("unexpected failure checking %s", host)
    return EvaluationReport(valid=False, error=UNEXPECTED_ERROR)


def get_certificate(
    host: str,
    port: int | None = None,
    timeout: int | None = None,
    detailed: bool | None = None,
    verify_trust: bool | None = None,
    *,
    options: FetchOptions | None = None,
    now: datetime | None = None,
) -> EvaluationReport:
    """
    Fetch and normalize the certificate without running any checks.
    Never raises; failures come back as `valid=False` with `error`/`code`.
    """
    opts = (options or FETCH_OPTIONS).merged(
        port=port, timeout=timeout, detailed=detailed, verify_trust=verify_trust
    )
    try:
        peer = fetch_certificate(
            host,
            port=opts.port,
            timeout=opts.timeout,
            detailed=opts.detailed,
            verify_trust=opts.verify_trust,
        )
        record = normalize(peer, now=now)
    except Exception as e:
        return _failed(host, e)
    return EvaluationReport(valid=True, certificate=record, expired=record.expired)


def get_certificate_info(
    host: str,
    port: int | None = None,
    timeout: int | None = None,
    detailed: bool | None = None,
    verify_trust: bool | None = None,
    *,
    options: FetchOptions | None = None,
    now: datetime | None = None,
) -> EvaluationReport:
    """
    Fetch the certificate of `host`, normalize it and evaluate it, including
    a hostname check against `host`.

    Defaults: port 443, 5000 ms timeout, full chain, no trust verification.
    Never raises: a certificate that cannot be retrieved yields
    `EvaluationReport(valid=False, error=..., code=...)`.

    Example:
        >>> report = get_certificate_info("example.com")
        >>> if not report.valid:
        ...     print(report.error or report.errors)
    """
    opts = (options or INFO_OPTIONS).merged(
        port=port, timeout=timeout, detailed=detailed, verify_trust=verify_trust
    )
    # one instant for both the derived metrics and the rules
    now = as_utc(now) if now is not None else utc_now()
    try:
        peer = fetch_certificate(
            host,
            port=opts.port,
            timeout=opts.timeout,
            detailed=opts.detailed,
            verify_trust=opts.verify_trust,
        )
        report = evaluate(normalize(peer, now=now), host=host, now=now)
    except Exception as e:
        return _failed(host, e)

    logger.info(
        "checked %s:%d valid=%s errors=%d warnings=%d",
        host, opts.port, report.valid, len(report.errors), len(report.warnings),
    )
    return report
