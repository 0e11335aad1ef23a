"""Error taxonomy for link auditing.

Detectors raise these internally; each component decides whether to capture
them into its result (redirect resolver, crawler, fingerprinter) or let them
propagate to the orchestrator, which turns them into a skipped link.
"""


class LinkAuditError(Exception):
    """Base class for all link audit errors."""


class NetworkError(LinkAuditError):
    """DNS failure, connection refused, TLS failure, etc."""


class RequestTimeout(NetworkError):
    """An outbound request exceeded its timeout."""

    def __init__(self, url: str, timeout: float):
        self.url = url
        self.timeout = timeout
        super().__init__(f"Request timeout after {int(timeout * 1000)}ms: {url}")


class HttpError(LinkAuditError):
    """Destination answered with a 4xx/5xx status."""

    def __init__(self, status_code: int, reason: str = ""):
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"HTTP {status_code}: {reason}".rstrip(": "))


class ProtocolError(LinkAuditError):
    """Redirect chain violated HTTP redirect semantics."""


class MissingLocationError(ProtocolError):
    pass


class InvalidLocationError(ProtocolError):
    pass


class RedirectLoopError(ProtocolError):
    pass


class TooManyRedirectsError(ProtocolError):
    pass


class ParseError(LinkAuditError):
    """Malformed HTML. Callers degrade to partial or empty results."""


class DetectorFailure(LinkAuditError):
    """One of the per-link detectors raised unexpectedly."""

    def __init__(self, detector: str, url: str, cause: BaseException):
        self.detector = detector
        self.url = url
        self.cause = cause
        super().__init__(f"{detector} failed for {url}: {cause}")
