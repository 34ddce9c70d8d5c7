from bearer_server.core.exceptions.base import AppException

# =============================================================================
# Domain Exceptions (raised by codecs and verifiers, caught by BearerServer)
# =============================================================================


class DecodeError(AppException):
    """Sealed value is malformed, foreign, tampered with or structurally invalid."""

    def __init__(self, message: str = "Invalid sealed token", exception: Exception | None = None):
        super().__init__(message, exception)


class VerificationError(AppException):
    """Credentials, code or token id rejected by the verifier."""

    def __init__(self, message: str = "Verification failed", exception: Exception | None = None):
        super().__init__(message, exception)
