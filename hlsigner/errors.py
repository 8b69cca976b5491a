"""
Centralized Exceptions - signing pipeline error taxonomy.
Every failure in the pipeline surfaces as exactly one of these.
"""

from typing import Dict, Any, Optional


class SignerError(Exception):
    """Base exception for the signing pipeline."""

    def __init__(self, message: str, error_code: str = "UNKNOWN", details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class MalformedInputError(SignerError):
    """Action, nonce, address or key rejected before any cryptography runs."""

    def __init__(self, message: str = "Malformed input", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "MALFORMED_INPUT", details)


class EncodingError(SignerError):
    """Value or type cannot be encoded (unknown EIP-712 type, missing struct, unencodable wire value)."""

    def __init__(self, message: str = "Encoding failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "ENCODING_ERROR", details)


class RecoveryFailure(SignerError):
    """No recovery id reproduces the expected public key."""

    def __init__(self, message: str = "Public key recovery failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "RECOVERY_FAILURE", details)


class SignatureFormatError(SignerError):
    """Signature is not a well-formed 65-byte r||s||v value."""

    def __init__(self, message: str = "Invalid signature format", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "SIGNATURE_FORMAT", details)


class SignerTimeoutError(SignerError):
    """Wallet did not return a signature in time."""

    def __init__(self, message: str = "Signer timed out", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "SIGNER_TIMEOUT", details)


class ConfigurationError(SignerError):
    """Configuration error."""

    def __init__(self, message: str = "Configuration error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFIG_ERROR", details)


def sanitize_error_message(message: str) -> str:
    """Sanitize error messages to prevent information leakage."""
    sensitive_patterns = [
        "password", "secret", "private",
        "api_key", "access_token", "refresh_token"
    ]

    sanitized = message
    for pattern in sensitive_patterns:
        if pattern.lower() in sanitized.lower():
            sanitized = sanitized.replace(pattern, "***")

    return sanitized


def create_structured_error_response(error: Exception) -> Dict[str, Any]:
    """Create structured error response for logging and transport callers."""
    if isinstance(error, SignerError):
        return {
            "error_type": error.error_code,
            "message": sanitize_error_message(error.message),
            "details": error.details,
        }
    return {
        "error_type": "UNKNOWN_ERROR",
        "message": sanitize_error_message(str(error)),
        "details": {},
    }
