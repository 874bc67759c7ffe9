"""
KuCoin Trading - Request Signing.

============================================================
PURPOSE
============================================================
KuCoin request authentication.

SIGNATURE:
    KC-API-SIGN = BASE64(HMAC-SHA256(secret,
                   timestamp + METHOD + path + body))

PASSPHRASE:
    Key version 2: BASE64(HMAC-SHA256(secret, passphrase))
    Other versions: raw passphrase

TIMESTAMP:
    Milliseconds since epoch, generated per attempt. A
    signature is single-use within the exchange's clock-skew
    tolerance; a retry must be re-signed.

============================================================
"""

import base64
import hashlib
import hmac
import time
from typing import Callable, Dict, Optional

from .config import Credentials
from .errors import ConfigurationError
from .types import SignedRequest


# Key versions whose passphrase header is an HMAC digest.
PASSPHRASE_DIGEST_VERSIONS = frozenset({"2"})

HEADER_KEY = "KC-API-KEY"
HEADER_SIGN = "KC-API-SIGN"
HEADER_TIMESTAMP = "KC-API-TIMESTAMP"
HEADER_PASSPHRASE = "KC-API-PASSPHRASE"
HEADER_KEY_VERSION = "KC-API-KEY-VERSION"


def _hmac_base64(message: str, secret: str) -> str:
    digest = hmac.new(
        secret.encode("utf-8"),
        message.encode("utf-8"),
        hashlib.sha256,
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def sign(
    timestamp: str,
    method: str,
    path: str,
    body: str,
    secret: str,
) -> str:
    """
    Compute the KC-API-SIGN value.

    Args:
        timestamp: Milliseconds since epoch, as sent in KC-API-TIMESTAMP
        method: HTTP method (upper-cased here)
        path: Request path including any query string
        body: Exact request body string ("" for GET)
        secret: API secret

    Returns:
        Base64 encoded HMAC-SHA256 signature

    Raises:
        ConfigurationError: If secret is empty
    """
    if not secret:
        raise ConfigurationError("Missing KuCoin API secret", missing=["api_secret"])

    message = f"{timestamp}{method.upper()}{path}{body}"
    return _hmac_base64(message, secret)


def encode_passphrase(
    passphrase: str,
    secret: str,
    key_version: str = "2",
) -> str:
    """
    Compute the KC-API-PASSPHRASE value for a key version.

    Raises:
        ConfigurationError: If passphrase or secret is empty
    """
    missing = [
        name for name, value in (("passphrase", passphrase), ("api_secret", secret))
        if not value
    ]
    if missing:
        raise ConfigurationError(
            f"Missing KuCoin API credentials: {', '.join(missing)}",
            missing=missing,
        )

    if str(key_version) in PASSPHRASE_DIGEST_VERSIONS:
        return _hmac_base64(passphrase, secret)
    return passphrase


def current_timestamp_ms() -> str:
    """Wall-clock milliseconds since epoch, as a string."""
    return str(int(time.time() * 1000))


class RequestSigner:
    """
    Signs requests with one set of credentials.

    Credentials are validated at construction so a misconfigured
    process fails before its first request.
    """

    def __init__(
        self,
        credentials: Credentials,
        clock: Optional[Callable[[], str]] = None,
    ):
        """
        Initialize signer.

        Args:
            credentials: API credentials
            clock: Timestamp source (default: wall clock in ms)
        """
        self._credentials = credentials.validate()
        self._clock = clock or current_timestamp_ms
        self._passphrase_header = encode_passphrase(
            credentials.passphrase,
            credentials.api_secret,
            credentials.key_version,
        )

    @property
    def key_version(self) -> str:
        return self._credentials.key_version

    def sign_request(
        self,
        method: str,
        path: str,
        body: str = "",
        timestamp: Optional[str] = None,
    ) -> SignedRequest:
        """
        Sign a request.

        Args:
            method: HTTP method
            path: Request path with query string
            body: Exact body string that will be transmitted
            timestamp: Override timestamp (default: now)

        Returns:
            SignedRequest
        """
        timestamp = timestamp or self._clock()
        method = method.upper()

        return SignedRequest(
            method=method,
            path=path,
            body=body,
            timestamp=timestamp,
            key_version=self._credentials.key_version,
            signature=sign(timestamp, method, path, body, self._credentials.api_secret),
            passphrase_digest=self._passphrase_header,
        )

    def headers(self, signed: SignedRequest) -> Dict[str, str]:
        """Authentication headers for a signed request."""
        return {
            HEADER_KEY: self._credentials.api_key,
            HEADER_SIGN: signed.signature,
            HEADER_TIMESTAMP: signed.timestamp,
            HEADER_PASSPHRASE: signed.passphrase_digest,
            HEADER_KEY_VERSION: signed.key_version,
            "Content-Type": "application/json",
        }
