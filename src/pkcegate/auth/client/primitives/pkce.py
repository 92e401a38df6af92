"""PKCE (Proof Key for Code Exchange) manager.

Implements RFC 7636 parameter generation to prevent authorization code
interception attacks.
"""

from __future__ import annotations

import base64
import hashlib
import secrets

from pkcegate.auth.client.models.errors import PKCEError
from pkcegate.auth.client.models.security import PKCEParameters

VERIFIER_ENTROPY_BYTES = 32


def base64url_encode(data: bytes) -> str:
    """Base64url-encode bytes without padding (RFC 7636 Appendix A)."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


class PKCEManager:
    """Manages PKCE parameter generation for authorization code flows.

    This implementation follows RFC 7636 requirements:
    - Uses S256 code challenge method (SHA256 + base64url)
    - Generates code verifiers from 32 bytes of cryptographic randomness
    """

    def generate_parameters(self) -> PKCEParameters:
        """Generate new PKCE parameters for an authorization attempt.

        Returns:
            PKCEParameters: Immutable verifier/challenge pair

        Raises:
            PKCEError: If parameter generation fails
        """
        try:
            code_verifier = self.generate_code_verifier()
            code_challenge = self.generate_code_challenge(code_verifier)

            return PKCEParameters(
                code_verifier=code_verifier,
                code_challenge=code_challenge,
                code_challenge_method="S256",
            )

        except Exception as e:
            raise PKCEError(f"Failed to generate PKCE parameters: {e}") from e

    def generate_code_verifier(self) -> str:
        """Generate a cryptographically secure code verifier.

        RFC 7636 Section 4.1 recommends base64url-encoding a 32-octet random
        sequence, which yields a 43-character verifier drawn from the
        unreserved alphabet [A-Z] / [a-z] / [0-9] / "-" / "_".

        Returns:
            A 43-character code verifier
        """
        return base64url_encode(secrets.token_bytes(VERIFIER_ENTROPY_BYTES))

    def generate_code_challenge(self, code_verifier: str) -> str:
        """Generate code challenge from code verifier using S256 method.

        RFC 7636 Section 4.2: For S256, the code challenge is:
        BASE64URL-ENCODE(SHA256(ASCII(code_verifier)))

        Args:
            code_verifier: The code verifier to hash

        Returns:
            Base64url-encoded SHA256 hash of the code verifier
        """
        digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
        return base64url_encode(digest)
