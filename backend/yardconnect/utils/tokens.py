import secrets

VERIFICATION_TOKEN_BYTES = 32


def generate_verification_token() -> str:
    """Return a 64-character hex token (256 bits from the OS CSPRNG)."""
    return secrets.token_hex(VERIFICATION_TOKEN_BYTES)
