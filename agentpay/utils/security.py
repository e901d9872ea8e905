"""
Security utilities.

Helpers for keeping wallet data out of logs.
"""


def mask_address(address: str | None) -> str:
    """
    Mask wallet address for logging: 0x1234...5678

    Args:
        address: Wallet address to mask

    Returns:
        Masked address showing first 6 and last 4 characters

    Examples:
        >>> mask_address("0x1234567890abcdef1234567890abcdef12345678")
        '0x1234...5678'
        >>> mask_address(None)
        '***'
        >>> mask_address("short")
        '***'
    """
    if not address or len(address) < 10:
        return "***"
    return f"{address[:6]}...{address[-4:]}"


def mask_tx_hash(tx_hash: str | None) -> str:
    """Shorten a transaction hash for log lines: 0xabcdef12...9876."""
    if not tx_hash or len(tx_hash) < 16:
        return tx_hash or "***"
    return f"{tx_hash[:10]}...{tx_hash[-4:]}"
