"""Wallet signature utilities built on EIP-191 ``personal_sign`` recovery."""
from __future__ import annotations

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import is_checksum_address, is_hex_address


def recover_signer(message: str, signature_hex: str) -> str:
    """Recover the address that produced an EIP-191 signature.

    Args:
        message: Exact text that was signed by the wallet.
        signature_hex: 0x-prefixed 65-byte signature.

    Returns:
        The checksummed signer address.

    Raises:
        ValueError: If the signature cannot be decoded or recovered.
    """
    signable = encode_defunct(text=message)
    try:
        return Account.recover_message(signable, signature=signature_hex)
    except Exception as err:
        raise ValueError(f"Signature recovery failed: {err}") from err


def is_valid_address(address: str) -> bool:
    """Return True for 0x-prefixed 20-byte addresses with a valid checksum.

    Single-case addresses carry no checksum and are accepted as-is. This is
    looser than EIP-4361, which requires the EIP-55 checksummed form; wallets
    that lowercase the address still sign in.
    """
    if not is_hex_address(address):
        return False
    body = address[2:]
    if body == body.lower() or body == body.upper():
        return True
    return is_checksum_address(address)
