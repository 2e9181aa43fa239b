"""Адреса аккаунтов и контрактов: нормализация в EIP-55 checksum форму."""

from typing import Final

from web3 import Web3

NULL_ADDRESS: Final[str] = "0x0000000000000000000000000000000000000000"


def normalize_address(value: str) -> str:
    """
    Приведение адреса к checksum форме.

    Raises:
        ValueError: если value не является 20-байтовым hex адресом
    """
    if not isinstance(value, str) or not Web3.is_address(value):
        raise ValueError(f"Invalid address: {value!r}")
    return Web3.to_checksum_address(value)


def same_address(a: str, b: str) -> bool:
    return a.lower() == b.lower()


def is_null_address(value: str) -> bool:
    return same_address(value, NULL_ADDRESS)
