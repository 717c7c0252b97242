"""
Address and chain-family classification by shape.

An address is "evm" when it starts with 0x and is 42 characters long, "tron"
when it starts with T and is 34 characters long, and "unknown" otherwise.
No checksum or base58 validation is done. Chain families come from the
CAIP-2 namespace (eip155:* -> evm, tron:* -> tron).
"""

from __future__ import annotations

from enum import Enum
from typing import Any

EVM_PREFIX = "0x"
EVM_LENGTH = 42
TRON_PREFIX = "T"
TRON_LENGTH = 34

CAIP2_EVM_NAMESPACE = "eip155:"
CAIP2_TRON_NAMESPACE = "tron:"


class AddressType(str, Enum):
    EVM = "evm"
    TRON = "tron"
    UNKNOWN = "unknown"


def classify_address(addr: Any) -> AddressType:
    """Classify an address string into evm, tron or unknown by prefix and length."""
    if not addr or not isinstance(addr, str):
        return AddressType.UNKNOWN
    if addr.startswith(EVM_PREFIX) and len(addr) == EVM_LENGTH:
        return AddressType.EVM
    if addr.startswith(TRON_PREFIX) and len(addr) == TRON_LENGTH:
        return AddressType.TRON
    return AddressType.UNKNOWN


def chain_type_from_caip2(caip2: Any) -> AddressType:
    """Chain family of a CAIP-2 identifier; empty or unrecognized -> unknown."""
    if not caip2 or not isinstance(caip2, str):
        return AddressType.UNKNOWN
    if caip2.startswith(CAIP2_EVM_NAMESPACE):
        return AddressType.EVM
    if caip2.startswith(CAIP2_TRON_NAMESPACE):
        return AddressType.TRON
    return AddressType.UNKNOWN
