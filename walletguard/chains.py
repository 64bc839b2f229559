"""
Chain selectors supported by WalletGuard.

Every chain belongs to one family; per-chain behavior (address format,
signature scheme, transaction signing, RPC submission) is implemented once
per family and looked up by selector.
"""

from enum import Enum
from typing import Optional, Union

from .errors import UnsupportedChainError


class ChainFamily(Enum):
    """Signature/address families."""
    EVM = "evm"           # 20-byte hex accounts, secp256k1 ECDSA with recovery
    ED25519 = "ed25519"   # base58 public keys, ed25519 signatures


class ChainType(Enum):
    """Supported blockchain selectors."""
    ETHEREUM = "ethereum"
    BNB = "binance"       # BNB Chain; value kept as 'binance' for API compatibility
    POLYGON = "polygon"
    AVALANCHE = "avalanche"
    SOLANA = "solana"

    @property
    def family(self) -> ChainFamily:
        return _CHAIN_FAMILIES[self]

    @property
    def evm_chain_id(self) -> Optional[int]:
        """EIP-155 chain id for mainnet, None outside the EVM family."""
        return _EVM_CHAIN_IDS.get(self)

    @classmethod
    def parse(cls, value: Union['ChainType', str]) -> 'ChainType':
        """
        Resolve a chain selector from an enum member, value or name.

        Raises:
            UnsupportedChainError: selector not recognized
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            key = _ALIASES.get(key, key)
            for member in cls:
                if key in (member.value, member.name.lower()):
                    return member
        raise UnsupportedChainError(value)


_CHAIN_FAMILIES = {
    ChainType.ETHEREUM: ChainFamily.EVM,
    ChainType.BNB: ChainFamily.EVM,
    ChainType.POLYGON: ChainFamily.EVM,
    ChainType.AVALANCHE: ChainFamily.EVM,
    ChainType.SOLANA: ChainFamily.ED25519,
}

_EVM_CHAIN_IDS = {
    ChainType.ETHEREUM: 1,
    ChainType.BNB: 56,
    ChainType.POLYGON: 137,
    ChainType.AVALANCHE: 43114,
}

_ALIASES = {
    'eth': 'ethereum',
    'bsc': 'binance',
    'bnb_chain': 'binance',
    'matic': 'polygon',
    'avax': 'avalanche',
    'sol': 'solana',
}


__all__ = ['ChainFamily', 'ChainType']
