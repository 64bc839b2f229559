"""
Adapters over externally injected signing contexts (browser extensions or
any out-of-process signer).

WalletGuard does not implement the extension. Hosts implement
InjectedProvider for whatever signer is available in their environment and
register it in an InjectedProviderRegistry; the factory then binds adapters
to it.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Union

import base58

from ..chains import ChainFamily, ChainType
from ..errors import ProviderUnavailableError
from .base import WalletAdapter

logger = logging.getLogger(__name__)


class InjectedProvider(ABC):
    """External signing context, e.g. an EVM or Solana browser wallet."""

    @abstractmethod
    def request_accounts(self) -> List[str]:
        """Ask the user for account access; returns granted addresses."""
        ...

    @abstractmethod
    def sign_message(self, message: bytes) -> Union[bytes, str]:
        ...

    @abstractmethod
    def sign_transaction(self, transaction: Any) -> Any:
        ...

    def disconnect(self) -> None:
        """Release the session. Providers without sessions need not override."""


class InjectedProviderRegistry:
    """Chain selector -> InjectedProvider available in this environment."""

    def __init__(self):
        self._providers: Dict[ChainType, InjectedProvider] = {}
        self._lock = threading.Lock()

    def register(self, chain: Union[ChainType, str], provider: InjectedProvider) -> None:
        resolved = ChainType.parse(chain)
        with self._lock:
            self._providers[resolved] = provider
        logger.debug(f"Registered injected provider for {resolved.value}")

    def register_family(self, family: ChainFamily, provider: InjectedProvider) -> None:
        """Register one provider for every chain of a family."""
        for chain in ChainType:
            if chain.family is family:
                self.register(chain, provider)

    def unregister(self, chain: Union[ChainType, str]) -> None:
        with self._lock:
            self._providers.pop(ChainType.parse(chain), None)

    def get(self, chain: Union[ChainType, str]) -> Optional[InjectedProvider]:
        return self._providers.get(ChainType.parse(chain))


class InjectedProviderAdapter(WalletAdapter):
    """Delegates connect and signing to an InjectedProvider."""

    def __init__(self, provider: InjectedProvider, chain: ChainType):
        super().__init__(chain)
        self._provider = provider

    def connect(self) -> str:
        accounts = self._provider.request_accounts()
        if not accounts:
            raise ProviderUnavailableError(
                f"Injected wallet for {self.chain_type.value} granted no accounts"
            )
        with self._lock:
            self._address = accounts[0]
            self._connected = True
        logger.info(f"Connected injected {self.chain_type.value} wallet {self._address}")
        return self._address

    def disconnect(self) -> None:
        with self._lock:
            was_connected = self._connected
            self._address = None
            self._connected = False
        if was_connected:
            self._provider.disconnect()
            logger.info(f"Disconnected injected {self.chain_type.value} wallet")

    def sign_message(self, message: Union[str, bytes]) -> str:
        self._require_connected()
        payload = message.encode('utf-8') if isinstance(message, str) else message
        return self._encode_signature(self._provider.sign_message(payload))

    def sign_transaction(self, transaction: Any) -> Any:
        self._require_connected()
        return self._provider.sign_transaction(transaction)

    def _encode_signature(self, signature: Union[bytes, str]) -> str:
        if isinstance(signature, str):
            return signature
        return bytes(signature).hex()


class EvmInjectedAdapter(InjectedProviderAdapter):
    """Signatures as 0x-prefixed hex."""

    def _encode_signature(self, signature: Union[bytes, str]) -> str:
        if isinstance(signature, str):
            return signature if signature.startswith('0x') else '0x' + signature
        return '0x' + bytes(signature).hex()


class SolanaInjectedAdapter(InjectedProviderAdapter):
    """Signatures as base58."""

    def _encode_signature(self, signature: Union[bytes, str]) -> str:
        if isinstance(signature, str):
            return signature
        return base58.b58encode(bytes(signature)).decode('ascii')


INJECTED_ADAPTERS = {
    ChainFamily.EVM: EvmInjectedAdapter,
    ChainFamily.ED25519: SolanaInjectedAdapter,
}


__all__ = [
    'InjectedProvider',
    'InjectedProviderRegistry',
    'InjectedProviderAdapter',
    'EvmInjectedAdapter',
    'SolanaInjectedAdapter',
    'INJECTED_ADAPTERS',
]
