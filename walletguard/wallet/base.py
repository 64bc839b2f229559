"""
Wallet adapter capability interface.

Every adapter follows the same state machine:

    disconnected --connect()--> connected --disconnect()--> disconnected

get_address / sign_message / sign_transaction are only valid while
connected; calling them otherwise raises WalletNotConnectedError.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Union

from ..chains import ChainType
from ..errors import WalletNotConnectedError


@dataclass(frozen=True)
class WalletHandle:
    chain_type: ChainType
    address: Optional[str]
    connected: bool


class WalletAdapter(ABC):
    """Chain-agnostic signer front end."""

    def __init__(self, chain: ChainType):
        self._chain = chain
        self._address: Optional[str] = None
        self._connected = False
        self._lock = threading.RLock()

    @property
    def chain_type(self) -> ChainType:
        return self._chain

    @property
    def handle(self) -> WalletHandle:
        with self._lock:
            return WalletHandle(self._chain, self._address, self._connected)

    def is_connected(self) -> bool:
        return self._connected

    def _require_connected(self) -> str:
        """Address of the connected wallet, else WalletNotConnectedError."""
        with self._lock:
            if not self._connected or self._address is None:
                raise WalletNotConnectedError()
            return self._address

    def get_address(self) -> str:
        return self._require_connected()

    @abstractmethod
    def connect(self) -> str:
        """Connect and return the wallet address."""
        ...

    @abstractmethod
    def disconnect(self) -> None:
        ...

    @abstractmethod
    def sign_message(self, message: Union[str, bytes]) -> str:
        """Sign an arbitrary message; returns the chain's signature encoding."""
        ...

    @abstractmethod
    def sign_transaction(self, transaction: Any) -> Any:
        ...

    def __repr__(self) -> str:
        state = "connected" if self._connected else "disconnected"
        return f"<{type(self).__name__} {self._chain.value} {state}>"


__all__ = ['WalletAdapter', 'WalletHandle']
