"""
Wallet Adapter Factory - picks an adapter by chain and delivery mode.
"""

import logging
from typing import Dict, Optional, Tuple, Union

from ..chains import ChainType
from ..constants import Timeouts
from ..errors import ProviderUnavailableError
from .base import WalletAdapter
from .injected import INJECTED_ADAPTERS, InjectedProviderRegistry
from .local import LocalKeyAdapter
from .signers import generate_private_key

logger = logging.getLogger(__name__)


class WalletAdapterFactory:
    """
    Args:
        providers: Injected signing contexts available in this environment
        endpoints: Default RPC endpoint per chain for local adapters
        rpc_timeout: Per-request RPC timeout for local adapters
    """

    def __init__(
        self,
        providers: Optional[InjectedProviderRegistry] = None,
        endpoints: Optional[Dict[ChainType, str]] = None,
        rpc_timeout: float = Timeouts.RPC_REQUEST,
    ):
        self.providers = providers if providers is not None else InjectedProviderRegistry()
        self.endpoints = dict(endpoints or {})
        self.rpc_timeout = rpc_timeout

    def create_injected(self, chain: Union[ChainType, str]) -> WalletAdapter:
        """
        Adapter bound to the injected provider for `chain`.

        Raises:
            UnsupportedChainError: unknown chain selector
            ProviderUnavailableError: no provider registered for the chain
        """
        resolved = ChainType.parse(chain)
        provider = self.providers.get(resolved)
        if provider is None:
            raise ProviderUnavailableError(
                f"No injected wallet provider available for {resolved.value}"
            )
        return INJECTED_ADAPTERS[resolved.family](provider, resolved)

    def create_local(
        self,
        private_key: Union[str, bytes],
        chain: Union[ChainType, str],
        endpoint: Optional[str] = None,
    ) -> LocalKeyAdapter:
        """LocalKeyAdapter; endpoint defaults to the configured one for the chain."""
        resolved = ChainType.parse(chain)
        return LocalKeyAdapter(
            private_key,
            resolved,
            endpoint=endpoint or self.endpoints.get(resolved),
            rpc_timeout=self.rpc_timeout,
        )

    def generate_ephemeral(self, chain: Union[ChainType, str]) -> Tuple[LocalKeyAdapter, str]:
        """
        Fresh keypair wrapped in a LocalKeyAdapter.

        Returns:
            (adapter, private_key). Route the key through EphemeralKeyVault
            rather than holding on to it.
        """
        resolved = ChainType.parse(chain)
        private_key = generate_private_key(resolved)
        adapter = self.create_local(private_key, resolved)
        logger.info(f"Generated ephemeral {resolved.value} wallet {adapter.get_address()}")
        return adapter, private_key


__all__ = ['WalletAdapterFactory']
