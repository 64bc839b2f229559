"""
Multi-chain wallet signing: adapters, signers and the adapter factory.
"""

from .base import WalletAdapter, WalletHandle
from .signers import Signer, EvmSigner, Ed25519Signer, create_signer, generate_private_key
from .injected import (
    InjectedProvider,
    InjectedProviderRegistry,
    InjectedProviderAdapter,
    EvmInjectedAdapter,
    SolanaInjectedAdapter,
)
from .local import LocalKeyAdapter
from .rpc import JsonRpcClient, EvmSubmitter, SolanaSubmitter, submit_and_confirm
from .factory import WalletAdapterFactory

__all__ = [
    'WalletAdapter',
    'WalletHandle',
    'Signer',
    'EvmSigner',
    'Ed25519Signer',
    'create_signer',
    'generate_private_key',
    'InjectedProvider',
    'InjectedProviderRegistry',
    'InjectedProviderAdapter',
    'EvmInjectedAdapter',
    'SolanaInjectedAdapter',
    'LocalKeyAdapter',
    'JsonRpcClient',
    'EvmSubmitter',
    'SolanaSubmitter',
    'submit_and_confirm',
    'WalletAdapterFactory',
]
