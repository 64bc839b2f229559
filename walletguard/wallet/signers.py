"""
Local signing backends, one per chain family.

EVM:     eth_account (secp256k1, EIP-191 personal_sign, EIP-155 transactions)
ed25519: PyNaCl for messages, solders for Solana transactions

Private key encodings:
- EVM: 0x-prefixed 32-byte hex
- ed25519: base58 of the 64-byte secret key (seed || public key), the
  format wallets export; a base58 32-byte seed is also accepted
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Union

import base58
import nacl.signing
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_keys.exceptions import ValidationError as KeyValidationError
from solders.keypair import Keypair
from solders.transaction import Transaction, VersionedTransaction

from ..chains import ChainFamily, ChainType
from ..constants import Crypto
from ..errors import InvalidKeyError

logger = logging.getLogger(__name__)

MessageLike = Union[str, bytes]


def _message_bytes(message: MessageLike) -> bytes:
    if isinstance(message, bytes):
        return message
    return message.encode('utf-8')


class Signer(ABC):
    """Holds key material for one account and signs with it."""

    family: ChainFamily

    @property
    @abstractmethod
    def address(self) -> str:
        ...

    @abstractmethod
    def sign_message(self, message: MessageLike) -> str:
        ...

    @abstractmethod
    def sign_transaction(self, transaction: Any, chain: ChainType) -> Any:
        ...

    @abstractmethod
    def export_private_key(self) -> str:
        ...

    @classmethod
    @abstractmethod
    def generate_private_key(cls) -> str:
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.address}>"


# =============================================================================
# EVM
# =============================================================================

class EvmSigner(Signer):
    family = ChainFamily.EVM

    def __init__(self, private_key: Union[str, bytes]):
        try:
            self._account = Account.from_key(private_key)
        except (ValueError, TypeError, KeyValidationError) as e:
            # Never echo key material
            raise InvalidKeyError(f"Invalid EVM private key: {type(e).__name__}") from None

    @property
    def address(self) -> str:
        return self._account.address

    def sign_message(self, message: MessageLike) -> str:
        """EIP-191 personal_sign; 0x-prefixed 65-byte hex signature."""
        if isinstance(message, bytes):
            signable = encode_defunct(primitive=message)
        else:
            signable = encode_defunct(text=message)
        signed = self._account.sign_message(signable)
        return '0x' + bytes(signed.signature).hex()

    def sign_transaction(self, transaction: Dict[str, Any], chain: ChainType) -> str:
        """
        Sign a transaction dict. chainId defaults to the chain's mainnet id.

        Returns:
            0x-prefixed raw transaction, ready for eth_sendRawTransaction
        """
        if not isinstance(transaction, dict):
            raise TypeError("EVM transactions must be dicts")
        tx = dict(transaction)
        if 'chainId' not in tx and chain.evm_chain_id is not None:
            tx['chainId'] = chain.evm_chain_id
        signed = self._account.sign_transaction(tx)
        return '0x' + bytes(signed.raw_transaction).hex()

    def export_private_key(self) -> str:
        return '0x' + bytes(self._account.key).hex()

    @classmethod
    def generate_private_key(cls) -> str:
        return '0x' + bytes(Account.create().key).hex()


# =============================================================================
# ED25519 (Solana)
# =============================================================================

def decode_ed25519_private_key(private_key: Union[str, bytes]) -> bytes:
    """base58 (or raw) 64-byte secret key or 32-byte seed -> 32-byte seed."""
    try:
        raw = base58.b58decode(private_key) if isinstance(private_key, str) else bytes(private_key)
    except (ValueError, TypeError):
        raise InvalidKeyError("Invalid ed25519 private key: not base58") from None

    if len(raw) == Crypto.ED25519_SEED_BYTES:
        return raw
    if len(raw) == Crypto.ED25519_SECRET_KEY_BYTES:
        seed, public_key = raw[:32], raw[32:]
        derived = bytes(nacl.signing.SigningKey(seed).verify_key)
        if derived != public_key:
            raise InvalidKeyError("Invalid ed25519 secret key: public half does not match seed")
        return seed
    raise InvalidKeyError(f"Invalid ed25519 private key length: {len(raw)} bytes")


class Ed25519Signer(Signer):
    family = ChainFamily.ED25519

    def __init__(self, private_key: Union[str, bytes]):
        seed = decode_ed25519_private_key(private_key)
        self._signing_key = nacl.signing.SigningKey(seed)
        self._keypair = Keypair.from_seed(seed)
        self._address = str(self._keypair.pubkey())

    @property
    def address(self) -> str:
        return self._address

    @property
    def keypair(self) -> Keypair:
        return self._keypair

    def sign_message(self, message: MessageLike) -> str:
        """Detached ed25519 signature over the raw bytes, base58-encoded."""
        signature = self._signing_key.sign(_message_bytes(message)).signature
        return base58.b58encode(signature).decode('ascii')

    def sign_transaction(self, transaction: Any, chain: ChainType) -> Any:
        """
        Sign a solders Transaction (in place, using its recent blockhash) or
        VersionedTransaction (returns a new signed instance).
        """
        if isinstance(transaction, Transaction):
            transaction.sign([self._keypair], transaction.message.recent_blockhash)
            return transaction
        if isinstance(transaction, VersionedTransaction):
            return VersionedTransaction(transaction.message, [self._keypair])
        raise TypeError(
            f"Unsupported Solana transaction type: {type(transaction).__name__}"
        )

    def export_private_key(self) -> str:
        secret = bytes(self._signing_key) + bytes(self._signing_key.verify_key)
        return base58.b58encode(secret).decode('ascii')

    @classmethod
    def generate_private_key(cls) -> str:
        signing_key = nacl.signing.SigningKey.generate()
        secret = bytes(signing_key) + bytes(signing_key.verify_key)
        return base58.b58encode(secret).decode('ascii')


# =============================================================================
# REGISTRY
# =============================================================================

SIGNERS = {
    ChainFamily.EVM: EvmSigner,
    ChainFamily.ED25519: Ed25519Signer,
}


def create_signer(chain: ChainType, private_key: Union[str, bytes]) -> Signer:
    return SIGNERS[chain.family](private_key)


def generate_private_key(chain: ChainType) -> str:
    return SIGNERS[chain.family].generate_private_key()


__all__ = [
    'Signer',
    'EvmSigner',
    'Ed25519Signer',
    'SIGNERS',
    'create_signer',
    'generate_private_key',
    'decode_ed25519_private_key',
]
