"""
Per-chain capability implementations used by the risk engine.

Two small interfaces, one implementation per chain family:

- AddressValidator: syntactic (and, for ed25519, curve) validation
- SignatureVerifier: cryptographic verification of a signed message

A ChainRegistry maps chain selectors onto these implementations. Adding a
chain means registering implementations, not editing the engine.
"""

import logging
import re
import threading
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional, Union

import base58
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_keys.exceptions import BadSignature, ValidationError as KeyValidationError
from eth_utils import is_checksum_address, is_checksum_formatted_address
from nacl.bindings import crypto_core_ed25519_is_valid_point
from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey

from ..chains import ChainFamily, ChainType
from ..constants import Crypto
from ..errors import UnsupportedChainError

logger = logging.getLogger(__name__)

MessageLike = Union[str, bytes]

_EVM_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def _message_bytes(message: MessageLike) -> bytes:
    if isinstance(message, bytes):
        return message
    return message.encode('utf-8')


class AddressValidator(ABC):
    """Checks that an address is well-formed for a chain family."""

    family: ChainFamily

    @abstractmethod
    def is_valid_address(self, address: str) -> bool:
        ...


class SignatureVerifier(ABC):
    """Verifies a message signature against a claimed signer."""

    family: ChainFamily

    @abstractmethod
    def verify(self, message: MessageLike, signature: str, signer: str) -> bool:
        """
        Returns:
            True only when `signature` is a valid signature of `message` by
            `signer` (address or public key, depending on the family).
            Malformed input returns False.
        """
        ...


# =============================================================================
# EVM FAMILY (Ethereum, BNB Chain, Polygon, Avalanche C-Chain)
# =============================================================================

class EvmAddressValidator(AddressValidator):
    """0x-prefixed 20-byte hex; EIP-55 checksum enforced for mixed case."""

    family = ChainFamily.EVM

    def is_valid_address(self, address: str) -> bool:
        if not isinstance(address, str) or not _EVM_ADDRESS_RE.match(address):
            return False
        if is_checksum_formatted_address(address):
            return is_checksum_address(address)
        return True


class EvmSignatureVerifier(SignatureVerifier):
    """EIP-191 personal_sign recovery compared to the claimed address."""

    family = ChainFamily.EVM

    @staticmethod
    def decode_signature(signature: str) -> Optional[bytes]:
        """Hex (optionally 0x-prefixed) r || s || v, or None."""
        if not isinstance(signature, str):
            return None
        text = signature[2:] if signature[:2] in ('0x', '0X') else signature
        try:
            raw = bytes.fromhex(text)
        except ValueError:
            return None
        if len(raw) != Crypto.EVM_SIGNATURE_BYTES:
            return None
        return raw

    def recover_signer(self, message: MessageLike, signature: bytes) -> str:
        if isinstance(message, bytes):
            signable = encode_defunct(primitive=message)
        else:
            signable = encode_defunct(text=message)
        return Account.recover_message(signable, signature=signature)

    def verify(self, message: MessageLike, signature: str, signer: str) -> bool:
        raw = self.decode_signature(signature)
        if raw is None:
            return False
        try:
            recovered = self.recover_signer(message, raw)
        except (ValueError, TypeError, BadSignature, KeyValidationError) as e:
            logger.debug(f"EVM signature recovery failed: {e}")
            return False
        return recovered.lower() == str(signer).lower()


# =============================================================================
# ED25519 FAMILY (Solana)
# =============================================================================

def decode_ed25519_public_key(value: str) -> Optional[bytes]:
    """base58 public key -> 32 bytes on the curve, or None."""
    if not isinstance(value, str) or not value:
        return None
    try:
        raw = base58.b58decode(value)
    except ValueError:
        return None
    if len(raw) != Crypto.ED25519_PUBLIC_KEY_BYTES:
        return None
    if not crypto_core_ed25519_is_valid_point(raw):
        return None
    return raw


class Ed25519AddressValidator(AddressValidator):
    """base58 string decoding to a 32-byte point accepted by ed25519."""

    family = ChainFamily.ED25519

    def is_valid_address(self, address: str) -> bool:
        return decode_ed25519_public_key(address) is not None


class Ed25519SignatureVerifier(SignatureVerifier):
    """Direct ed25519 verification over the raw message bytes."""

    family = ChainFamily.ED25519

    def verify(self, message: MessageLike, signature: str, signer: str) -> bool:
        public_key = decode_ed25519_public_key(signer)
        if public_key is None:
            return False

        try:
            signature_bytes = base58.b58decode(signature)
        except (ValueError, TypeError):
            return False
        if len(signature_bytes) != Crypto.ED25519_SIGNATURE_BYTES:
            return False

        try:
            VerifyKey(public_key).verify(_message_bytes(message), signature_bytes)
        except BadSignatureError:
            return False
        except (ValueError, TypeError) as e:
            logger.debug(f"ed25519 verification rejected input: {e}")
            return False
        return True


# =============================================================================
# REGISTRY
# =============================================================================

_FAMILY_VALIDATORS = {
    ChainFamily.EVM: EvmAddressValidator,
    ChainFamily.ED25519: Ed25519AddressValidator,
}

_FAMILY_VERIFIERS = {
    ChainFamily.EVM: EvmSignatureVerifier,
    ChainFamily.ED25519: Ed25519SignatureVerifier,
}


class ChainRegistry:
    """
    Chain selector -> AddressValidator / SignatureVerifier.

    Thread-safe; registrations are expected at startup only.
    """

    def __init__(self):
        self._validators: Dict[ChainType, AddressValidator] = {}
        self._verifiers: Dict[ChainType, SignatureVerifier] = {}
        self._lock = threading.Lock()

    def register(
        self,
        chain: ChainType,
        validator: AddressValidator,
        verifier: SignatureVerifier,
    ) -> None:
        with self._lock:
            self._validators[chain] = validator
            self._verifiers[chain] = verifier
        logger.debug(f"Registered chain support for {chain.value}")

    def unregister(self, chain: ChainType) -> None:
        with self._lock:
            self._validators.pop(chain, None)
            self._verifiers.pop(chain, None)

    def supports(self, chain: Union[ChainType, str]) -> bool:
        try:
            resolved = ChainType.parse(chain)
        except UnsupportedChainError:
            return False
        return resolved in self._validators

    def resolve(self, chain: Union[ChainType, str]) -> ChainType:
        """Parse a selector and make sure it is registered."""
        resolved = ChainType.parse(chain)
        if resolved not in self._validators:
            raise UnsupportedChainError(chain)
        return resolved

    def validator_for(self, chain: Union[ChainType, str]) -> AddressValidator:
        return self._validators[self.resolve(chain)]

    def verifier_for(self, chain: Union[ChainType, str]) -> SignatureVerifier:
        return self._verifiers[self.resolve(chain)]

    @property
    def chains(self) -> Iterable[ChainType]:
        return tuple(self._validators)


def create_default_registry(chains: Optional[Iterable[ChainType]] = None) -> ChainRegistry:
    """Registry with the family implementation for every (or the given) chain."""
    registry = ChainRegistry()
    # Implementations are stateless, share one per family
    validators = {family: cls() for family, cls in _FAMILY_VALIDATORS.items()}
    verifiers = {family: cls() for family, cls in _FAMILY_VERIFIERS.items()}
    for chain in (chains if chains is not None else ChainType):
        registry.register(chain, validators[chain.family], verifiers[chain.family])
    return registry


__all__ = [
    'AddressValidator',
    'SignatureVerifier',
    'EvmAddressValidator',
    'EvmSignatureVerifier',
    'Ed25519AddressValidator',
    'Ed25519SignatureVerifier',
    'ChainRegistry',
    'create_default_registry',
    'decode_ed25519_public_key',
]
