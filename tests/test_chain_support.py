"""
Tests for per-chain address validators, signature verifiers and the registry.
"""

import os
import sys

import base58
import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from walletguard.chains import ChainFamily, ChainType
from walletguard.errors import UnsupportedChainError
from walletguard.security.chain_support import (
    AddressValidator,
    ChainRegistry,
    Ed25519AddressValidator,
    EvmSignatureVerifier,
    SignatureVerifier,
    create_default_registry,
    decode_ed25519_public_key,
)


class TestEd25519PublicKey:
    def test_valid_key(self, solana_signing_key, solana_address):
        assert decode_ed25519_public_key(solana_address) == bytes(solana_signing_key.verify_key)

    @pytest.mark.parametrize("value", [None, "", "0OIl", base58.b58encode(b"\x05" * 33).decode()])
    def test_invalid(self, value):
        assert decode_ed25519_public_key(value) is None


class TestEvmAddressValidator:
    """EIP-55 vectors: mixed case must carry a matching checksum."""

    @pytest.mark.parametrize("address", [
        "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed",
        "0x52908400098527886E0F7030069857D2E4169EE7",
        "0xde709f2102306220921060314715629080e2fb77",
    ])
    def test_accepts_checksummed_and_single_case(self, address):
        validator = create_default_registry().validator_for(ChainType.ETHEREUM)
        assert validator.is_valid_address(address)

    @pytest.mark.parametrize("address", [
        "0x5aaeb6053F3E94C9b9A09f33669435E7Ef1BeAed",
        "0x52908400098527886e0F7030069857D2E4169EE7",
    ])
    def test_rejects_broken_checksum(self, address):
        validator = create_default_registry().validator_for(ChainType.ETHEREUM)
        assert not validator.is_valid_address(address)


class TestEvmSignatureDecoding:
    def test_accepts_prefixed_and_bare_hex(self):
        raw = bytes(range(65))
        assert EvmSignatureVerifier.decode_signature('0x' + raw.hex()) == raw
        assert EvmSignatureVerifier.decode_signature(raw.hex()) == raw

    @pytest.mark.parametrize("value", [None, "", "0x", "0x" + "ab" * 64, "0x" + "ab" * 66, "xyz"])
    def test_rejects_wrong_length_or_alphabet(self, value):
        assert EvmSignatureVerifier.decode_signature(value) is None


# ===========================================================================
# Registry Tests
# ===========================================================================

class TestChainRegistry:
    """Tests for ChainRegistry."""

    def test_default_registry_covers_all_chains(self):
        registry = create_default_registry()
        assert set(registry.chains) == set(ChainType)
        for chain in ChainType:
            assert registry.supports(chain)

    def test_family_implementations_shared(self):
        registry = create_default_registry()
        assert registry.validator_for("ethereum") is registry.validator_for("polygon")
        assert registry.validator_for("solana").family is ChainFamily.ED25519

    def test_subset_registry(self):
        registry = create_default_registry([ChainType.SOLANA])
        assert registry.supports("sol")
        assert not registry.supports("ethereum")
        with pytest.raises(UnsupportedChainError):
            registry.validator_for("ethereum")

    def test_unknown_selector_not_supported(self):
        assert not create_default_registry().supports("bitcoin")

    def test_register_new_implementation(self):
        """Adding chain support is a registration, not an engine change."""

        class AcceptAll(AddressValidator, SignatureVerifier):
            family = ChainFamily.EVM

            def is_valid_address(self, address):
                return True

            def verify(self, message, signature, signer):
                return True

        registry = ChainRegistry()
        impl = AcceptAll()
        registry.register(ChainType.BNB, impl, impl)
        assert registry.validator_for("bsc").is_valid_address("anything")
        assert registry.verifier_for("bsc").verify("m", "s", "k")

        registry.unregister(ChainType.BNB)
        assert not registry.supports("bsc")

    def test_ed25519_validator_standalone(self, solana_address):
        assert Ed25519AddressValidator().is_valid_address(solana_address)
