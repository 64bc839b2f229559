"""
In-process wallet holding raw key material.

The adapter is connected as soon as its key is loaded. disconnect() only
gates signing; the key stays loaded and connect() re-enables it without
re-reading anything.
"""

import logging
import threading
from typing import Any, Optional, Union

import requests

from ..chains import ChainType
from ..constants import Timeouts
from ..errors import MissingEndpointError
from .base import WalletAdapter
from .rpc import JsonRpcClient, submit_and_confirm, submitter_for
from .signers import Signer, create_signer

logger = logging.getLogger(__name__)


class LocalKeyAdapter(WalletAdapter):
    """
    Args:
        private_key: Chain-native private key encoding (see signers)
        chain: Chain selector
        endpoint: RPC URL used by submit_and_confirm()
        rpc_timeout: Per-request RPC timeout in seconds
        session: Optional requests.Session for RPC calls

    Raises:
        UnsupportedChainError: unknown chain selector
        InvalidKeyError: key cannot be decoded for the chain
    """

    def __init__(
        self,
        private_key: Union[str, bytes],
        chain: Union[ChainType, str],
        endpoint: Optional[str] = None,
        rpc_timeout: float = Timeouts.RPC_REQUEST,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(ChainType.parse(chain))
        self._signer: Signer = create_signer(self._chain, private_key)
        self.endpoint = endpoint
        self.rpc_timeout = rpc_timeout
        self._session = session

        self._address = self._signer.address
        self._connected = True
        logger.debug(f"Loaded local {self._chain.value} wallet {self._address}")

    def connect(self) -> str:
        with self._lock:
            self._connected = True
            return self._address

    def disconnect(self) -> None:
        with self._lock:
            self._connected = False

    def get_address(self) -> str:
        return self._require_connected()

    def sign_message(self, message: Union[str, bytes]) -> str:
        with self._lock:
            self._require_connected()
            return self._signer.sign_message(message)

    def sign_transaction(self, transaction: Any) -> Any:
        """
        EVM: transaction dict -> 0x raw signed transaction.
        Solana: solders Transaction / VersionedTransaction -> signed transaction.
        """
        with self._lock:
            self._require_connected()
            return self._signer.sign_transaction(transaction, self._chain)

    def submit_and_confirm(
        self,
        transaction: Any,
        timeout: float = Timeouts.SUBMIT_CONFIRM,
        cancel_event: Optional[threading.Event] = None,
        poll_interval: float = Timeouts.CONFIRM_POLL_INTERVAL,
    ) -> str:
        """
        Sign, broadcast and wait for confirmation.

        Returns:
            Transaction id

        Raises:
            MissingEndpointError: no RPC endpoint configured
            WalletNotConnectedError: adapter disconnected
            TransientNetworkError / SubmissionTimeoutError /
            SubmissionCancelledError / SubmissionRejectedError
        """
        if not self.endpoint:
            raise MissingEndpointError(
                f"No RPC endpoint configured for {self._chain.value} "
                f"(set WALLETGUARD_RPC_{self._chain.name})"
            )

        signed = self.sign_transaction(transaction)

        # No adapter lock past this point
        client = JsonRpcClient(self.endpoint, timeout=self.rpc_timeout, session=self._session)
        return submit_and_confirm(
            client,
            submitter_for(self._chain),
            signed,
            timeout=timeout,
            cancel_event=cancel_event,
            poll_interval=poll_interval,
        )

    def export_private_key(self) -> str:
        return self._signer.export_private_key()


__all__ = ['LocalKeyAdapter']
