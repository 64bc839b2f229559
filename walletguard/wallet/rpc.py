"""
JSON-RPC submission and confirmation for locally signed transactions.

submit_and_confirm() sends a signed transaction and polls until the chain
reports it confirmed, the deadline passes or the caller cancels. It never
holds a lock while waiting: the poll delay is an Event.wait on the cancel
signal.

Error mapping:
    connection failure, HTTP error, bad JSON  -> TransientNetworkError
    JSON-RPC error object, on-chain failure   -> SubmissionRejectedError
    deadline reached                          -> SubmissionTimeoutError
    cancel_event set                          -> SubmissionCancelledError
"""

import base64
import itertools
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import requests

from ..chains import ChainFamily, ChainType
from ..constants import Timeouts
from ..errors import (
    SubmissionCancelledError,
    SubmissionRejectedError,
    SubmissionTimeoutError,
    TransientNetworkError,
)
from ..utils.error_handling import log_network_error

logger = logging.getLogger(__name__)


class JsonRpcClient:
    """
    Minimal JSON-RPC 2.0 client over HTTP.

    Args:
        endpoint: RPC URL
        timeout: Per-request timeout in seconds
        session: Optional requests.Session (connection reuse, tests)
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = Timeouts.RPC_REQUEST,
        session: Optional[requests.Session] = None,
    ):
        self.endpoint = endpoint
        self.timeout = timeout
        self._session = session or requests.Session()
        self._ids = itertools.count(1)

    def call(self, method: str, params: List[Any], timeout: Optional[float] = None) -> Any:
        body = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        try:
            response = self._session.post(
                self.endpoint, json=body, timeout=timeout or self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            log_network_error(e, f"rpc {method}", endpoint=self.endpoint)
            raise TransientNetworkError(f"RPC {method} failed: {e}") from e
        except ValueError as e:
            raise TransientNetworkError(f"RPC {method} returned invalid JSON") from e

        if not isinstance(data, dict):
            raise TransientNetworkError(f"RPC {method} returned a non-object response")
        if data.get("error") is not None:
            error = data["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            raise SubmissionRejectedError(f"RPC {method} error: {message}", rpc_error=error)
        return data.get("result")


# =============================================================================
# PER-FAMILY SUBMITTERS
# =============================================================================

class TransactionSubmitter(ABC):
    """Chain-specific send and confirmation-status calls."""

    @abstractmethod
    def send(self, client: JsonRpcClient, signed: Any, timeout: float) -> str:
        """Broadcast; returns the transaction id."""
        ...

    @abstractmethod
    def is_confirmed(self, client: JsonRpcClient, tx_id: str, timeout: float) -> bool:
        """True once confirmed, False while pending. Raises if it failed."""
        ...


class EvmSubmitter(TransactionSubmitter):
    """eth_sendRawTransaction + eth_getTransactionReceipt."""

    def send(self, client: JsonRpcClient, signed: str, timeout: float) -> str:
        tx_hash = client.call("eth_sendRawTransaction", [signed], timeout=timeout)
        if not isinstance(tx_hash, str):
            raise SubmissionRejectedError("eth_sendRawTransaction returned no hash")
        return tx_hash

    def is_confirmed(self, client: JsonRpcClient, tx_id: str, timeout: float) -> bool:
        receipt = client.call("eth_getTransactionReceipt", [tx_id], timeout=timeout)
        if not receipt:
            return False
        if receipt.get("status") == "0x0":
            raise SubmissionRejectedError(f"Transaction {tx_id} reverted", rpc_error=receipt)
        return True


_COMMITMENT_RANK = {"processed": 0, "confirmed": 1, "finalized": 2}


class SolanaSubmitter(TransactionSubmitter):
    """sendTransaction (base64 wire format) + getSignatureStatuses."""

    def __init__(self, commitment: str = "confirmed"):
        self.commitment = commitment

    def send(self, client: JsonRpcClient, signed: Any, timeout: float) -> str:
        wire = base64.b64encode(bytes(signed)).decode("ascii")
        signature = client.call(
            "sendTransaction",
            [wire, {"encoding": "base64", "preflightCommitment": self.commitment}],
            timeout=timeout,
        )
        if not isinstance(signature, str):
            raise SubmissionRejectedError("sendTransaction returned no signature")
        return signature

    def is_confirmed(self, client: JsonRpcClient, tx_id: str, timeout: float) -> bool:
        result = client.call(
            "getSignatureStatuses",
            [[tx_id], {"searchTransactionHistory": False}],
            timeout=timeout,
        )
        statuses = (result or {}).get("value") or [None]
        status = statuses[0]
        if status is None:
            return False
        if status.get("err") is not None:
            raise SubmissionRejectedError(
                f"Transaction {tx_id} failed: {status['err']}", rpc_error=status["err"],
            )
        reached = _COMMITMENT_RANK.get(status.get("confirmationStatus") or "", -1)
        return reached >= _COMMITMENT_RANK.get(self.commitment, 1)


_SUBMITTERS = {
    ChainFamily.EVM: EvmSubmitter,
    ChainFamily.ED25519: SolanaSubmitter,
}


def submitter_for(chain: ChainType) -> TransactionSubmitter:
    return _SUBMITTERS[chain.family]()


# =============================================================================
# SUBMIT AND CONFIRM
# =============================================================================

def submit_and_confirm(
    client: JsonRpcClient,
    submitter: TransactionSubmitter,
    signed: Any,
    timeout: float = Timeouts.SUBMIT_CONFIRM,
    cancel_event: Optional[threading.Event] = None,
    poll_interval: float = Timeouts.CONFIRM_POLL_INTERVAL,
) -> str:
    """
    Send `signed` and wait for confirmation.

    Cancellation before the send leaves nothing behind. Once sent, a
    timeout or cancellation only stops waiting; the error message carries
    the transaction id so callers can keep tracking it.

    Returns:
        Transaction id (hash or signature)
    """
    cancel_event = cancel_event or threading.Event()
    deadline = time.monotonic() + timeout

    def remaining() -> float:
        return deadline - time.monotonic()

    if cancel_event.is_set():
        raise SubmissionCancelledError("Submission cancelled before sending")

    tx_id = submitter.send(client, signed, timeout=min(client.timeout, max(remaining(), 0.1)))
    logger.info(f"Submitted transaction {tx_id} to {client.endpoint}")

    while True:
        if cancel_event.is_set():
            raise SubmissionCancelledError(f"Confirmation wait cancelled for {tx_id}")

        left = remaining()
        if left <= 0:
            raise SubmissionTimeoutError(f"Transaction {tx_id} not confirmed within {timeout}s")

        if submitter.is_confirmed(client, tx_id, timeout=min(client.timeout, max(left, 0.1))):
            logger.info(f"Transaction {tx_id} confirmed")
            return tx_id

        left = remaining()
        if left <= 0:
            raise SubmissionTimeoutError(f"Transaction {tx_id} not confirmed within {timeout}s")
        cancel_event.wait(min(poll_interval, left))


__all__ = [
    'JsonRpcClient',
    'TransactionSubmitter',
    'EvmSubmitter',
    'SolanaSubmitter',
    'submitter_for',
    'submit_and_confirm',
]
