"""
Token Transfer Errors

Exception hierarchy raised by the transfer executor:
- ConfigurationError: endpoint / identity / contract binding failed
- InsufficientBalanceError: sender cannot cover the requested amount
- GasEstimationError: node could not simulate the transfer (non-fatal)
- SubmissionError: transaction rejected, reverted, or not confirmed in time
- QueryError: any read call failed

Client error messages are classified in one place, classify_submission_error().
"""

from enum import Enum
from typing import Dict, Optional


class TokenTransferError(Exception):
    """Base class for all token transfer errors"""


class ConfigurationError(TokenTransferError):
    """Endpoint, signing identity or contract binding could not be set up"""


class InsufficientBalanceError(TokenTransferError):
    """Token balance is lower than the requested transfer amount"""

    def __init__(self, balance: int, requested: int, symbol: str = ""):
        self.balance = balance
        self.requested = requested
        self.symbol = symbol
        super().__init__(
            f"Insufficient token balance: have {balance}, need {requested} base units"
            + (f" of {symbol}" if symbol else "")
        )


class GasEstimationError(TokenTransferError):
    """Gas estimation for the transfer call failed"""


class QueryError(TokenTransferError):
    """A read-only call against the endpoint or contract failed"""


class SubmissionErrorKind(str, Enum):
    """Known reasons a submitted transaction can fail"""
    INTRINSIC_GAS_TOO_LOW = "intrinsic_gas_too_low"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    NONCE_CONFLICT = "nonce_conflict"
    UNDERPRICED = "underpriced"
    REVERTED = "reverted"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


SUBMISSION_HINTS: Dict[SubmissionErrorKind, str] = {
    SubmissionErrorKind.INTRINSIC_GAS_TOO_LOW: (
        "The token contract needs more gas than was provided. "
        "Try a higher gas limit or a different RPC provider."
    ),
    SubmissionErrorKind.INSUFFICIENT_FUNDS: (
        "The sender does not hold enough native currency to pay for gas."
    ),
    SubmissionErrorKind.NONCE_CONFLICT: (
        "Another transaction from this account is using the same nonce. "
        "Wait for it to be mined before resubmitting."
    ),
    SubmissionErrorKind.UNDERPRICED: (
        "The node rejected the gas price as too low. Wait for network fees to "
        "settle, or resubmit once the node reports a higher gas price."
    ),
    SubmissionErrorKind.REVERTED: (
        "The token contract rejected the transfer on-chain."
    ),
    SubmissionErrorKind.TIMEOUT: (
        "The transaction may still be mined. Check the hash on a block explorer "
        "before resubmitting."
    ),
}


class SubmissionError(TokenTransferError):
    """
    Transfer submission failed

    Attributes:
        kind: Classified failure reason
        hint: Optional remediation hint for the operator
        tx_hash: Transaction hash, when the transaction reached the network
    """

    def __init__(
        self,
        message: str,
        kind: SubmissionErrorKind = SubmissionErrorKind.UNKNOWN,
        tx_hash: Optional[str] = None
    ):
        self.kind = kind
        self.hint = SUBMISSION_HINTS.get(kind)
        self.tx_hash = tx_hash
        super().__init__(message)


class ConfirmationTimeoutError(SubmissionError):
    """Transaction was submitted but did not reach the required confirmations in time"""

    def __init__(self, tx_hash: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Transaction {tx_hash} not confirmed within {timeout}s",
            kind=SubmissionErrorKind.TIMEOUT,
            tx_hash=tx_hash
        )


# Substrings reported by geth, erigon, nethermind and hosted RPC providers
_MESSAGE_PATTERNS = (
    ("intrinsic gas too low", SubmissionErrorKind.INTRINSIC_GAS_TOO_LOW),
    ("insufficient funds", SubmissionErrorKind.INSUFFICIENT_FUNDS),
    ("nonce too low", SubmissionErrorKind.NONCE_CONFLICT),
    ("already known", SubmissionErrorKind.NONCE_CONFLICT),
    ("replacement transaction underpriced", SubmissionErrorKind.NONCE_CONFLICT),
    ("transaction underpriced", SubmissionErrorKind.UNDERPRICED),
    ("max fee per gas less than block base fee", SubmissionErrorKind.UNDERPRICED),
    ("execution reverted", SubmissionErrorKind.REVERTED),
)


def classify_submission_error(error: BaseException) -> SubmissionErrorKind:
    """
    Map a client library exception to a SubmissionErrorKind

    Args:
        error: Exception raised while building, signing or sending

    Returns:
        Matching kind, or UNKNOWN
    """
    if isinstance(error, SubmissionError):
        return error.kind

    message = str(error).lower()
    for pattern, kind in _MESSAGE_PATTERNS:
        if pattern in message:
            return kind

    return SubmissionErrorKind.UNKNOWN
