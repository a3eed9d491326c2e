"""
Data records returned by the transfer executor
"""

from dataclasses import dataclass, asdict
from typing import Dict, Optional


@dataclass(frozen=True)
class TokenMetadata:
    """ERC-20 token metadata"""
    name: str
    symbol: str
    decimals: int

    def __repr__(self):
        return f"TokenMetadata({self.name} ({self.symbol}), decimals={self.decimals})"


@dataclass(frozen=True)
class BalanceInfo:
    """Token balance of one address"""
    address: str
    balance: int
    formatted_balance: str
    token_info: TokenMetadata

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class FeeData:
    """
    Network fee data

    Every field is optional: nodes that do not implement eth_gasPrice or
    pre-London chains without a base fee leave the matching fields as None.
    """
    gas_price: Optional[int] = None
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None


@dataclass(frozen=True)
class NetworkInfo:
    """Diagnostic snapshot of the endpoint"""
    chain_id: int
    name: str
    block_number: int
    fee_data: FeeData

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class TransferReceipt:
    """Confirmed token transfer"""
    transaction_hash: str
    block_number: int
    gas_used: int
    status: int
    confirmations: int
    gas_limit: Optional[int] = None
    effective_gas_price: Optional[int] = None

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class TransferEvent:
    """Decoded Transfer event log"""
    block_number: int
    log_index: int
    transaction_hash: str
    from_address: str
    to_address: str
    value: int
    formatted_value: str

    def __repr__(self):
        return (f"TransferEvent(block {self.block_number}: "
                f"{self.from_address[:10]}... -> {self.to_address[:10]}... {self.formatted_value})")


@dataclass(frozen=True)
class GasQuote:
    """Gas and fee estimate for a prospective transfer"""
    amount: str
    base_amount: int
    estimated_gas: int
    gas_limit: int
    gas_price: int
    estimated_cost_wei: int
    estimated_cost_ether: str
