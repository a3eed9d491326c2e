"""
Pytest fixtures for token transfer tests.

The web3 endpoint and the ERC-20 contract are replaced by in-memory fakes
exposing the same async surface the executor uses, so no RPC node is needed.
Transactions are still signed for real with eth-account.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Union

import pytest
from web3 import Web3
from web3.exceptions import TransactionNotFound

from token_transfer.config import TransferConfig
from token_transfer.executor import TokenTransferExecutor

# Well-known development key (Hardhat / Anvil account #0), never funded on real networks
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TOKEN_ADDRESS = "0x" + "11" * 20
RECIPIENT_ADDRESS = Web3.to_checksum_address("0x" + "22" * 20)
OTHER_ADDRESS = Web3.to_checksum_address("0x" + "33" * 20)
TX_HASH = b"\xab" * 32

GWEI = 10 ** 9


async def _value(value):
    if isinstance(value, BaseException):
        raise value
    return value


class FakeCall:
    """One prepared contract function call"""

    def __init__(self, contract: "FakeContract", name: str, args: tuple):
        self.contract = contract
        self.name = name
        self.args = args

    async def call(self):
        self.contract.calls.append((self.name, self.args))
        result = self.contract.read_results[self.name]
        if callable(result):
            result = result(*self.args)
        return await _value(result)

    async def estimate_gas(self, transaction: Optional[Dict] = None):
        self.contract.estimate_requests.append((self.args, transaction))
        result = self.contract.estimate
        if callable(result):
            result = result(*self.args)
        return await _value(result)

    async def build_transaction(self, transaction: Dict):
        self.contract.built.append(dict(transaction))
        return {
            **transaction,
            'to': self.contract.address,
            'data': "0xa9059cbb",
            'value': 0,
            'chainId': self.contract.chain.chain_id,
        }


class FakeFunctions:
    def __init__(self, contract: "FakeContract"):
        self._contract = contract

    def name(self):
        return FakeCall(self._contract, 'name', ())

    def symbol(self):
        return FakeCall(self._contract, 'symbol', ())

    def decimals(self):
        return FakeCall(self._contract, 'decimals', ())

    def balanceOf(self, account):
        return FakeCall(self._contract, 'balanceOf', (account,))

    def transfer(self, to, amount):
        return FakeCall(self._contract, 'transfer', (to, amount))


class FakeTransferEvent:
    def __init__(self, contract: "FakeContract"):
        self._contract = contract

    async def get_logs(self, argument_filters=None, from_block=None, to_block=None, block_hash=None):
        self._contract.log_requests.append({
            'argument_filters': argument_filters,
            'from_block': from_block,
            'to_block': to_block,
        })
        # Topic filters are left to the caller, like a node that ignores them
        return [
            log for log in self._contract.logs
            if from_block <= log['blockNumber'] <= to_block
        ]


class FakeEvents:
    def __init__(self, contract: "FakeContract"):
        self.Transfer = FakeTransferEvent(contract)


class FakeContract:
    """ERC-20 contract with scripted results"""

    def __init__(self, chain: "FakeChain", address: str):
        self.chain = chain
        self.address = address
        self.balances: Dict[str, int] = {}
        self.read_results: Dict[str, Any] = {
            'name': "Test Token",
            'symbol': "TST",
            'decimals': 2,
            'balanceOf': lambda account: self.balances.get(account, 0),
        }
        self.estimate: Union[int, BaseException, Callable] = 100_000
        self.logs: List[Dict] = []

        self.calls: List[tuple] = []
        self.estimate_requests: List[tuple] = []
        self.built: List[Dict] = []
        self.log_requests: List[Dict] = []

        self.functions = FakeFunctions(self)
        self.events = FakeEvents(self)

    def balance_queries(self) -> List[str]:
        return [args[0] for name, args in self.calls if name == 'balanceOf']


class FakeEth:
    """Async eth namespace backed by FakeChain"""

    def __init__(self, chain: "FakeChain"):
        self._chain = chain

    @property
    def chain_id(self):
        return _value(self._chain.chain_id)

    @property
    def block_number(self):
        return _value(self._chain.block_number)

    @property
    def gas_price(self):
        return _value(self._chain.gas_price)

    async def get_block(self, block_identifier):
        if self._chain.block_error is not None:
            raise self._chain.block_error
        block = {'number': self._chain.block_number}
        if self._chain.base_fee is not None:
            block['baseFeePerGas'] = self._chain.base_fee
        return block

    async def get_transaction_count(self, address, block_identifier=None):
        return self._chain.nonce

    async def send_raw_transaction(self, raw_transaction):
        self._chain.sent.append(raw_transaction)
        if self._chain.send_error is not None:
            raise self._chain.send_error
        return TX_HASH

    async def get_transaction_receipt(self, tx_hash):
        chain = self._chain
        chain.receipt_polls += 1
        # Each poll mines one block
        chain.block_number += 1
        if chain.receipt_errors:
            raise chain.receipt_errors.pop(0)
        if chain.pending_polls > 0:
            chain.pending_polls -= 1
            raise TransactionNotFound(f"Transaction with hash: {tx_hash!r} not found")
        return dict(chain.receipt)

    def contract(self, address=None, abi=None):
        self._chain.contract.address = address
        self._chain.contract.abi = abi
        return self._chain.contract


class FakeChain:
    """Mutable state shared by the fake endpoint and contract"""

    def __init__(self):
        self.chain_id = 11155111
        self.block_number = 100
        self.gas_price: Union[int, BaseException] = 3 * GWEI
        self.base_fee: Optional[int] = None
        self.block_error: Optional[BaseException] = None
        self.nonce = 7
        self.send_error: Optional[BaseException] = None
        self.sent: List[bytes] = []
        self.pending_polls = 0
        self.receipt_polls = 0
        self.receipt_errors: List[BaseException] = []
        self.receipt = {
            'transactionHash': TX_HASH,
            'blockNumber': 101,
            'gasUsed': 51_234,
            'status': 1,
            'effectiveGasPrice': 3 * GWEI,
        }
        self.contract = FakeContract(self, TOKEN_ADDRESS)


class FakeWeb3:
    def __init__(self, chain: FakeChain):
        self.eth = FakeEth(chain)


@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
def config():
    return TransferConfig(
        rpc_url="https://rpc.example.org",
        private_key=TEST_PRIVATE_KEY,
        token_address=TOKEN_ADDRESS,
        recipient_address=RECIPIENT_ADDRESS,
        poll_interval=0,
    )


@pytest.fixture
def executor(config, chain):
    return TokenTransferExecutor(config, web3=FakeWeb3(chain))


@pytest.fixture
def clean_env(monkeypatch):
    """Unset transfer variables for the test and remove anything set during it"""
    for name in ('RPC_URL', 'PRIVATE_KEY', 'TOKEN_CONTRACT_ADDRESS', 'RECIPIENT_ADDRESS', 'GAS_PRICE_GWEI'):
        monkeypatch.setenv(name, "unset")
        monkeypatch.delenv(name)
    return monkeypatch
