"""
Token Transfer Executor

Wraps one ERC-20 contract on one Ethereum-compatible endpoint:
1. Token metadata and balance queries
2. Transfer submission with balance pre-check
3. Gas estimation with fallback and a 20% buffer
4. Fee resolution with a configured default
5. Confirmation wait (2 blocks)
6. Transfer event history for the watched address
"""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

from eth_account import Account
from loguru import logger
from web3 import AsyncWeb3, Web3
from web3.exceptions import TransactionNotFound
from web3.middleware import ExtraDataToPOAMiddleware

from .config import TransferConfig
from .errors import (
    ConfigurationError,
    ConfirmationTimeoutError,
    GasEstimationError,
    InsufficientBalanceError,
    QueryError,
    SubmissionError,
    SubmissionErrorKind,
    classify_submission_error,
)
from .models import (
    BalanceInfo,
    FeeData,
    GasQuote,
    NetworkInfo,
    TokenMetadata,
    TransferEvent,
    TransferReceipt,
)
from .units import (
    AmountLike,
    apply_gas_buffer,
    format_ether,
    format_gwei,
    from_base_units,
    resolve_gas_price,
    to_base_units,
)


# Minimal ERC-20 ABI: transfer, balanceOf, metadata and the Transfer event
ERC20_ABI = [
    {
        "constant": False,
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"}
        ],
        "name": "transfer",
        "outputs": [{"name": "", "type": "bool"}],
        "type": "function"
    },
    {
        "constant": True,
        "inputs": [{"name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "type": "function"
    },
    {
        "constant": True,
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "type": "function"
    },
    {
        "constant": True,
        "inputs": [],
        "name": "symbol",
        "outputs": [{"name": "", "type": "string"}],
        "type": "function"
    },
    {
        "constant": True,
        "inputs": [],
        "name": "name",
        "outputs": [{"name": "", "type": "string"}],
        "type": "function"
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "from", "type": "address"},
            {"indexed": True, "name": "to", "type": "address"},
            {"indexed": False, "name": "value", "type": "uint256"}
        ],
        "name": "Transfer",
        "type": "event"
    }
]

NETWORK_NAMES = {
    1: "mainnet",
    10: "optimism",
    56: "bnb",
    97: "bnbt",
    137: "matic",
    8453: "base",
    17000: "holesky",
    42161: "arbitrum",
    43114: "avalanche",
    80002: "matic-amoy",
    11155111: "sepolia",
}


class TokenTransferExecutor:
    """
    ERC-20 transfer executor

    Features:
    - Concurrent metadata reads
    - Exact base-unit conversion (no floats)
    - Balance pre-check before touching the mempool
    - Gas estimation fallback (150,000) with 20% buffer
    - Legacy gas pricing with configurable default
    - Confirmation depth guard against reorgs
    - Classified submission errors with operator hints

    The endpoint, signing identity and contract binding are set once in
    __init__ and never reassigned.
    """

    # Gas settings
    FALLBACK_GAS_LIMIT = 150_000
    GAS_BUFFER_PERCENT = 120
    DEFAULT_PRIORITY_FEE_WEI = 1_000_000_000  # 1 gwei

    # Confirmation settings
    MIN_CONFIRMATIONS = 2

    def __init__(self, config: TransferConfig, web3: Optional[AsyncWeb3] = None):
        """
        Initialize executor

        Args:
            config: Loaded TransferConfig
            web3: Optional pre-built AsyncWeb3 endpoint to share

        Raises:
            ConfigurationError: If the endpoint, wallet or contract cannot be set up
        """
        self.config = config

        try:
            if web3 is None:
                web3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(
                    config.rpc_url,
                    request_kwargs={'timeout': config.request_timeout}
                ))
                # PoA chains (BSC, Polygon) carry oversized extraData
                web3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
            self.w3 = web3
            logger.info("Provider initialized successfully")

            self.account = Account.from_key(config.private_key)
            self.address = self.account.address
            logger.info("Wallet initialized successfully")
            logger.info(f"Wallet address: {self.address}")

            self.token_address = Web3.to_checksum_address(config.token_address)
            self.token_contract = self.w3.eth.contract(address=self.token_address, abi=ERC20_ABI)
            logger.info(f"Token contract initialized successfully ({self.token_address})")

        except Exception as e:
            logger.error(f"✗ Error setting up executor: {e}")
            raise ConfigurationError(f"Failed to set up transfer executor: {e}") from e

    async def __aenter__(self) -> 'TokenTransferExecutor':
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        """Close the provider's HTTP session"""
        provider = getattr(self.w3, 'provider', None)
        if provider is None or not hasattr(provider, 'disconnect'):
            return

        try:
            await provider.disconnect()
            logger.debug("✓ Provider connection closed")
        except Exception as e:
            logger.debug(f"Error closing provider: {e}")

    # ------------------------------------------------------------------
    # Read queries
    # ------------------------------------------------------------------

    async def get_token_info(self) -> TokenMetadata:
        """Fetch name, symbol and decimals concurrently"""
        functions = self.token_contract.functions
        try:
            name, symbol, decimals = await asyncio.gather(
                functions.name().call(),
                functions.symbol().call(),
                functions.decimals().call()
            )
        except Exception as e:
            logger.error(f"Error getting token info: {e}")
            raise QueryError(f"Failed to fetch token metadata: {e}") from e

        return TokenMetadata(name=name, symbol=symbol, decimals=int(decimals))

    async def _raw_balance(self, address: str) -> int:
        try:
            balance = await self.token_contract.functions.balanceOf(address).call()
        except Exception as e:
            raise QueryError(f"Failed to fetch token balance of {address}: {e}") from e
        return int(balance)

    async def get_balance(self, address: Optional[str] = None) -> BalanceInfo:
        """
        Get token balance

        Args:
            address: Address to query (default: the signing wallet)

        Returns:
            BalanceInfo with raw and formatted balance
        """
        target = address or self.address
        try:
            target = Web3.to_checksum_address(target)
        except (TypeError, ValueError) as e:
            logger.error(f"Error getting balance: {e}")
            raise QueryError(f"Invalid address {target!r}: {e}") from e

        balance = await self._raw_balance(target)
        token_info = await self.get_token_info()

        formatted = from_base_units(balance, token_info.decimals)
        logger.info(f"Balance for {target}: {formatted} {token_info.symbol}")

        return BalanceInfo(
            address=target,
            balance=balance,
            formatted_balance=formatted,
            token_info=token_info
        )

    async def _gas_price_or_none(self) -> Optional[int]:
        try:
            return int(await self.w3.eth.gas_price)
        except Exception as e:
            logger.debug(f"eth_gasPrice unavailable: {e}")
            return None

    async def get_fee_data(self) -> FeeData:
        """
        Fetch current fee data

        gas_price is None when the node does not answer eth_gasPrice; the
        EIP-1559 fields are None on chains without a base fee.
        """
        try:
            gas_price, block = await asyncio.gather(
                self._gas_price_or_none(),
                self.w3.eth.get_block('latest')
            )
        except Exception as e:
            raise QueryError(f"Failed to fetch fee data: {e}") from e

        base_fee = block.get('baseFeePerGas')
        if base_fee is None:
            return FeeData(gas_price=gas_price)

        priority_fee = self.DEFAULT_PRIORITY_FEE_WEI
        return FeeData(
            gas_price=gas_price,
            max_fee_per_gas=int(base_fee) * 2 + priority_fee,
            max_priority_fee_per_gas=priority_fee
        )

    async def get_network_info(self) -> NetworkInfo:
        """Chain id, block height and fee data of the endpoint"""
        try:
            chain_id, block_number = await asyncio.gather(
                self.w3.eth.chain_id,
                self.w3.eth.block_number
            )
        except Exception as e:
            logger.error(f"Error getting network info: {e}")
            raise QueryError(f"Failed to fetch network info: {e}") from e

        fee_data = await self.get_fee_data()
        info = NetworkInfo(
            chain_id=int(chain_id),
            name=NETWORK_NAMES.get(int(chain_id), "unknown"),
            block_number=int(block_number),
            fee_data=fee_data
        )

        logger.info(f"Network: {info.name} (Chain ID: {info.chain_id})")
        logger.info(f"Current block: {info.block_number}")
        if fee_data.gas_price is not None:
            logger.info(f"Gas price: {format_gwei(fee_data.gas_price)} gwei")
        else:
            logger.info("Gas price: unavailable")

        return info

    async def get_transfer_events(self, from_block: int = 0) -> List[TransferEvent]:
        """
        Transfer events sent to the watched recipient address

        Args:
            from_block: First block to scan (inclusive)

        Returns:
            Events ordered by block and log index; empty when none match

        Raises:
            QueryError: Invalid watched address or failed log query
        """
        try:
            watched = Web3.to_checksum_address(self.config.recipient_address)
            latest = int(await self.w3.eth.block_number)
            if from_block > latest:
                return []

            logs = await self.token_contract.events.Transfer.get_logs(
                argument_filters={'to': watched},
                from_block=from_block,
                to_block=latest
            )
        except Exception as e:
            logger.error(f"Error getting transfer events: {e}")
            raise QueryError(f"Failed to fetch Transfer events: {e}") from e

        matching = [log for log in logs if log['args']['to'].lower() == watched.lower()]
        if not matching:
            logger.info(f"No transfers to {watched} in blocks {from_block}-{latest}")
            return []

        token_info = await self.get_token_info()

        events = [
            TransferEvent(
                block_number=int(log['blockNumber']),
                log_index=int(log['logIndex']),
                transaction_hash=Web3.to_hex(log['transactionHash']),
                from_address=log['args']['from'],
                to_address=log['args']['to'],
                value=int(log['args']['value']),
                formatted_value=from_base_units(log['args']['value'], token_info.decimals)
            )
            for log in matching
        ]
        events.sort(key=lambda event: (event.block_number, event.log_index))

        logger.info(f"Found {len(events)} transfers to {watched} in blocks {from_block}-{latest}")
        return events

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    async def estimate_transfer_gas(self, to_address: str, amount_in_base: int) -> int:
        """
        Estimate gas units for transfer(to, amount)

        Raises:
            GasEstimationError: If the node cannot simulate the call
        """
        try:
            estimated = await self.token_contract.functions.transfer(
                to_address, amount_in_base
            ).estimate_gas({'from': self.address})
        except Exception as e:
            raise GasEstimationError(f"Gas estimation failed: {e}") from e
        return int(estimated)

    async def quote_transfer(self, to_address: str, amount: AmountLike) -> GasQuote:
        """
        Estimate gas and cost of a transfer without sending it

        Unlike transfer_tokens, estimation failures are raised, not replaced
        with the fallback limit.
        """
        to_address = Web3.to_checksum_address(to_address)
        token_info = await self.get_token_info()
        amount_in_base = to_base_units(amount, token_info.decimals)

        estimated_gas = await self.estimate_transfer_gas(to_address, amount_in_base)
        gas_limit = apply_gas_buffer(estimated_gas, self.GAS_BUFFER_PERCENT)

        fee_data = await self.get_fee_data()
        gas_price = resolve_gas_price(fee_data, self.config.gas_price_gwei)
        cost = estimated_gas * gas_price

        return GasQuote(
            amount=str(amount),
            base_amount=amount_in_base,
            estimated_gas=estimated_gas,
            gas_limit=gas_limit,
            gas_price=gas_price,
            estimated_cost_wei=cost,
            estimated_cost_ether=format_ether(cost)
        )

    async def transfer_tokens(self, to_address: str, amount: AmountLike) -> TransferReceipt:
        """
        Transfer tokens from the signing wallet

        Process:
        1. Fetch decimals and convert amount to base units
        2. Fetch sender balance
        3. Abort if the balance is insufficient
        4. Estimate gas (fallback 150,000)
        5. Add 20% buffer
        6. Resolve gas price
        7. Sign and send
        8. Wait for 2 confirmations

        Args:
            to_address: Recipient address
            amount: Human-readable token amount

        Returns:
            TransferReceipt

        Raises:
            ValueError: Invalid recipient address or amount
            InsufficientBalanceError: Balance lower than amount; nothing sent
            QueryError: Metadata, balance or fee data could not be read
            SubmissionError: Sending failed, reverted, or timed out
        """
        to_address = Web3.to_checksum_address(to_address)

        logger.info("Initiating token transfer...")
        logger.info(f"  From: {self.address}")
        logger.info(f"  To: {to_address}")
        logger.info(f"  Amount: {amount}")

        # Steps 1-3: amount and balance
        token_info = await self.get_token_info()
        amount_in_base = to_base_units(amount, token_info.decimals)
        logger.info(f"Amount in base units: {amount_in_base}")

        balance = await self._raw_balance(self.address)
        if balance < amount_in_base:
            logger.error(f"✗ Insufficient token balance: {balance} < {amount_in_base}")
            raise InsufficientBalanceError(balance, amount_in_base, token_info.symbol)

        # Steps 4-5: gas limit
        logger.info("Estimating gas for transfer...")
        try:
            estimated_gas = await self.estimate_transfer_gas(to_address, amount_in_base)
            logger.info(f"Estimated gas: {estimated_gas}")
        except GasEstimationError as e:
            logger.warning(f"{e}; using fallback of {self.FALLBACK_GAS_LIMIT} gas")
            estimated_gas = self.FALLBACK_GAS_LIMIT

        gas_limit = apply_gas_buffer(estimated_gas, self.GAS_BUFFER_PERCENT)
        logger.info(f"Gas limit with buffer: {gas_limit}")

        # Step 6: gas price; legacy pricing needs no block data
        fee_data = FeeData(gas_price=await self._gas_price_or_none())
        gas_price = resolve_gas_price(fee_data, self.config.gas_price_gwei)
        logger.info(f"Gas price: {format_gwei(gas_price)} gwei")

        # Steps 7-8: submit and confirm
        tx_hash = await self._submit_transfer(to_address, amount_in_base, gas_limit, gas_price)
        return await self._confirm(tx_hash, gas_limit)

    async def _submit_transfer(
        self,
        to_address: str,
        amount_in_base: int,
        gas_limit: int,
        gas_price: int
    ) -> str:
        """Build, sign and broadcast the transfer; returns the 0x-prefixed hash"""
        try:
            nonce = await self.w3.eth.get_transaction_count(self.address, 'pending')
            tx = await self.token_contract.functions.transfer(
                to_address, amount_in_base
            ).build_transaction({
                'from': self.address,
                'nonce': nonce,
                'gas': gas_limit,
                'gasPrice': gas_price,
            })
            signed = self.account.sign_transaction(tx)
            tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)

        except Exception as e:
            kind = classify_submission_error(e)
            error = SubmissionError(f"Error transferring tokens: {e}", kind=kind)
            logger.error(f"✗ {error}")
            if error.hint:
                logger.error(f"  Hint: {error.hint}")
            raise error from e

        tx_hash = Web3.to_hex(tx_hash)
        logger.info(f"Transaction hash: {tx_hash}")
        return tx_hash

    async def _wait_for_confirmations(self, tx_hash: str, confirmations: int) -> Tuple[Dict[str, Any], int]:
        """Poll until the receipt is buried under enough blocks"""
        while True:
            try:
                receipt = await self.w3.eth.get_transaction_receipt(tx_hash)
                current_block = int(await self.w3.eth.block_number)
            except TransactionNotFound:
                receipt = None
            except (asyncio.TimeoutError, TimeoutError) as e:
                logger.warning(f"Receipt poll for {tx_hash} timed out, retrying: {e!r}")
                receipt = None

            # Re-read on every poll: a reorg can drop a receipt seen earlier
            if receipt is not None:
                depth = current_block - int(receipt['blockNumber']) + 1
                if depth >= confirmations:
                    return receipt, depth
                logger.debug(f"{tx_hash}: {depth}/{confirmations} confirmations")

            await asyncio.sleep(self.config.poll_interval)

    async def _confirm(self, tx_hash: str, gas_limit: int) -> TransferReceipt:
        timeout = self.config.confirmation_timeout
        logger.info("Waiting for transaction confirmation...")

        waiter = self._wait_for_confirmations(tx_hash, self.MIN_CONFIRMATIONS)
        try:
            if timeout is None:
                receipt, depth = await waiter
            else:
                try:
                    receipt, depth = await asyncio.wait_for(waiter, timeout=timeout)
                except asyncio.TimeoutError:
                    raise ConfirmationTimeoutError(tx_hash, timeout) from None
        except ConfirmationTimeoutError as error:
            logger.error(f"✗ {error}")
            raise
        except Exception as e:
            logger.error(f"✗ Error waiting for {tx_hash}: {e}")
            raise SubmissionError(
                f"Failed while waiting for confirmation of {tx_hash}: {e}",
                tx_hash=tx_hash
            ) from e

        if int(receipt['status']) != 1:
            error = SubmissionError(
                f"Transaction {tx_hash} reverted in block {receipt['blockNumber']}",
                kind=SubmissionErrorKind.REVERTED,
                tx_hash=tx_hash
            )
            logger.error(f"✗ {error}")
            raise error

        result = TransferReceipt(
            transaction_hash=tx_hash,
            block_number=int(receipt['blockNumber']),
            gas_used=int(receipt['gasUsed']),
            status=int(receipt['status']),
            confirmations=depth,
            gas_limit=gas_limit,
            effective_gas_price=receipt.get('effectiveGasPrice')
        )

        logger.info("✓ Transaction confirmed!")
        logger.info(f"  Block number: {result.block_number}")
        logger.info(f"  Gas used: {result.gas_used}")
        logger.info(f"  Gas limit: {result.gas_limit}")
        return result
