"""
Gas Probe

Diagnostics for gas problems on a token:
1. Quote gas and cost for several amounts without sending anything
2. Send one very small real transfer and explain gas failures
"""

import asyncio
from dataclasses import dataclass
from typing import List, Optional, Sequence

from loguru import logger

from .errors import SubmissionError, SubmissionErrorKind, TokenTransferError
from .executor import TokenTransferExecutor
from .models import GasQuote, TransferReceipt
from .units import format_gwei


DEFAULT_PROBE_AMOUNTS = ("0.1", "1", "10")
SMALL_TRANSFER_AMOUNT = "0.001"

GAS_SUGGESTIONS = (
    "Increase the gas limit (300000 or higher)",
    "Try a different RPC provider",
    "Check if the token contract has any special transfer requirements",
)


@dataclass
class ProbeResult:
    """Quote or error for one probed amount"""
    amount: str
    quote: Optional[GasQuote] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.quote is not None


async def probe_gas_estimation(
    executor: TokenTransferExecutor,
    to_address: str,
    amounts: Sequence[str] = DEFAULT_PROBE_AMOUNTS
) -> List[ProbeResult]:
    """
    Quote a transfer for each amount

    A failing amount is recorded and the remaining amounts are still probed.

    Args:
        executor: Executor to quote with
        to_address: Recipient used for the simulated transfer
        amounts: Human-readable amounts

    Returns:
        One ProbeResult per amount, in input order
    """
    token_info = await executor.get_token_info()
    logger.info(f"Testing gas estimation with token: {token_info.name} ({token_info.symbol})")

    results = []
    for amount in amounts:
        logger.info(f"--- Testing amount: {amount} {token_info.symbol} ---")
        try:
            quote = await executor.quote_transfer(to_address, amount)
        except (TokenTransferError, ValueError) as e:
            logger.error(f"✗ Error estimating gas for {amount}: {e}")
            results.append(ProbeResult(amount=str(amount), error=str(e)))
            continue

        logger.info(f"Estimated gas: {quote.estimated_gas}")
        logger.info(f"With 20% buffer: {quote.gas_limit}")
        logger.info(f"Current gas price: {format_gwei(quote.gas_price)} gwei")
        logger.info(f"Estimated cost: {quote.estimated_cost_ether} ETH")
        results.append(ProbeResult(amount=str(amount), quote=quote))

    return results


async def probe_small_transfer(
    executor: TokenTransferExecutor,
    to_address: str,
    amount: str = SMALL_TRANSFER_AMOUNT
) -> TransferReceipt:
    """
    Send a very small real transfer

    Raises:
        TokenTransferError: Propagated after logging gas suggestions
    """
    logger.info(f"Testing transfer of {amount} tokens...")
    try:
        receipt = await executor.transfer_tokens(to_address, amount)
    except SubmissionError as e:
        if e.kind == SubmissionErrorKind.INTRINSIC_GAS_TOO_LOW:
            logger.warning("Suggestions to fix gas issues:")
            for i, suggestion in enumerate(GAS_SUGGESTIONS, 1):
                logger.warning(f"  {i}. {suggestion}")
        raise

    logger.info("✓ Small transfer test completed successfully!")
    return receipt


async def run_gas_probe(executor: TokenTransferExecutor, send_small_transfer: bool = False):
    """Probe estimation and, when asked, send the small test transfer"""
    recipient = executor.config.recipient_address

    print("\n" + "="*80)
    print("GAS ESTIMATION PROBE")
    print("="*80)

    results = await probe_gas_estimation(executor, recipient)
    for result in results:
        if result.ok:
            print(f"  {result.amount:>8}: gas {result.quote.estimated_gas} "
                  f"(limit {result.quote.gas_limit}), cost {result.quote.estimated_cost_ether} ETH")
        else:
            print(f"  {result.amount:>8}: ✗ {result.error}")

    if send_small_transfer:
        await probe_small_transfer(executor, recipient)

    return results


if __name__ == "__main__":
    from .config import load_config

    async def _main():
        async with TokenTransferExecutor(load_config()) as executor:
            await run_gas_probe(executor)

    asyncio.run(_main())
