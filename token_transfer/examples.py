"""
Token Transfer Examples

Usage scenarios against a live endpoint:
1. Network Information
2. Token Information
3. Balance Check
4. Token Transfer (described only, never sent)
5. Batch Operations - concurrent read queries
6. Custom amount - balance sufficiency check
7. Error Handling - invalid address
"""

import asyncio
from decimal import Decimal
from typing import Optional

from loguru import logger

from .errors import QueryError
from .executor import TokenTransferExecutor
from .units import to_base_units


INVALID_ADDRESS = "0xInvalidAddress"


# ============================================================================
# Examples 1-5: Read queries
# ============================================================================

async def run_examples(executor: TokenTransferExecutor):
    """
    Examples 1-5

    Demonstrates:
    - Network info, token info and balance queries
    - Running independent queries concurrently
    """
    print("\n=== Example 1: Network Information ===")
    await executor.get_network_info()

    print("\n=== Example 2: Token Information ===")
    token_info = await executor.get_token_info()
    print(f"  {token_info.name} ({token_info.symbol}), {token_info.decimals} decimals")

    print("\n=== Example 3: Balance Check ===")
    balance = await executor.get_balance()
    print(f"  {balance.formatted_balance} {token_info.symbol}")

    print("\n=== Example 4: Token Transfer (Commented for Safety) ===")
    print("  Run `token-transfer transfer <address> 0.1` to perform an actual transfer")

    print("\n=== Example 5: Batch Operations ===")
    network, token, balance = await asyncio.gather(
        executor.get_network_info(),
        executor.get_token_info(),
        executor.get_balance()
    )
    print(f"  Chain {network.chain_id}, block {network.block_number}: "
          f"{balance.formatted_balance} {token.symbol}")


# ============================================================================
# Example 6: Custom amount
# ============================================================================

async def custom_example(
    executor: TokenTransferExecutor,
    recipient: Optional[str] = None,
    amount: Decimal = Decimal("0.5")
) -> bool:
    """
    Example 6: check whether the wallet can cover amount

    No transfer is sent.

    Returns:
        True when the balance is sufficient
    """
    recipient = recipient or executor.config.recipient_address
    print(f"\nPreparing to transfer {amount} tokens to {recipient}")

    balance_info = await executor.get_balance()
    amount_in_base = to_base_units(amount, balance_info.token_info.decimals)

    if balance_info.balance >= amount_in_base:
        print("✅ Sufficient balance for transfer")
        return True

    print("❌ Insufficient balance for transfer")
    return False


# ============================================================================
# Example 7: Error handling
# ============================================================================

async def error_handling_example(executor: TokenTransferExecutor) -> Optional[QueryError]:
    """Example 7: query an invalid address and catch the QueryError"""
    try:
        await executor.get_balance(INVALID_ADDRESS)
    except QueryError as e:
        print(f"✅ Caught expected error for invalid address: {e}")
        return e

    logger.warning(f"Balance query for {INVALID_ADDRESS} unexpectedly succeeded")
    return None


async def run_all_examples(executor: TokenTransferExecutor):
    """Run all examples in order"""
    print("\n" + "="*80)
    print("TOKEN TRANSFER EXAMPLES")
    print("="*80)

    await run_examples(executor)
    await custom_example(executor)
    await error_handling_example(executor)

    print("\n✅ Examples completed!")


if __name__ == "__main__":
    from .config import load_config

    async def _main():
        async with TokenTransferExecutor(load_config()) as executor:
            await run_all_examples(executor)

    asyncio.run(_main())
