"""
Command-line entry point

    token-transfer run [--amount 1]
    token-transfer info | token | balance [ADDRESS]
    token-transfer transfer TO AMOUNT
    token-transfer events [--from-block N]
    token-transfer check-setup | gas-probe [--send-small] | examples
"""

import argparse
import asyncio
import sys
from typing import Awaitable, Callable, List, Optional

from loguru import logger

from .config import TransferConfig, load_config, missing_settings
from .errors import TokenTransferError
from .examples import run_all_examples
from .executor import TokenTransferExecutor
from .gas_probe import run_gas_probe
from .setup_checker import check_setup


LOG_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}"

Command = Callable[[TokenTransferExecutor, argparse.Namespace], Awaitable[None]]


def configure_logging(level: str):
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)


async def _run(executor: TokenTransferExecutor, args: argparse.Namespace):
    """Full flow: network info, balances, transfer, updated balances"""
    recipient = executor.config.recipient_address

    await executor.get_network_info()
    await executor.get_balance()
    if recipient.lower() != executor.address.lower():
        await executor.get_balance(recipient)

    receipt = await executor.transfer_tokens(recipient, args.amount)
    print(f"Transferred {args.amount} tokens in block {receipt.block_number} ({receipt.transaction_hash})")

    logger.info("Updated Balances:")
    await executor.get_balance()
    await executor.get_balance(recipient)


async def _info(executor: TokenTransferExecutor, args: argparse.Namespace):
    info = await executor.get_network_info()
    print(f"{info.name} (chain {info.chain_id}) at block {info.block_number}")


async def _token(executor: TokenTransferExecutor, args: argparse.Namespace):
    token = await executor.get_token_info()
    print(f"{token.name} ({token.symbol}), {token.decimals} decimals")


async def _balance(executor: TokenTransferExecutor, args: argparse.Namespace):
    balance = await executor.get_balance(args.address)
    print(f"{balance.address}: {balance.formatted_balance} {balance.token_info.symbol}")


async def _transfer(executor: TokenTransferExecutor, args: argparse.Namespace):
    receipt = await executor.transfer_tokens(args.to, args.amount)
    print(f"Confirmed in block {receipt.block_number}: {receipt.transaction_hash}")


async def _events(executor: TokenTransferExecutor, args: argparse.Namespace):
    events = await executor.get_transfer_events(args.from_block)
    for event in events:
        print(f"block {event.block_number:>10}  {event.from_address} -> {event.to_address}  "
              f"{event.formatted_value}  {event.transaction_hash}")
    print(f"{len(events)} transfer(s)")


async def _gas_probe(executor: TokenTransferExecutor, args: argparse.Namespace):
    await run_gas_probe(executor, send_small_transfer=args.send_small)


async def _examples(executor: TokenTransferExecutor, args: argparse.Namespace):
    await run_all_examples(executor)


async def _with_executor(config: TransferConfig, command: Command, args: argparse.Namespace):
    async with TokenTransferExecutor(config) as executor:
        await command(executor, args)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="token-transfer", description="ERC-20 token transfer tool")
    parser.add_argument("--env-file", help=".env file to load")
    parser.add_argument("--settings", help="YAML settings file (default: token_transfer.yaml)")
    parser.add_argument("--log-level", help="Override the configured log level")

    # No subcommand behaves like `run`
    parser.set_defaults(func=_run, amount="1")

    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Show balances and transfer to the configured recipient")
    run_parser.add_argument("--amount", default="1")
    run_parser.set_defaults(func=_run)

    subparsers.add_parser("info", help="Network information").set_defaults(func=_info)
    subparsers.add_parser("token", help="Token information").set_defaults(func=_token)

    balance_parser = subparsers.add_parser("balance", help="Token balance (default: own wallet)")
    balance_parser.add_argument("address", nargs="?")
    balance_parser.set_defaults(func=_balance)

    transfer_parser = subparsers.add_parser("transfer", help="Transfer tokens")
    transfer_parser.add_argument("to")
    transfer_parser.add_argument("amount")
    transfer_parser.set_defaults(func=_transfer)

    events_parser = subparsers.add_parser("events", help="Transfers received by the configured recipient")
    events_parser.add_argument("--from-block", type=int, default=0)
    events_parser.set_defaults(func=_events)

    probe_parser = subparsers.add_parser("gas-probe", help="Gas estimation diagnostics")
    probe_parser.add_argument("--send-small", action="store_true", help="Also send a 0.001 token transfer")
    probe_parser.set_defaults(func=_gas_probe)

    subparsers.add_parser("examples", help="Run usage examples").set_defaults(func=_examples)
    subparsers.add_parser("check-setup", help="Validate settings without network calls")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(env_file=args.env_file, settings_path=args.settings)
    configure_logging(args.log_level or config.log_level)

    if args.command == "check-setup":
        return 0 if check_setup(config).passed else 1

    missing = missing_settings(config)
    if missing:
        logger.error("Missing or invalid environment variables:")
        for name in missing:
            logger.error(f"   - {name}")
        logger.error("Please update your .env file with valid values.")
        return 1

    try:
        asyncio.run(_with_executor(config, args.func, args))
    except (TokenTransferError, ValueError) as e:
        logger.error(f"Application error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
