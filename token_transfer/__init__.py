"""
Token Transfer

ERC-20 balance queries and token transfers on Ethereum-compatible networks.

Components:
- executor: TokenTransferExecutor - metadata, balances, events, transfers
- config: TransferConfig loading from .env and YAML settings
- errors: Classified transfer errors
- units: Exact base-unit and gas arithmetic
- setup_checker: Offline validation of settings
- gas_probe: Gas estimation diagnostics
- examples: Usage scenarios
- cli: `token-transfer` command

Transfer Steps:
1. Convert amount using token decimals
2. Balance pre-check
3. Gas estimation (fallback 150,000) + 20% buffer
4. Gas price (network, configured default, or 20 gwei)
5. Sign and send
6. Wait for 2 confirmations
"""

from .config import (
    TransferConfig,
    load_config,
    missing_settings,
)
from .errors import (
    TokenTransferError,
    ConfigurationError,
    InsufficientBalanceError,
    GasEstimationError,
    SubmissionError,
    SubmissionErrorKind,
    ConfirmationTimeoutError,
    QueryError,
    classify_submission_error,
)
from .executor import (
    TokenTransferExecutor,
    ERC20_ABI,
)
from .models import (
    TokenMetadata,
    BalanceInfo,
    FeeData,
    NetworkInfo,
    TransferReceipt,
    TransferEvent,
    GasQuote,
)
from .setup_checker import (
    SetupChecker,
    SetupReport,
    check_setup,
)
from .units import (
    to_base_units,
    from_base_units,
    apply_gas_buffer,
    resolve_gas_price,
)

__all__ = [
    # Main executor
    'TokenTransferExecutor',
    'ERC20_ABI',

    # Configuration
    'TransferConfig',
    'load_config',
    'missing_settings',

    # Errors
    'TokenTransferError',
    'ConfigurationError',
    'InsufficientBalanceError',
    'GasEstimationError',
    'SubmissionError',
    'SubmissionErrorKind',
    'ConfirmationTimeoutError',
    'QueryError',
    'classify_submission_error',

    # Records
    'TokenMetadata',
    'BalanceInfo',
    'FeeData',
    'NetworkInfo',
    'TransferReceipt',
    'TransferEvent',
    'GasQuote',

    # Setup validation
    'SetupChecker',
    'SetupReport',
    'check_setup',

    # Units
    'to_base_units',
    'from_base_units',
    'apply_gas_buffer',
    'resolve_gas_price',
]

__version__ = '1.0.0'
