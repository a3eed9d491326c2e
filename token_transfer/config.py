"""
Configuration

Builds a TransferConfig once at process start:
- Secrets and addresses from the environment (.env via python-dotenv)
- Optional tunables from a YAML settings file

The executor only ever receives the finished TransferConfig.
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from dotenv import load_dotenv
from loguru import logger


REQUIRED_ENV_VARS = ['RPC_URL', 'PRIVATE_KEY', 'TOKEN_CONTRACT_ADDRESS', 'RECIPIENT_ADDRESS']
PLACEHOLDER_MARKERS = ('YOUR_', 'your_')

DEFAULT_SETTINGS_PATH = "token_transfer.yaml"


@dataclass
class TransferConfig:
    """Settings for one TokenTransferExecutor"""
    rpc_url: str
    private_key: str = field(repr=False)
    token_address: str
    recipient_address: str
    gas_price_gwei: Optional[Decimal] = None

    # Tunables
    confirmation_timeout: Optional[float] = None  # None waits indefinitely
    poll_interval: float = 2.0
    request_timeout: float = 30.0
    log_level: str = "INFO"

    def required_values(self) -> Dict[str, str]:
        """Required settings keyed by their environment variable name"""
        return {
            'RPC_URL': self.rpc_url,
            'PRIVATE_KEY': self.private_key,
            'TOKEN_CONTRACT_ADDRESS': self.token_address,
            'RECIPIENT_ADDRESS': self.recipient_address,
        }


def is_placeholder(value: Optional[str]) -> bool:
    return bool(value) and any(marker in value for marker in PLACEHOLDER_MARKERS)


def missing_settings(config: TransferConfig) -> List[str]:
    """
    List required settings that are empty or still hold placeholder text

    Args:
        config: Loaded configuration

    Returns:
        Environment variable names needing attention, in REQUIRED_ENV_VARS order
    """
    values = config.required_values()
    return [
        name for name in REQUIRED_ENV_VARS
        if not values.get(name) or is_placeholder(values[name])
    ]


def _parse_gas_price(raw: Optional[str]) -> Optional[Decimal]:
    if not raw:
        return None
    try:
        return Decimal(raw.strip())
    except InvalidOperation:
        logger.warning(f"Ignoring invalid GAS_PRICE_GWEI value: {raw!r}")
        return None


def _load_settings(settings_path: Path) -> Dict:
    """Load tunables from YAML, falling back to defaults"""
    if not settings_path.exists():
        logger.debug(f"No settings file at {settings_path}, using defaults")
        return {}

    try:
        with open(settings_path, 'r', encoding='utf-8') as f:
            settings = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load settings from {settings_path}: {e}, using defaults")
        return {}

    if not isinstance(settings, dict):
        logger.warning(f"Settings file {settings_path} is not a mapping, using defaults")
        return {}

    logger.info(f"Loaded settings from {settings_path}: {sorted(settings)}")
    return settings


def load_config(
    env_file: Optional[str] = None,
    settings_path: Optional[str] = None
) -> TransferConfig:
    """
    Build a TransferConfig from the environment and the settings file

    Args:
        env_file: .env file to load (python-dotenv searches upwards when None)
        settings_path: YAML tunables file (default: token_transfer.yaml)

    Returns:
        TransferConfig; required values may be empty, see missing_settings()
    """
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    settings = _load_settings(Path(settings_path or DEFAULT_SETTINGS_PATH))

    timeout = settings.get('confirmation_timeout_seconds')

    return TransferConfig(
        rpc_url=os.getenv('RPC_URL', ''),
        private_key=os.getenv('PRIVATE_KEY', ''),
        token_address=os.getenv('TOKEN_CONTRACT_ADDRESS', ''),
        recipient_address=os.getenv('RECIPIENT_ADDRESS', ''),
        gas_price_gwei=_parse_gas_price(os.getenv('GAS_PRICE_GWEI')),
        confirmation_timeout=float(timeout) if timeout is not None else None,
        poll_interval=float(settings.get('poll_interval_seconds', 2.0)),
        request_timeout=float(settings.get('request_timeout_seconds', 30.0)),
        log_level=str(settings.get('log_level', 'INFO')).upper(),
    )
