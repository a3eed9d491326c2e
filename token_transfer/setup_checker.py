"""
Setup Checker

Validates a TransferConfig before any network call is made:
1. Client library import
2. Required settings present and not placeholders
3. Token and recipient address format
4. Private key format and derived wallet address
5. RPC URL format
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urlparse

import web3
from eth_account import Account
from loguru import logger
from web3 import Web3

from .config import REQUIRED_ENV_VARS, TransferConfig, is_placeholder


PRIVATE_KEY_PATTERN = re.compile(r'^(0x)?[a-fA-F0-9]{64}$')

STATUS_OK = "ok"
STATUS_WARNING = "warning"
STATUS_ERROR = "error"


@dataclass
class CheckResult:
    """Outcome of one setup check"""
    name: str
    status: str
    message: str

    def __repr__(self):
        marker = {"ok": "✓", "warning": "⚠", "error": "✗"}.get(self.status, "?")
        return f"[{marker}] {self.name}: {self.message}"


@dataclass
class SetupReport:
    """All setup checks for one configuration"""
    results: List[CheckResult] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(result.status == STATUS_OK for result in self.results)

    def problems(self) -> List[CheckResult]:
        return [result for result in self.results if result.status != STATUS_OK]

    def add(self, name: str, status: str, message: str):
        self.results.append(CheckResult(name, status, message))


class SetupChecker:
    """
    Offline validation of transfer settings

    Features:
    - Placeholder detection (YOUR_ / your_)
    - EIP-55 aware address validation
    - Private key format check with address derivation
    - RPC URL scheme and host check
    """

    def __init__(self, config: TransferConfig):
        self.config = config

    def check_library(self, report: SetupReport):
        report.add("web3", STATUS_OK, f"web3.py {web3.__version__} imported")

    def check_required_settings(self, report: SetupReport):
        values = self.config.required_values()
        for name in REQUIRED_ENV_VARS:
            value = values.get(name)
            if not value:
                report.add(name, STATUS_ERROR, "Not set")
            elif is_placeholder(value):
                report.add(name, STATUS_WARNING, "Set but contains placeholder value")
            else:
                report.add(name, STATUS_OK, "Set")

    def check_address(self, report: SetupReport, name: str, address: Optional[str]):
        if not address or is_placeholder(address):
            return

        if Web3.is_address(address):
            report.add(f"{name} format", STATUS_OK, "Valid")
        else:
            report.add(f"{name} format", STATUS_ERROR, f"Invalid address: {address}")

    def check_private_key(self, report: SetupReport):
        key = self.config.private_key
        if not key or is_placeholder(key):
            report.add("PRIVATE_KEY format", STATUS_WARNING, "Using placeholder value")
            return

        if not PRIVATE_KEY_PATTERN.match(key):
            report.add("PRIVATE_KEY format", STATUS_ERROR, "Expected 64 hex characters")
            return

        try:
            address = Account.from_key(key).address
        except Exception as e:
            report.add("PRIVATE_KEY format", STATUS_ERROR, f"Key rejected: {e}")
            return

        report.add("PRIVATE_KEY format", STATUS_OK, f"Valid (wallet address: {address})")

    def check_rpc_url(self, report: SetupReport):
        url = self.config.rpc_url
        if not url or is_placeholder(url):
            report.add("RPC_URL format", STATUS_WARNING, "Using placeholder value")
            return

        parsed = urlparse(url)
        if parsed.scheme in ('http', 'https', 'ws', 'wss') and parsed.hostname:
            report.add("RPC_URL format", STATUS_OK, f"Valid ({parsed.scheme}://{parsed.hostname})")
        else:
            report.add("RPC_URL format", STATUS_ERROR, f"Not an http(s)/ws(s) URL: {url}")

    def run(self) -> SetupReport:
        """Run every check and log a summary"""
        report = SetupReport()

        self.check_library(report)
        self.check_required_settings(report)
        self.check_address(report, "TOKEN_CONTRACT_ADDRESS", self.config.token_address)
        self.check_address(report, "RECIPIENT_ADDRESS", self.config.recipient_address)
        self.check_private_key(report)
        self.check_rpc_url(report)

        for result in report.results:
            if result.status == STATUS_OK:
                logger.info(f"✓ {result.name}: {result.message}")
            elif result.status == STATUS_WARNING:
                logger.warning(f"⚠ {result.name}: {result.message}")
            else:
                logger.error(f"✗ {result.name}: {result.message}")

        if report.passed:
            logger.info("✓ All setup checks passed")
        else:
            logger.warning(f"{len(report.problems())} setup checks need attention")

        return report


def check_setup(config: TransferConfig) -> SetupReport:
    """Run all setup checks for config"""
    return SetupChecker(config).run()
