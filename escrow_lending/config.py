"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based
configuration, and the contract state that the lending system initializes from it.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

from pydantic_settings import BaseSettings


class EscrowLendingConfig(BaseSettings):
    """Escrow lending system configuration"""

    # Storage configuration
    database_url: str = "sqlite:///escrow_lending.db"  # or memory://

    # Contract parameters
    max_loans: int = 5000
    escrow_fee: int = 500
    governance_contract: str = "SP000000000000000000002Q6VF78"
    repayment_contract: str = "SP000000000000000000002Q6VF79"
    pool_contract: str = "SP000000000000000000002Q6VF7A"
    oracle_contract: Optional[str] = None
    reserved_identity: str = "ST1BORROWER"  # Disbursing authority, never a borrower
    custody_identity: str = "contract"

    # Oracle service configuration
    oracle_service_url: str = ""  # Empty requires sandbox_mode
    oracle_timeout: float = 2.0
    oracle_api_key: str = ""

    # Sandbox oracle answers, used when no oracle service is configured
    sandbox_mode: bool = False
    approved_proposals: List[int] = []
    repaid_loans: List[int] = []
    verified_proposals: List[int] = []

    # Initial pool funding, applied once per pool (JSON, e.g. {"1": 10000})
    pool_balances: Dict[int, int] = {}

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8091

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    # Feature flags
    enable_audit_logging: bool = True

    class Config:
        env_prefix = "ESCROW_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = EscrowLendingConfig()


def get_config() -> EscrowLendingConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> EscrowLendingConfig:
    """Reload configuration from environment"""
    global config
    config = EscrowLendingConfig()
    return config


@dataclass
class ContractState:
    """
    Process-wide contract parameters owned by the lending system.

    Set once at initialization; the oracle address is the only field with an
    administrative mutator.
    """
    max_loans: int
    escrow_fee: int
    governance_contract: str
    repayment_contract: str
    pool_contract: str
    reserved_identity: str
    custody_identity: str
    oracle_contract: Optional[str] = None

    @classmethod
    def from_config(cls, cfg: EscrowLendingConfig) -> 'ContractState':
        return cls(
            max_loans=cfg.max_loans,
            escrow_fee=cfg.escrow_fee,
            governance_contract=cfg.governance_contract,
            repayment_contract=cfg.repayment_contract,
            pool_contract=cfg.pool_contract,
            reserved_identity=cfg.reserved_identity,
            custody_identity=cfg.custody_identity,
            oracle_contract=cfg.oracle_contract or None
        )

    @property
    def has_oracle(self) -> bool:
        return bool(self.oracle_contract)

    def set_oracle_contract(self, address: str) -> None:
        """Register (or overwrite) the impact oracle address"""
        if not address:
            raise ValueError("Oracle address must not be empty")
        self.oracle_contract = address

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
