"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from decimal import Decimal, InvalidOperation
from pydantic import field_validator
from pydantic_settings import BaseSettings
from typing import Optional


class BankAppConfig(BaseSettings):
    """Bank application configuration"""
    
    # Flat-file persistence
    data_dir: str = "data"
    accounts_file: str = "accounts.txt"
    transactions_file: str = "transactions.txt"
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stderr
    
    # Account product defaults (money values kept as strings, parsed to Decimal)
    savings_interest_rate: str = "3.5"
    savings_minimum_balance: str = "500"
    checking_overdraft_limit: str = "1000"
    checking_monthly_fee: str = "10"
    premium_minimum_balance: str = "10000"
    
    # Identifier formats
    account_number_prefix: str = "ACC"
    transaction_id_prefix: str = "TXN"
    customer_id_prefix: str = "CUST"
    id_width: int = 3
    
    # Concurrent simulation
    simulation_timeout_seconds: float = 5.0
    
    @field_validator(
        "savings_interest_rate", "savings_minimum_balance", "checking_overdraft_limit",
        "checking_monthly_fee", "premium_minimum_balance"
    )
    @classmethod
    def validate_decimal_string(cls, value: str) -> str:
        try:
            parsed = Decimal(value)
        except InvalidOperation:
            raise ValueError(f"Not a decimal number: {value!r}")
        if not parsed.is_finite() or parsed < 0:
            raise ValueError(f"Must be a non-negative number: {value!r}")
        return value

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, value: str) -> str:
        if value not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return value

    @field_validator("id_width")
    @classmethod
    def validate_id_width(cls, value: int) -> int:
        if value < 1:
            raise ValueError("id_width must be at least 1")
        return value
    
    class Config:
        env_prefix = "BANKAPP_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = BankAppConfig()


def get_config() -> BankAppConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> BankAppConfig:
    """Reload configuration from environment"""
    global config
    config = BankAppConfig()
    return config
