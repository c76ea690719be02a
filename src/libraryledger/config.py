"""Configuration management for libraryledger.

Loads configuration from environment variables and provides defaults.
"""

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

DEFAULT_DB_PATH = Path.home() / ".libraryledger" / "ledger.db"


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: Path
    db_timeout: float  # seconds, SQLite busy timeout

    # Lending rules
    loan_days: int
    fine_per_day: Decimal

    # Concurrency
    lock_timeout: float  # seconds to wait for a book lock
    release_retry_max: int
    release_retry_delay: float  # seconds

    # Logging
    log_level: str

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path_str = os.environ.get("LEDGER_DB_PATH", str(DEFAULT_DB_PATH))
        db_path = Path(db_path_str).expanduser() if db_path_str != ":memory:" else Path(db_path_str)

        try:
            fine_per_day = Decimal(os.environ.get("LEDGER_FINE_PER_DAY", "5.00"))
        except InvalidOperation:
            fine_per_day = Decimal("-1")  # reported by validate()

        return cls(
            db_path=db_path,
            db_timeout=float(os.environ.get("LEDGER_DB_TIMEOUT", "30")),
            loan_days=int(os.environ.get("LEDGER_LOAN_DAYS", "14")),
            fine_per_day=fine_per_day,
            lock_timeout=float(os.environ.get("LEDGER_LOCK_TIMEOUT", "10")),
            release_retry_max=int(os.environ.get("LEDGER_RELEASE_RETRY_MAX", "3")),
            release_retry_delay=float(
                os.environ.get("LEDGER_RELEASE_RETRY_DELAY", "0.05")
            ),
            log_level=os.environ.get("LEDGER_LOG_LEVEL", "WARNING").upper(),
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if self.loan_days < 1:
            errors.append(f"Loan period must be at least one day: {self.loan_days}")
        if self.fine_per_day < 0:
            errors.append("Fine per day must be a non-negative amount")
        if self.release_retry_max < 1:
            errors.append("Release retry count must be at least 1")
        if self.lock_timeout <= 0:
            errors.append("Lock timeout must be positive")
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"Unknown log level: {self.log_level}")

        # Check database directory is writable
        if str(self.db_path) != ":memory:" and not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        return errors


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None
