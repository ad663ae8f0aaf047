"""Runtime configuration from the environment (.env is loaded by the CLI)"""

import os
from dataclasses import dataclass
from pathlib import Path

from .store import DB_PATH


@dataclass
class Config:
    db_path: Path = DB_PATH
    log_level: str = "WARNING"
    receipt_dir: Path = Path("receipts")


def load_config() -> Config:
    """Read SHOPPOS_DB_PATH, SHOPPOS_LOG_LEVEL and SHOPPOS_RECEIPT_DIR"""
    return Config(
        db_path=Path(os.getenv("SHOPPOS_DB_PATH") or DB_PATH),
        log_level=(os.getenv("SHOPPOS_LOG_LEVEL") or "WARNING").upper(),
        receipt_dir=Path(os.getenv("SHOPPOS_RECEIPT_DIR") or "receipts"),
    )
