"""
Runtime configuration for EduLedger.

Values come from the environment, optionally seeded from a project-level
.env file:
- EDULEDGER_DB_PATH: SQLite ledger path (default: ~/.eduledger/ledger.db)
- EDULEDGER_CATALOG_DIR: directory of curriculum YAML files (default: catalog/)
- EDULEDGER_ACTOR: name recorded on promotions, demotions and resets
- EDULEDGER_LOG_LEVEL: logging level for the scripts (default: INFO)
"""

import os
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).parent.parent
load_dotenv(PROJECT_ROOT / ".env")


DEFAULT_DATA_DIR = Path.home() / ".eduledger"
DEFAULT_DB_PATH = Path(os.environ.get("EDULEDGER_DB_PATH", DEFAULT_DATA_DIR / "ledger.db")).expanduser()
DEFAULT_CATALOG_DIR = Path(os.environ.get("EDULEDGER_CATALOG_DIR", PROJECT_ROOT / "catalog")).expanduser()
DEFAULT_ACTOR = os.environ.get("EDULEDGER_ACTOR", "admin")
LOG_LEVEL = os.environ.get("EDULEDGER_LOG_LEVEL", "INFO").upper()
