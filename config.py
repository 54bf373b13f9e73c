# config.py
"""
Runtime configuration for the supply-chain ledger.

Values come from the environment (a local .env file is loaded first).
Every ledger component also accepts these as constructor arguments, so
tests and embedding applications can override them without touching
the environment.
"""
import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
     return os.getenv(name, default).lower() == "true"


# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./supply_chain_ledger.db")
SQL_ECHO = _env_bool("SQL_ECHO")

# Mining
MINING_DIFFICULTY = int(os.getenv("MINING_DIFFICULTY", "4"))
MINING_MAX_ITERATIONS = int(os.getenv("MINING_MAX_ITERATIONS", "100000"))
MINING_MAX_SECONDS = float(os.getenv("MINING_MAX_SECONDS", "0"))  # 0 = no deadline

# Chain
GENESIS_HASH = os.getenv("BLOCKCHAIN_GENESIS_HASH", "0" * 64)
LEDGER_WRITE_RETRIES = int(os.getenv("LEDGER_WRITE_RETRIES", "3"))

# Cold chain range in degrees Celsius, inclusive
COLD_CHAIN_MIN_C = float(os.getenv("COLD_CHAIN_MIN_C", "2"))
COLD_CHAIN_MAX_C = float(os.getenv("COLD_CHAIN_MAX_C", "8"))

# HTTP
CORS_ORIGINS = [origin for origin in os.getenv("CORS_ORIGINS", "").split(",") if origin]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
