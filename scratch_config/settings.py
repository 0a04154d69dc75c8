"""
Scratch-Card Engine - Runtime Settings

Environment-driven knobs for batch generation. Game rules (grid sizes,
match counts, near-miss weighting) live in the project file, never here.

    SCRATCH_OUTPUT_DIR           where the CLI writes ticket files (./output)
    SCRATCH_MASTER_SEED          fixed master seed for reproducible batches
    SCRATCH_MAX_UNIQUE_ATTEMPTS  retries before a duplicate ticket aborts (1000)
    SCRATCH_SELF_VALIDATE        re-check every generated winner (true)
    SCRATCH_LOG_LEVEL            logging level name (INFO)
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else None


# ============================================================
# Generation Configuration
# ============================================================

class GenerationSettings:
    OUTPUT_DIR = Path(os.getenv("SCRATCH_OUTPUT_DIR", "./output"))
    MASTER_SEED = _optional_int("SCRATCH_MASTER_SEED")
    MAX_UNIQUE_ATTEMPTS = int(os.getenv("SCRATCH_MAX_UNIQUE_ATTEMPTS", "1000"))
    SELF_VALIDATE = os.getenv("SCRATCH_SELF_VALIDATE", "true").lower() == "true"
    LOG_LEVEL = os.getenv("SCRATCH_LOG_LEVEL", "INFO").upper()

    @classmethod
    def resolve_seed(cls, seed: Optional[int] = None) -> int:
        """Explicit seed > SCRATCH_MASTER_SEED > fresh OS entropy."""
        if seed is not None:
            return seed
        if cls.MASTER_SEED is not None:
            return cls.MASTER_SEED
        return int.from_bytes(os.urandom(8), "big")
