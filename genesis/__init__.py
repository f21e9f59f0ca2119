"""
Genesis Package - Shared Configuration Document.

Components:
- document: Genesis builder, frozen GenesisDoc, canonical encoding
- modifiers: Ready-made app-state modifiers
- pipeline: One-shot setup/freeze/load over a deployment root
"""

from .document import (
    DEFAULT_CHAIN_ID,
    GENESIS_FILE_NAME,
    Genesis,
    GenesisDoc,
    Modifier,
    ModifierError,
)
from .pipeline import CONFIG_DIR_NAME, GenesisPipeline

__all__ = [
    "DEFAULT_CHAIN_ID",
    "GENESIS_FILE_NAME",
    "CONFIG_DIR_NAME",
    "Genesis",
    "GenesisDoc",
    "Modifier",
    "ModifierError",
    "GenesisPipeline",
]
