"""
Genesis - Document.

============================================================
RESPONSIBILITY
============================================================
The shared configuration document of a deployment.

- Genesis: immutable builder (base template + ordered modifiers)
- GenesisDoc: the exported, frozen document
- Canonical encoding so identical inputs give identical bytes

============================================================
DOCUMENT SHAPE
============================================================
{
    "app_state": {"<module>": <opaque JSON blob>, ...},
    "chain_id": "private",
    "consensus_params": {...},
    "genesis_time": "2024-01-01T00:00:00+00:00",
    "initial_height": 1
}

============================================================
"""

import copy
import json
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional, Tuple


Modifier = Callable[[Dict[str, Any]], Dict[str, Any]]
"""Transformation of the app state, contributed by a service during setup."""

DEFAULT_CHAIN_ID = "private"

GENESIS_FILE_NAME = "genesis.json"


def default_app_state() -> Dict[str, Any]:
    """Empty module states every deployment starts from."""
    return {
        "auth": {"accounts": [], "params": {}},
        "bank": {"balances": [], "supply": []},
        "genutil": {"gen_txs": []},
    }


def default_consensus_params() -> Dict[str, Any]:
    return {
        "block": {"max_bytes": "22020096", "max_gas": "-1"},
        "evidence": {"max_age_num_blocks": "100000", "max_bytes": "1048576"},
        "validator": {"pub_key_types": ["ed25519"]},
    }


def encode_document(data: Dict[str, Any]) -> bytes:
    """Canonical encoding: sorted keys, two-space indent, trailing newline."""
    return (json.dumps(data, sort_keys=True, indent=2, ensure_ascii=False) + "\n").encode("utf-8")


class ModifierError(Exception):
    """A modifier raised or returned something other than a state mapping."""

    def __init__(self, index: int, cause: BaseException):
        super().__init__(f"modifier #{index} failed: {cause}")
        self.index = index
        self.cause = cause


# ============================================================
# EXPORTED DOCUMENT
# ============================================================

@dataclass(frozen=True)
class GenesisDoc:
    """Frozen configuration document."""

    chain_id: str
    genesis_time: datetime
    initial_height: int
    consensus_params: Dict[str, Any]
    app_state: Dict[str, Any]
    raw: bytes = field(default=b"", repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "app_state": copy.deepcopy(self.app_state),
            "chain_id": self.chain_id,
            "consensus_params": copy.deepcopy(self.consensus_params),
            "genesis_time": self.genesis_time.isoformat(),
            "initial_height": self.initial_height,
        }

    def to_bytes(self) -> bytes:
        """Encoded form; verbatim file contents for loaded documents."""
        return self.raw or encode_document(self.to_dict())

    def module_state(self, module: str) -> Any:
        """Copy of one module's state, or None."""
        return copy.deepcopy(self.app_state.get(module))

    def save_as(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.to_bytes())

    @classmethod
    def from_bytes(cls, raw: bytes) -> "GenesisDoc":
        """Decode a document, keeping the original bytes."""
        data = json.loads(raw.decode("utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"genesis must be a JSON object, got {type(data).__name__}")
        return cls(
            chain_id=data["chain_id"],
            genesis_time=datetime.fromisoformat(data["genesis_time"]),
            initial_height=int(data.get("initial_height", 1)),
            consensus_params=data.get("consensus_params", {}),
            app_state=data.get("app_state", {}),
            raw=raw,
        )

    @classmethod
    def from_file(cls, path: Path) -> "GenesisDoc":
        return cls.from_bytes(Path(path).read_bytes())


# ============================================================
# BUILDER
# ============================================================

class Genesis:
    """
    Immutable genesis builder.

    Every ``with_*`` call returns a new builder; modifiers are
    applied in the order they were added when ``export`` runs.
    """

    def __init__(
        self,
        chain_id: str = DEFAULT_CHAIN_ID,
        genesis_time: Optional[datetime] = None,
        initial_height: int = 1,
        consensus_params: Optional[Dict[str, Any]] = None,
        app_state: Optional[Dict[str, Any]] = None,
        modifiers: Iterable[Modifier] = (),
    ):
        if genesis_time is None:
            genesis_time = datetime.now(timezone.utc).replace(microsecond=0)
        elif genesis_time.tzinfo is None:
            genesis_time = genesis_time.replace(tzinfo=timezone.utc)

        self._chain_id = chain_id
        self._genesis_time = genesis_time
        self._initial_height = initial_height
        self._consensus_params = copy.deepcopy(
            consensus_params if consensus_params is not None else default_consensus_params()
        )
        self._app_state = copy.deepcopy(
            app_state if app_state is not None else default_app_state()
        )
        self._modifiers: Tuple[Modifier, ...] = tuple(modifiers)

    @classmethod
    def default(cls) -> "Genesis":
        """Genesis for a private chain starting now."""
        return cls()

    # --------------------------------------------------------
    # Properties
    # --------------------------------------------------------

    @property
    def chain_id(self) -> str:
        return self._chain_id

    @property
    def genesis_time(self) -> datetime:
        return self._genesis_time

    @property
    def modifiers(self) -> Tuple[Modifier, ...]:
        return self._modifiers

    # --------------------------------------------------------
    # Builders
    # --------------------------------------------------------

    def _replace(self, **overrides: Any) -> "Genesis":
        params = {
            "chain_id": self._chain_id,
            "genesis_time": self._genesis_time,
            "initial_height": self._initial_height,
            "consensus_params": self._consensus_params,
            "app_state": self._app_state,
            "modifiers": self._modifiers,
        }
        params.update(overrides)
        return Genesis(**params)

    def with_chain_id(self, chain_id: str) -> "Genesis":
        return self._replace(chain_id=chain_id)

    def with_genesis_time(self, genesis_time: datetime) -> "Genesis":
        return self._replace(genesis_time=genesis_time)

    def with_initial_height(self, initial_height: int) -> "Genesis":
        return self._replace(initial_height=initial_height)

    def with_modifiers(self, *modifiers: Modifier) -> "Genesis":
        return self._replace(modifiers=self._modifiers + tuple(modifiers))

    # --------------------------------------------------------
    # Export
    # --------------------------------------------------------

    def export(self) -> GenesisDoc:
        """
        Apply all modifiers to a copy of the base state.

        Raises:
            ModifierError: If a modifier fails or returns a non-mapping
        """
        state = copy.deepcopy(self._app_state)

        for index, modifier in enumerate(self._modifiers):
            try:
                state = modifier(state)
            except Exception as e:
                raise ModifierError(index, e) from e
            if not isinstance(state, dict):
                raise ModifierError(
                    index, TypeError(f"expected dict, got {type(state).__name__}")
                )

        doc = GenesisDoc(
            chain_id=self._chain_id,
            genesis_time=self._genesis_time,
            initial_height=self._initial_height,
            consensus_params=copy.deepcopy(self._consensus_params),
            app_state=state,
        )
        return replace(doc, raw=encode_document(doc.to_dict()))


__all__ = [
    "Modifier",
    "ModifierError",
    "DEFAULT_CHAIN_ID",
    "GENESIS_FILE_NAME",
    "default_app_state",
    "default_consensus_params",
    "encode_document",
    "GenesisDoc",
    "Genesis",
]
