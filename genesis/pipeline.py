"""
Genesis - Pipeline.

============================================================
RESPONSIBILITY
============================================================
Builds the shared genesis document of a deployment.

- Detects whether the root directory is a fresh deployment
- Runs each service's setup against the pending document and
  collects the returned modifiers, in registration order
- Freezes the document exactly once and persists it
- Reloads the persisted document verbatim on later runs

============================================================
REPRODUCIBILITY
============================================================
The order of ``setup_one`` calls is part of the deployment's
reproducibility contract: the same services, the same setup
outputs and the same order give byte-identical genesis files.
Callers drive it from the registration sequence.

============================================================
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Tuple

from .document import GENESIS_FILE_NAME, Genesis, GenesisDoc, Modifier, ModifierError
from core.exceptions import LifecycleError, PersistenceError, StateError
from core.logging_setup import service_scope

if TYPE_CHECKING:
    from orchestrator.models import Service


CONFIG_DIR_NAME = "config"


class GenesisPipeline:
    """
    One-shot genesis builder bound to a root directory.
    """

    def __init__(self, root_dir: Path, genesis: Genesis):
        self._root_dir = Path(root_dir)
        self._genesis = genesis
        self._modifiers: List[Tuple[str, Modifier]] = []
        self._frozen: Optional[GenesisDoc] = None
        self._logger = logging.getLogger(__name__)

    # --------------------------------------------------------
    # Paths
    # --------------------------------------------------------

    @property
    def config_dir(self) -> Path:
        return self._root_dir / CONFIG_DIR_NAME

    @property
    def genesis_path(self) -> Path:
        return self.config_dir / GENESIS_FILE_NAME

    def service_dir(self, name: str) -> Path:
        return self._root_dir / name

    @property
    def frozen(self) -> Optional[GenesisDoc]:
        return self._frozen

    def fresh_deployment(self) -> bool:
        """True iff the config directory does not exist yet."""
        return not self.config_dir.exists()

    # --------------------------------------------------------
    # Setup
    # --------------------------------------------------------

    def reset(self) -> None:
        """Drop modifiers collected by an earlier, unfinished setup."""
        if self._frozen is not None:
            raise StateError(message="genesis is already frozen", operation="setup")
        self._modifiers.clear()

    def _pending(self) -> Genesis:
        return self._genesis.with_modifiers(*(m for _, m in self._modifiers))

    def pending_document(self) -> GenesisDoc:
        """Export of the base document with the modifiers collected so far."""
        try:
            return self._pending().export()
        except ModifierError as e:
            name = self._modifiers[e.index][0]
            raise LifecycleError(
                message=f"genesis modifier from service {name} failed: {e.cause}",
                operation="setup",
                service=name,
                cause=e.cause,
            ) from e
        except (TypeError, ValueError) as e:
            if not self._modifiers:
                raise PersistenceError(
                    message=f"failed to encode genesis: {e}",
                    operation="setup",
                    cause=e,
                ) from e
            # the last collected modifier left something JSON cannot encode
            name = self._modifiers[-1][0]
            raise LifecycleError(
                message=f"genesis modifier from service {name} produced an unencodable state: {e}",
                operation="setup",
                service=name,
                cause=e,
            ) from e

    async def setup_one(self, service: "Service") -> Optional[Modifier]:
        """
        Create the service's working directory and run its setup.

        Raises:
            StateError: If the document is already frozen
            PersistenceError: If the directory cannot be created
            LifecycleError: If the service's setup fails
        """
        if self._frozen is not None:
            raise StateError(
                message="genesis is already frozen",
                operation="setup",
                service=service.name,
            )

        name = service.name
        directory = self.service_dir(name)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(
                message=f"failed to create directory for service {name}: {e}",
                operation="setup",
                service=name,
                path=str(directory),
                cause=e,
            ) from e

        pending = self.pending_document()

        try:
            with service_scope(name):
                modifier = await service.setup(directory, pending)
        except Exception as e:
            raise LifecycleError(
                message=f"failed to setup service {name}: {e}",
                operation="setup",
                service=name,
                cause=e,
            ) from e

        if modifier is not None:
            self._modifiers.append((name, modifier))
            self._logger.debug(f"Collected genesis modifier from {name}")

        return modifier

    # --------------------------------------------------------
    # Freeze / Load
    # --------------------------------------------------------

    def freeze(self) -> GenesisDoc:
        """
        Apply the collected modifiers and persist the document.

        Raises:
            StateError: If called twice
            LifecycleError: If a modifier fails
            PersistenceError: If the document cannot be written
        """
        if self._frozen is not None:
            raise StateError(message="genesis is already frozen", operation="freeze")

        try:
            doc = self._pending().export()
        except ModifierError as e:
            name = self._modifiers[e.index][0]
            raise LifecycleError(
                message=f"genesis modifier from service {name} failed: {e.cause}",
                operation="freeze",
                service=name,
                cause=e.cause,
            ) from e
        except (TypeError, ValueError) as e:
            raise PersistenceError(
                message=f"failed to encode genesis: {e}",
                operation="freeze",
                cause=e,
            ) from e

        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            doc.save_as(self.genesis_path)
        except OSError as e:
            raise PersistenceError(
                message=f"failed to save genesis: {e}",
                operation="freeze",
                path=str(self.genesis_path),
                cause=e,
            ) from e

        self._frozen = doc
        self._logger.info(
            f"Genesis frozen | chain_id={doc.chain_id} | modifiers={len(self._modifiers)} "
            f"| path={self.genesis_path}"
        )
        return doc

    def load(self) -> GenesisDoc:
        """
        Read the persisted document verbatim.

        Raises:
            PersistenceError: If the file is missing or unreadable
        """
        try:
            doc = GenesisDoc.from_file(self.genesis_path)
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise PersistenceError(
                message=f"failed to load genesis from {self.genesis_path}: {e}",
                operation="setup",
                path=str(self.genesis_path),
                cause=e,
            ) from e

        self._frozen = doc
        self._logger.info(f"Loaded existing genesis from {self.config_dir}")
        return doc


__all__ = [
    "CONFIG_DIR_NAME",
    "GenesisPipeline",
]
