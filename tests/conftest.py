"""
Shared fixtures for conductor tests.
"""

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple
from datetime import datetime, timezone

import pytest

from genesis.document import Genesis, GenesisDoc, Modifier
from orchestrator.models import BaseService, CancellationToken, Endpoints


GENESIS_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeService(BaseService):
    """
    Service double that records every lifecycle call.

    ``calls`` may be shared between services to observe ordering.
    """

    def __init__(
        self,
        name: str,
        requires: Sequence[str] = (),
        provides: Sequence[str] = (),
        addresses: Optional[Dict[str, str]] = None,
        modifier: Optional[Modifier] = None,
        fail_setup: bool = False,
        fail_start: bool = False,
        fail_stop: bool = False,
        calls: Optional[List[Tuple[str, str]]] = None,
    ):
        self.name = name
        self.REQUIRED_ENDPOINTS = tuple(requires)
        self.PROVIDED_ENDPOINTS = tuple(provides)
        self.addresses = addresses if addresses is not None else {
            label: f"tcp://127.0.0.1:{26650 + i}/{name}" for i, label in enumerate(provides)
        }
        self.modifier = modifier
        self.fail_setup = fail_setup
        self.fail_start = fail_start
        self.fail_stop = fail_stop
        self.calls = calls if calls is not None else []

        self.setup_dirs: List[Path] = []
        self.pending_docs: List[GenesisDoc] = []
        self.seen_endpoints: List[Endpoints] = []
        self.seen_genesis: List[GenesisDoc] = []
        self.start_tokens: List[CancellationToken] = []
        self.stop_tokens: List[CancellationToken] = []

    async def setup(self, directory, pending_genesis):
        self.calls.append(("setup", self.name))
        self.setup_dirs.append(directory)
        self.pending_docs.append(pending_genesis)
        if self.fail_setup:
            raise RuntimeError(f"{self.name} setup exploded")
        return self.modifier

    async def start(self, directory, genesis, endpoints, token):
        self.calls.append(("start", self.name))
        self.seen_endpoints.append(dict(endpoints))
        self.seen_genesis.append(genesis)
        self.start_tokens.append(token)
        if self.fail_start:
            raise RuntimeError(f"{self.name} start exploded")
        return dict(self.addresses)

    async def stop(self, token):
        self.calls.append(("stop", self.name))
        self.stop_tokens.append(token)
        if self.fail_stop:
            raise RuntimeError(f"{self.name} stop exploded")


@pytest.fixture
def fake_service():
    """Factory for FakeService."""
    return FakeService


@pytest.fixture
def genesis() -> Genesis:
    """Base genesis with a fixed time so encodings are comparable."""
    return Genesis(chain_id="test-chain", genesis_time=GENESIS_TIME)


@pytest.fixture
def calls() -> List[Tuple[str, str]]:
    return []


@pytest.fixture
def root_dir(tmp_path) -> Path:
    return tmp_path / "apollo"
