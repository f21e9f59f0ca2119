"""
Tests for the genesis builder, document and modifiers.

============================================================
PURPOSE
============================================================
- Builders never mutate the receiver
- Modifiers run in order on a copy of the base state
- Encoding is canonical and reloads verbatim

============================================================
"""

import json
from datetime import datetime, timezone

import pytest

from genesis.document import Genesis, GenesisDoc, ModifierError, encode_document
from genesis.modifiers import (
    add_account,
    add_balance,
    add_gen_tx,
    add_validator,
    compose,
    set_module_state,
)


def _append(tag):
    def modifier(state):
        state.setdefault("trace", []).append(tag)
        return state
    return modifier


class TestGenesisBuilder:

    def test_with_methods_return_new_builders(self, genesis):
        renamed = genesis.with_chain_id("other")

        assert renamed is not genesis
        assert genesis.chain_id == "test-chain"
        assert renamed.chain_id == "other"
        assert renamed.genesis_time == genesis.genesis_time

    def test_modifiers_append_in_order(self, genesis):
        first = _append("a")
        second = _append("b")

        built = genesis.with_modifiers(first).with_modifiers(second)

        assert built.modifiers == (first, second)
        assert genesis.modifiers == ()

    def test_default_time_is_utc(self):
        assert Genesis.default().genesis_time.tzinfo is not None

    def test_naive_time_assumed_utc(self):
        built = Genesis(genesis_time=datetime(2024, 5, 1, 12, 0))
        assert built.genesis_time == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class TestExport:

    def test_modifiers_applied_in_order(self, genesis):
        doc = genesis.with_modifiers(_append("a"), _append("b"), _append("c")).export()
        assert doc.app_state["trace"] == ["a", "b", "c"]

    def test_export_does_not_touch_builder(self, genesis):
        built = genesis.with_modifiers(_append("a"))
        built.export()

        assert built.export().app_state["trace"] == ["a"]
        assert "trace" not in genesis.export().app_state

    def test_export_is_deterministic(self, genesis):
        built = genesis.with_modifiers(add_account("acc1"), add_balance("acc1", {"utia": 10}))
        assert built.export().to_bytes() == built.export().to_bytes()

    def test_failing_modifier(self, genesis):
        def boom(state):
            raise ValueError("bad state")

        with pytest.raises(ModifierError) as exc_info:
            genesis.with_modifiers(_append("ok"), boom).export()

        assert exc_info.value.index == 1
        assert isinstance(exc_info.value.cause, ValueError)

    def test_non_mapping_result(self, genesis):
        with pytest.raises(ModifierError) as exc_info:
            genesis.with_modifiers(lambda state: None).export()
        assert exc_info.value.index == 0


class TestGenesisDoc:

    def test_canonical_encoding(self, genesis):
        raw = genesis.export().to_bytes()
        text = raw.decode("utf-8")

        assert text.endswith("\n")
        assert list(json.loads(text)) == sorted(json.loads(text))
        assert '\n  "app_state"' in text

    def test_encode_keeps_unicode(self):
        assert encode_document({"memo": "ü"}) == '{\n  "memo": "ü"\n}\n'.encode("utf-8")

    def test_round_trip_keeps_raw_bytes(self, genesis):
        # hand-written file with a layout the encoder would never produce
        raw = json.dumps(genesis.export().to_dict()).encode("utf-8")

        doc = GenesisDoc.from_bytes(raw)

        assert doc.to_bytes() == raw
        assert doc.chain_id == "test-chain"
        assert doc.genesis_time == genesis.genesis_time

    def test_save_and_load(self, genesis, tmp_path):
        doc = genesis.with_modifiers(add_account("acc1")).export()
        path = tmp_path / "config" / "genesis.json"

        doc.save_as(path)
        loaded = GenesisDoc.from_file(path)

        assert loaded == doc
        assert path.read_bytes() == doc.to_bytes()

    def test_module_state_is_a_copy(self, genesis):
        doc = genesis.export()
        doc.module_state("auth")["accounts"].append("x")

        assert doc.module_state("auth")["accounts"] == []
        assert doc.module_state("missing") is None


class TestModifiers:

    def test_add_account_numbers_sequentially(self, genesis):
        doc = genesis.with_modifiers(add_account("a"), add_account("b", "pk")).export()
        accounts = doc.module_state("auth")["accounts"]

        assert [a["account_number"] for a in accounts] == ["0", "1"]
        assert accounts[1]["pub_key"] == "pk"

    def test_add_balance_grows_supply(self, genesis):
        doc = genesis.with_modifiers(
            add_balance("a", {"utia": 5, "stake": 1}),
            add_balance("b", {"utia": 7}),
        ).export()
        bank = doc.module_state("bank")

        assert bank["balances"][0]["coins"] == [
            {"denom": "stake", "amount": "1"},
            {"denom": "utia", "amount": "5"},
        ]
        assert bank["supply"] == [
            {"denom": "stake", "amount": "1"},
            {"denom": "utia", "amount": "12"},
        ]

    def test_add_validator(self, genesis):
        gen_tx = {"body": {"messages": [{"@type": "MsgCreateValidator"}]}}
        doc = genesis.with_modifiers(add_validator("val", "pk", {"utia": 100}, gen_tx)).export()

        assert doc.module_state("auth")["accounts"][0]["address"] == "val"
        assert doc.module_state("bank")["balances"][0]["address"] == "val"
        assert doc.module_state("genutil")["gen_txs"] == [gen_tx]

    def test_set_module_state_and_compose(self, genesis):
        combined = compose(set_module_state("blob", {"params": {}}), add_gen_tx({"id": 1}))
        doc = genesis.with_modifiers(combined).export()

        assert doc.module_state("blob") == {"params": {}}
        assert doc.module_state("genutil")["gen_txs"] == [{"id": 1}]
