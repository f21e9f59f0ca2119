"""
Genesis - Modifiers.

Ready-made app-state modifiers for services to return from
``setup``. Each function returns a new modifier; modifiers
mutate and return the state mapping they are given.
"""

import copy
from typing import Any, Dict, Mapping, Optional

from .document import Modifier


def _module(state: Dict[str, Any], name: str) -> Dict[str, Any]:
    return state.setdefault(name, {})


def _coins(coins: Mapping[str, int]) -> list:
    # sorted by denom so identical inputs encode identically
    return [{"denom": denom, "amount": str(amount)} for denom, amount in sorted(coins.items())]


def compose(*modifiers: Modifier) -> Modifier:
    """Apply several modifiers in order as one."""

    def modifier(state: Dict[str, Any]) -> Dict[str, Any]:
        for m in modifiers:
            state = m(state)
        return state

    return modifier


def set_module_state(module: str, module_state: Any) -> Modifier:
    """Replace one module's state wholesale."""

    def modifier(state: Dict[str, Any]) -> Dict[str, Any]:
        state[module] = copy.deepcopy(module_state)
        return state

    return modifier


def add_account(address: str, pub_key: Optional[str] = None) -> Modifier:
    """Add a base account to the auth state; account numbers are sequential."""

    def modifier(state: Dict[str, Any]) -> Dict[str, Any]:
        accounts = _module(state, "auth").setdefault("accounts", [])
        accounts.append({
            "address": address,
            "pub_key": pub_key,
            "account_number": str(len(accounts)),
            "sequence": "0",
        })
        return state

    return modifier


def add_balance(address: str, coins: Mapping[str, int]) -> Modifier:
    """Fund an address in the bank state and grow the supply."""

    def modifier(state: Dict[str, Any]) -> Dict[str, Any]:
        bank = _module(state, "bank")
        bank.setdefault("balances", []).append({
            "address": address,
            "coins": _coins(coins),
        })

        supply = {c["denom"]: int(c["amount"]) for c in bank.get("supply", [])}
        for denom, amount in coins.items():
            supply[denom] = supply.get(denom, 0) + int(amount)
        bank["supply"] = _coins(supply)
        return state

    return modifier


def add_gen_tx(gen_tx: Mapping[str, Any]) -> Modifier:
    """Append a signed genesis transaction to the genutil state."""

    def modifier(state: Dict[str, Any]) -> Dict[str, Any]:
        _module(state, "genutil").setdefault("gen_txs", []).append(copy.deepcopy(dict(gen_tx)))
        return state

    return modifier


def add_validator(
    address: str,
    pub_key: str,
    coins: Mapping[str, int],
    gen_tx: Mapping[str, Any],
) -> Modifier:
    """
    Add a genesis validator.

    Funds the account in the auth and bank states and adds the
    signed gen tx that creates the validator.
    """
    return compose(
        add_account(address, pub_key),
        add_balance(address, coins),
        add_gen_tx(gen_tx),
    )


__all__ = [
    "compose",
    "set_module_state",
    "add_account",
    "add_balance",
    "add_gen_tx",
    "add_validator",
]
