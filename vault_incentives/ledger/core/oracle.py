"""
Collateral oracle: read-only view of the lending vault's collateral books.

The ledger only ever reads through this interface. The vault never holds a
reference back to the ledger.
"""
from typing import Dict, Protocol, Set
import logging

logger = logging.getLogger(__name__)


class CollateralOracle(Protocol):
    def collateral_of(self, account: str, collateral_class: str) -> int:
        ...

    def total_collateral(self, collateral_class: str) -> int:
        ...

    def is_collateral_class(self, collateral_class: str) -> bool:
        ...


class StaticCollateralOracle:
    """
    In-memory stand-in for the vault.

    Balances are set directly; total collateral is the sum of balances in
    the class.
    """

    def __init__(self, classes: Set[str] = None):
        self._classes: Set[str] = set(classes or ())
        # collateral_class -> account -> amount
        self._balances: Dict[str, Dict[str, int]] = {c: {} for c in self._classes}

    def register_class(self, collateral_class: str) -> None:
        self._classes.add(collateral_class)
        self._balances.setdefault(collateral_class, {})

    def set_collateral(self, account: str, collateral_class: str, amount: int) -> None:
        if collateral_class not in self._classes:
            raise ValueError(f"Unknown collateral class {collateral_class}")
        if amount < 0:
            raise ValueError(f"Collateral cannot be negative: {amount}")

        if amount == 0:
            self._balances[collateral_class].pop(account, None)
        else:
            self._balances[collateral_class][account] = amount
        logger.debug(f"Collateral {collateral_class} of {account} set to {amount}")

    def collateral_of(self, account: str, collateral_class: str) -> int:
        return self._balances.get(collateral_class, {}).get(account, 0)

    def total_collateral(self, collateral_class: str) -> int:
        return sum(self._balances.get(collateral_class, {}).values())

    def is_collateral_class(self, collateral_class: str) -> bool:
        return collateral_class in self._classes
