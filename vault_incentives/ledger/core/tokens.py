"""
Token transfer boundary.

A transfer either fully succeeds or raises; the ledger treats it as one
atomic external effect.
"""
from typing import Dict, Protocol, Tuple
import logging

from ...protocol.types.common import TransferFailed

logger = logging.getLogger(__name__)


class TokenBank(Protocol):
    def transfer(self, token: str, sender: str, recipient: str, amount: int) -> None:
        ...

    def balance_of(self, token: str, holder: str) -> int:
        ...


class InMemoryTokenBank:
    """Balances keyed by (token, holder)."""

    def __init__(self):
        self._balances: Dict[Tuple[str, str], int] = {}

    def mint(self, token: str, holder: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Cannot mint negative amount: {amount}")
        key = (token, holder)
        self._balances[key] = self._balances.get(key, 0) + amount

    def balance_of(self, token: str, holder: str) -> int:
        return self._balances.get((token, holder), 0)

    def transfer(self, token: str, sender: str, recipient: str, amount: int) -> None:
        if amount < 0:
            raise TransferFailed(token, sender, recipient, amount, "negative amount")
        if amount == 0:
            return

        have = self.balance_of(token, sender)
        if have < amount:
            raise TransferFailed(token, sender, recipient, amount, f"insufficient balance: have {have}")

        self._balances[(token, sender)] = have - amount
        self._balances[(token, recipient)] = self.balance_of(token, recipient) + amount
        logger.debug(f"Transferred {amount} {token} from {sender} to {recipient}")
