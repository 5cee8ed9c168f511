"""
Access gate for capability-checked ledger operations.
"""
from typing import Dict, Iterable, Protocol, Set
import logging

from ...protocol.types.common import Capability, Unauthorized

logger = logging.getLogger(__name__)


class Authorizer(Protocol):
    def has_capability(self, account: str, capability: Capability) -> bool:
        ...


class RoleRegistry:
    """
    Role-membership mapping: capability -> set of accounts.

    Injected into the distributor so tests can build one without a real
    role registry behind it.
    """

    def __init__(self, members: Dict[Capability, Iterable[str]] = None):
        self._members: Dict[Capability, Set[str]] = {cap: set() for cap in Capability}
        for capability, accounts in (members or {}).items():
            self._members[Capability(capability)].update(accounts)

    def grant(self, capability: Capability, account: str) -> None:
        self._members[capability].add(account)
        logger.info(f"Granted {capability.value} to {account}")

    def revoke(self, capability: Capability, account: str) -> None:
        if account in self._members[capability]:
            self._members[capability].discard(account)
            logger.info(f"Revoked {capability.value} from {account}")

    def has_capability(self, account: str, capability: Capability) -> bool:
        return account in self._members[capability]

    def members(self, capability: Capability) -> Set[str]:
        return set(self._members[capability])


def authorize(authorizer: Authorizer, caller: str, capability: Capability) -> bool:
    """Returns True or raises Unauthorized(caller, capability)."""
    if not authorizer.has_capability(caller, capability):
        logger.warning(f"Rejected {caller}: missing {capability.value}")
        raise Unauthorized(caller, capability)
    return True
