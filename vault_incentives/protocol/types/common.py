from enum import Enum
from typing import Optional


class Capability(str, Enum):
    FUND_POOLS = "FUND_POOLS"       # May deposit incentives into pools
    ADMIN_TOKENS = "ADMIN_TOKENS"   # May edit the allowed-token list


class ProtocolError(Exception):
    pass


class IncentiveError(ProtocolError):
    """Base class for every rejected ledger operation."""


class Unauthorized(IncentiveError):
    def __init__(self, caller: str, capability: Capability):
        self.caller = caller
        self.capability = capability
        super().__init__(f"Unauthorized: {caller} lacks {capability.value}")


class InvalidToken(IncentiveError):
    def __init__(self, token: Optional[str], reason: str):
        self.token = token
        self.reason = reason
        super().__init__(f"Invalid token {token}: {reason}")


class ZeroAmount(IncentiveError):
    def __init__(self, amount: int):
        self.amount = amount
        super().__init__(f"Amount must be positive, got {amount}")


class InvalidCollateralType(IncentiveError):
    def __init__(self, collateral_class: Optional[str], reason: str):
        self.collateral_class = collateral_class
        self.reason = reason
        super().__init__(f"Invalid collateral type {collateral_class}: {reason}")


class NothingToClaim(IncentiveError):
    def __init__(self, token: str, account: str):
        self.token = token
        self.account = account
        super().__init__(f"Nothing to claim for {account} in pool {token}")


class ArithmeticFault(IncentiveError):
    def __init__(self, value: int, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"Arithmetic fault ({reason}): {value}")


class TransferFailed(IncentiveError):
    def __init__(self, token: str, sender: str, recipient: str, amount: int, reason: str):
        self.token = token
        self.sender = sender
        self.recipient = recipient
        self.amount = amount
        self.reason = reason
        super().__init__(
            f"Transfer of {amount} {token} from {sender} to {recipient} failed: {reason}"
        )
