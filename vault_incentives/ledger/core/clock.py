import time


def system_clock() -> int:
    """Current unix time in whole seconds."""
    return int(time.time())


class ManualClock:
    """Clock that only moves when told to. Used by simulations and tests."""

    def __init__(self, start: int = 0):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self.now += seconds
        return self.now

    def set(self, timestamp: int) -> int:
        if timestamp < self.now:
            raise ValueError(f"Clock cannot move backwards: {timestamp} < {self.now}")
        self.now = timestamp
        return self.now
