from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple
import logging

from ...protocol.types.pool import ClaimState, Pool
from ..storage.db import StorageDB

logger = logging.getLogger(__name__)

ClaimKey = Tuple[str, str]


class IncentiveState:
    """
    Pool records, claim markers and the allowed-token set.

    Reads fall through to StorageDB when a record is not cached; writes stay
    in the cache until persist().
    """

    def __init__(self, db: Optional[StorageDB] = None,
                 pools: Optional[Dict[str, Pool]] = None,
                 claims: Optional[Dict[ClaimKey, ClaimState]] = None,
                 allowed: Optional[Dict[str, bool]] = None):
        self.db = db
        # token -> Pool
        self._pools: Dict[str, Pool] = pools if pools is not None else {}
        # (token, account) -> ClaimState
        self._claims: Dict[ClaimKey, ClaimState] = claims if claims is not None else {}
        # token -> allowed flag (False entries are kept so removals persist)
        self._allowed: Dict[str, bool] = allowed if allowed is not None else {}

    def clone(self) -> 'IncentiveState':
        """Creates a deep copy of the cached state (used for rollback)."""
        return IncentiveState(
            self.db,
            {k: v.model_copy(deep=True) for k, v in self._pools.items()},
            {k: v.model_copy(deep=True) for k, v in self._claims.items()},
            dict(self._allowed),
        )

    def restore(self, snapshot: 'IncentiveState') -> None:
        self._pools = snapshot._pools
        self._claims = snapshot._claims
        self._allowed = snapshot._allowed

    @contextmanager
    def atomic(self) -> Iterator['IncentiveState']:
        """Either every mutation inside the block sticks, or none does."""
        snapshot = self.clone()
        try:
            yield self
        except Exception:
            self.restore(snapshot)
            logger.debug("Rolled back state after failed operation")
            raise

    # --- Pools ---
    def get_pool(self, token: str) -> Optional[Pool]:
        if token in self._pools:
            return self._pools[token]

        if self.db is not None:
            raw_json = self.db.get_state(f"pool:{token}")
            if raw_json:
                pool = Pool.model_validate_json(raw_json)
                self._pools[token] = pool
                return pool
        return None

    def get_or_create_pool(self, token: str) -> Pool:
        pool = self.get_pool(token)
        if pool is None:
            pool = Pool(token=token)
            self._pools[token] = pool
            logger.info(f"Created pool for {token}")
        return pool

    def set_pool(self, pool: Pool) -> None:
        self._pools[pool.token] = pool

    def get_all_pools(self) -> List[Pool]:
        final: Dict[str, Pool] = {}
        if self.db is not None:
            for k, v in self.db.get_state_by_prefix("pool:").items():
                final[k.split(":", 1)[1]] = Pool.model_validate_json(v)
        final.update(self._pools)
        return [final[token] for token in sorted(final)]

    # --- Claim markers ---
    def get_claim(self, token: str, account: str) -> ClaimState:
        key = (token, account)
        if key in self._claims:
            return self._claims[key]

        if self.db is not None:
            raw_json = self.db.get_state(f"claim:{token}:{account}")
            if raw_json:
                claim = ClaimState.model_validate_json(raw_json)
                self._claims[key] = claim
                return claim

        # Generic new claim state; only stored once set_claim() is called
        return ClaimState(token=token, account=account)

    def set_claim(self, claim: ClaimState) -> None:
        self._claims[(claim.token, claim.account)] = claim

    def get_claims(self, token: str) -> List[ClaimState]:
        """Every stored claim state of `token`, cached or on disk."""
        if self.db is not None:
            prefix = f"claim:{token}:"
            for k, v in self.db.get_state_by_prefix(prefix).items():
                key = (token, k[len(prefix):])
                if key not in self._claims:
                    self._claims[key] = ClaimState.model_validate_json(v)
        return [claim for (t, _), claim in sorted(self._claims.items()) if t == token]

    # --- Allowed tokens ---
    def is_allowed(self, token: str) -> bool:
        if token in self._allowed:
            return self._allowed[token]

        if self.db is not None:
            raw = self.db.get_state(f"allowed:{token}")
            if raw is not None:
                self._allowed[token] = raw == "1"
                return self._allowed[token]
        return False

    def set_allowed(self, token: str, allowed: bool) -> None:
        self._allowed[token] = allowed

    def allowed_tokens(self) -> List[str]:
        flags: Dict[str, bool] = {}
        if self.db is not None:
            for k, v in self.db.get_state_by_prefix("allowed:").items():
                flags[k.split(":", 1)[1]] = v == "1"
        flags.update(self._allowed)
        return sorted(token for token, allowed in flags.items() if allowed)

    # --- Persistence ---
    def persist(self) -> None:
        """Writes cached pools, claim markers and allow-list flags to DB."""
        if self.db is None:
            return

        items: Dict[str, str] = {}
        for token, pool in self._pools.items():
            items[f"pool:{token}"] = pool.model_dump_json()
        for (token, account), claim in self._claims.items():
            items[f"claim:{token}:{account}"] = claim.model_dump_json()
        for token, allowed in self._allowed.items():
            items[f"allowed:{token}"] = "1" if allowed else "0"

        self.db.set_many(items)
        logger.debug(f"Persisted {len(items)} state records")
