# storefront/repos/cart_store.py
"""Keyed cart storage.

Carts are JSON documents keyed by user id. Every ``save`` is a
compare-and-set on ``Cart.version``: the caller passes the version it read
and the store refuses the write if somebody else saved in between.
``delete`` accepts the same guard.
"""
import threading
import time
from abc import ABC, abstractmethod
from functools import lru_cache

import redis

from storefront.domain.cart import dump_cart, load_cart
from storefront.domain.schemas import Cart
from storefront.errors import CartConflictError
from storefront.utils.logging import get_logger
from storefront.utils.retry import redis_retry
from storefront.utils.settings import CART_STORE_BACKEND, CART_TTL_SECONDS, REDIS_URL

logger = get_logger(__name__)


class CartStore(ABC):
    @abstractmethod
    def get(self, user_id: int) -> Cart | None:
        ...

    @abstractmethod
    def save(self, cart: Cart, expected_version: int) -> Cart:
        """Persist ``cart`` as version ``expected_version + 1``.

        Raises ``CartConflictError`` when the stored version differs from
        ``expected_version`` (0 means "no cart stored yet").
        """

    @abstractmethod
    def delete(self, user_id: int, expected_version: int | None = None) -> bool:
        """Remove the cart, unconditionally or only at ``expected_version``.

        A guarded delete raises ``CartConflictError`` on a version mismatch.
        """


class MemoryCartStore(CartStore):
    """Process-local store for development and tests. Lost on restart."""

    def __init__(self, ttl: int = CART_TTL_SECONDS):
        self.ttl = ttl
        self._lock = threading.Lock()
        self._carts: dict[int, tuple[str, float]] = {}

    def get(self, user_id: int) -> Cart | None:
        with self._lock:
            raw = self._live_entry(user_id)
        return load_cart(raw) if raw is not None else None

    def save(self, cart: Cart, expected_version: int) -> Cart:
        with self._lock:
            self._check_version(cart.user_id, expected_version)
            cart.version = expected_version + 1
            self._carts[cart.user_id] = (dump_cart(cart), time.monotonic() + self.ttl)
        return cart

    def delete(self, user_id: int, expected_version: int | None = None) -> bool:
        with self._lock:
            if expected_version is not None:
                self._check_version(user_id, expected_version)
            return self._carts.pop(user_id, None) is not None

    def _check_version(self, user_id: int, expected_version: int):
        raw = self._live_entry(user_id)
        current = load_cart(raw).version if raw is not None else 0
        if current != expected_version:
            raise CartConflictError(user_id)

    def _live_entry(self, user_id: int) -> str | None:
        entry = self._carts.get(user_id)
        if entry is None:
            return None
        raw, expires_at = entry
        if expires_at < time.monotonic():
            # koszyk wygasl
            del self._carts[user_id]
            return None
        return raw


#LUA: porownaj wersje i zapisz, atomowo
_SAVE_LUA = """
local current = redis.call('HGET', KEYS[1], 'version')
if (current or '0') ~= ARGV[1] then
    return 0
end
redis.call('HSET', KEYS[1], 'version', ARGV[2], 'cart', ARGV[3])
redis.call('EXPIRE', KEYS[1], ARGV[4])
return 1
"""

#LUA: usun tylko przy zgodnej wersji, -1 = konflikt
_DELETE_LUA = """
local current = redis.call('HGET', KEYS[1], 'version')
if (current or '0') ~= ARGV[1] then
    return -1
end
return redis.call('DEL', KEYS[1])
"""


class RedisCartStore(CartStore):
    """
    -koszyk jako hash cart:<user_id> {version, cart}
    -zapis przez lua (compare-and-set na wersji)
    -TTL odswiezany przy kazdym zapisie
    -zapisy warunkowe bez retry: zgubiona odpowiedz po udanym zapisie dalaby falszywy konflikt
    """

    def __init__(self, url: str | None = None, ttl: int = CART_TTL_SECONDS, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(url or REDIS_URL, decode_responses=True)
        self.ttl = ttl

    @staticmethod
    def key(user_id: int) -> str:
        return f"cart:{user_id}"

    @redis_retry()
    def get(self, user_id: int) -> Cart | None:
        raw = self.redis.hget(self.key(user_id), "cart")
        return load_cart(raw) if raw else None

    def save(self, cart: Cart, expected_version: int) -> Cart:
        new_version = expected_version + 1
        cart.version = new_version
        try:
            saved = self.redis.eval(
                _SAVE_LUA,
                1,
                self.key(cart.user_id),
                str(expected_version),
                str(new_version),
                dump_cart(cart),
                str(self.ttl),
            )
        except redis.RedisError:
            cart.version = expected_version
            raise
        if not saved:
            cart.version = expected_version
            raise CartConflictError(cart.user_id)
        return cart

    def delete(self, user_id: int, expected_version: int | None = None) -> bool:
        if expected_version is None:
            return self._delete(user_id)
        removed = self.redis.eval(_DELETE_LUA, 1, self.key(user_id), str(expected_version))
        if removed < 0:
            raise CartConflictError(user_id)
        return bool(removed)

    @redis_retry()
    def _delete(self, user_id: int) -> bool:
        return bool(self.redis.delete(self.key(user_id)))


def build_cart_store(backend: str = CART_STORE_BACKEND) -> CartStore:
    if backend == "memory":
        logger.warning("Using in-memory cart store, carts are lost on restart")
        return MemoryCartStore()
    if backend == "redis":
        return RedisCartStore()
    raise ValueError(f"Unknown cart store backend: {backend}")


@lru_cache
def get_cart_store() -> CartStore:
    return build_cart_store()
