"""Token identifier to amount-slot mapping, mirroring the ledger's token list"""

import logging
import threading
from typing import Dict, List, Optional

from .errors import TokenRegistryError, UnknownTokenError

logger = logging.getLogger(__name__)


class TokenRegistry:
    """Append-only, conflict-checked bijection token -> slot in 0..max_tokens-1"""

    def __init__(self, max_tokens: int = 10):
        self.max_tokens = max_tokens
        self._slots: Dict[str, int] = {}
        self._tokens: Dict[int, str] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(token: str) -> str:
        return token.lower()

    def register(self, token: str, slot: int) -> int:
        if not 0 <= slot < self.max_tokens:
            raise TokenRegistryError(
                f"Slot {slot} outside 0..{self.max_tokens - 1}")

        key = self._key(token)
        with self._lock:
            existing = self._slots.get(key)
            if existing is not None:
                if existing != slot:
                    raise TokenRegistryError(
                        f"Token {token} already registered at slot {existing}, not {slot}")
                return slot

            holder = self._tokens.get(slot)
            if holder is not None:
                raise TokenRegistryError(f"Slot {slot} already holds token {holder}")

            self._slots[key] = slot
            self._tokens[slot] = key

        logger.info(f"Registered token {token} at slot {slot}")
        return slot

    def slot_of(self, token: str) -> int:
        slot = self._slots.get(self._key(token))
        if slot is None:
            raise UnknownTokenError(f"Unknown token: {token}")
        return slot

    def token_at(self, slot: int) -> Optional[str]:
        return self._tokens.get(slot)

    def tokens(self) -> List[str]:
        return [self._tokens[s] for s in sorted(self._tokens)]

    def __contains__(self, token: str) -> bool:
        return self._key(token) in self._slots

    def __len__(self) -> int:
        return len(self._slots)

    async def sync(self, ledger) -> int:
        """Register every token the ledger reports, in slot order"""
        registered = 0
        for slot, token in enumerate(await ledger.tokens()):
            if token:
                self.register(token, slot)
                registered += 1
        return registered
