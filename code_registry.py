# code_registry.py
import logging
import time

logger = logging.getLogger(__name__)


class RedeemedCodeRegistry:
    """
    Remembers which authorization codes (by ``jti``) were already exchanged.

    Entries are kept until the code could no longer verify anyway
    (expiry plus clock-skew tolerance), then pruned.
    """

    def __init__(self, clock_skew_seconds=300, clock=time.time):
        self.clock_skew_seconds = clock_skew_seconds
        self._clock = clock
        self._redeemed = {}

    def __len__(self):
        return len(self._redeemed)

    def _prune(self, now):
        expired = [jti for jti, forget_at in self._redeemed.items() if forget_at < now]
        for jti in expired:
            del self._redeemed[jti]

    def claim(self, jti, expires_at):
        """Mark ``jti`` as redeemed; False if it already was."""
        now = self._clock()
        self._prune(now)
        if jti in self._redeemed:
            logger.warning("Authorization code replay rejected")
            return False
        self._redeemed[jti] = expires_at + self.clock_skew_seconds
        return True
