"""Collision-free invite code allocation."""

from __future__ import annotations

import random
from typing import Awaitable, Callable, Optional

from ..config.settings import InviteConfig, get_app_config
from ..exceptions import InviteCodeExhausted, ProviderError
from ..monitoring.logger import get_logger
from ..monitoring.metrics import METRICS

ExistsCheck = Callable[[str], Awaitable[bool]]


class InviteCodeAllocator:
    """Draws random codes until the existence check reports a free one."""

    def __init__(
        self,
        config: Optional[InviteConfig] = None,
        *,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._config = config or get_app_config().invites
        self._rng = rng or random.SystemRandom()
        self._logger = get_logger(__name__)

    @property
    def alphabet(self) -> str:
        return self._config.alphabet

    def draw(self) -> str:
        alphabet = self._config.alphabet
        return "".join(self._rng.choice(alphabet) for _ in range(self._config.code_length))

    def is_well_formed(self, code: str) -> bool:
        return len(code) == self._config.code_length and all(
            char in self._config.alphabet for char in code
        )

    async def generate(self, exists_check: ExistsCheck) -> str:
        """Return a code ``exists_check`` reports as unused.

        The whole code is redrawn on every collision.
        """

        for attempt in range(1, self._config.max_attempts + 1):
            code = self.draw()
            try:
                taken = await exists_check(code)
            except ProviderError:
                raise
            except Exception as exc:  # noqa: BLE001
                raise ProviderError(
                    f"Invite code lookup failed for {code}", provider="invite_codes"
                ) from exc
            if not taken:
                METRICS.increment("invites.generated")
                if attempt > 1:
                    self._logger.info("Allocated invite code after %d draws", attempt)
                return code
            METRICS.increment("invites.collisions")
        self._logger.error(
            "Invite code space exhausted", extra={"attempts": self._config.max_attempts}
        )
        raise InviteCodeExhausted(self._config.max_attempts)


__all__ = ["ExistsCheck", "InviteCodeAllocator"]
