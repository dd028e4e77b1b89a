"""
Request identity providers.

A provider hands out the headers used for each page request. Rotating the
user agent keeps consecutive requests from sharing one fingerprint.
"""

import random
from typing import Dict, List, Optional, Protocol

from ..config import DEFAULT_USER_AGENTS


class IdentityProvider(Protocol):
    """Anything that can produce request headers for the next fetch."""

    def next(self) -> Dict[str, str]:
        ...


class RandomUserAgentProvider:
    """Pick a user agent uniformly at random from a fixed pool."""

    def __init__(
        self,
        user_agents: Optional[List[str]] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the provider.

        Args:
            user_agents: Pool to choose from. Defaults to a handful of common
                desktop and mobile browsers.
            rng: Random source, injectable for reproducible runs.
        """
        self.user_agents = list(DEFAULT_USER_AGENTS if user_agents is None else user_agents)
        if not self.user_agents:
            raise ValueError("user agent pool cannot be empty")
        self._rng = rng or random.Random()

    def next(self) -> Dict[str, str]:
        return {"User-Agent": self._rng.choice(self.user_agents)}


class FixedIdentityProvider:
    """Always hand out the same headers."""

    def __init__(self, headers: Optional[Dict[str, str]] = None):
        self.headers = dict(headers or {"User-Agent": DEFAULT_USER_AGENTS[0]})

    def next(self) -> Dict[str, str]:
        return dict(self.headers)
