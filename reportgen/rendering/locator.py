"""Rendering engine discovery.

An ``EngineLocator`` asks an ordered list of strategies for a browser
executable; the first hit wins. Each strategy takes its filesystem and PATH
lookups as injectable callables so discovery can be tested without the host
environment.
"""

import os
import shutil
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol

import structlog

from reportgen.config import Settings
from reportgen.exceptions import EngineDiscoveryError

logger = structlog.get_logger(__name__)

BUNDLED_ENGINE = "bundled"


def is_executable_file(path: str) -> bool:
    """Check that a path is an executable regular file."""
    return os.path.isfile(path) and os.access(path, os.X_OK)


class LocatorStrategy(Protocol):
    """One way of finding an engine executable."""

    name: str

    def locate(self) -> str | None:
        """Return an executable path, or None when this strategy finds nothing."""
        ...


@dataclass
class ConfiguredPathStrategy:
    """Explicitly configured executable path."""

    path: str | None
    is_executable: Callable[[str], bool] = is_executable_file
    name: str = "configured_path"

    def locate(self) -> str | None:
        if not self.path:
            return None
        if self.is_executable(self.path):
            return self.path
        # A stale setting should not hide an installed browser
        logger.warning("configured_engine_path_unusable", path=self.path)
        return None


@dataclass
class PathProbeStrategy:
    """Query the environment's PATH for known executable names."""

    names: Sequence[str]
    which: Callable[[str], str | None] = shutil.which
    name: str = "path_probe"

    def locate(self) -> str | None:
        for candidate in self.names:
            found = self.which(candidate)
            if found:
                return found
        return None


@dataclass
class KnownPathsStrategy:
    """Check a fixed list of well-known installation paths."""

    paths: Sequence[str]
    is_executable: Callable[[str], bool] = is_executable_file
    name: str = "known_paths"

    def locate(self) -> str | None:
        for path in self.paths:
            if self.is_executable(path):
                return path
        return None


@dataclass(frozen=True)
class EngineLocation:
    """Result of discovery.

    ``executable_path`` is None when the engine's bundled default is used.
    """

    executable_path: str | None
    strategy: str

    @property
    def is_bundled(self) -> bool:
        return self.executable_path is None


class EngineLocator:
    """Finds the rendering engine executable."""

    def __init__(self, strategies: Sequence[LocatorStrategy], managed: bool = False):
        """
        Initialize the locator.

        Args:
            strategies: Strategies to try, in order
            managed: Whether the environment ships a bundled engine to fall back on
        """
        self.strategies = list(strategies)
        self.managed = managed

    @classmethod
    def from_settings(cls, settings: Settings) -> "EngineLocator":
        """Build the default strategy chain from settings."""
        return cls(
            strategies=[
                ConfiguredPathStrategy(settings.browser_executable_path),
                PathProbeStrategy(settings.browser_probe_names),
                KnownPathsStrategy(settings.browser_known_paths),
            ],
            managed=settings.is_production,
        )

    def locate(self) -> EngineLocation:
        """
        Run the strategies in order.

        Returns:
            EngineLocation of the first match, or the bundled default in a
            managed environment

        Raises:
            EngineDiscoveryError: if nothing matched outside a managed environment
        """
        tried: list[str] = []
        for strategy in self.strategies:
            tried.append(strategy.name)
            path = strategy.locate()
            if path:
                logger.info("engine_located", strategy=strategy.name, path=path)
                return EngineLocation(executable_path=path, strategy=strategy.name)

        if self.managed:
            logger.info("engine_using_bundled_default", tried=tried)
            return EngineLocation(executable_path=None, strategy=BUNDLED_ENGINE)

        raise EngineDiscoveryError(
            f"No rendering engine found (tried: {', '.join(tried) or 'nothing'})",
            tried=tried,
        )
