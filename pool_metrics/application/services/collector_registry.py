"""Registry mapping platforms to their collectors."""

from collections.abc import Mapping

from pool_metrics.domain.enums import Platform
from pool_metrics.domain.errors import CollectorNotFoundError
from pool_metrics.domain.ports import PlatformCollector


class CollectorRegistry:
    """Closed registry of platform collectors."""

    def __init__(self, collectors: Mapping[Platform, PlatformCollector]) -> None:
        self._collectors = dict(collectors)

    def resolve(self, platform_identifier: str) -> tuple[Platform, PlatformCollector]:
        """Resolve a platform identifier to its collector.

        Raises CollectorNotFoundError when the identifier is unknown or
        the platform has no collector registered.
        """
        platform = Platform.parse(platform_identifier)
        if platform is None or platform not in self._collectors:
            raise CollectorNotFoundError(
                f"No collector for platform: {platform_identifier.strip().lower()}"
            )
        return platform, self._collectors[platform]

    def supported_platforms(self) -> list[Platform]:
        return sorted(self._collectors, key=lambda p: p.value)

    def is_supported(self, platform_identifier: str) -> bool:
        platform = Platform.parse(platform_identifier)
        return platform is not None and platform in self._collectors
