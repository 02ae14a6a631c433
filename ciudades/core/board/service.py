import asyncio
from datetime import datetime, timezone

from ciudades.common.logging import get_logger
from ciudades.core.board.cache import DASHBOARD_TAG, SnapshotCache, cache_key
from ciudades.core.board.pipeline import produce_pipeline_snapshot
from ciudades.core.board.schemas import DashboardSnapshot, PipelineConfig
from ciudades.integrations.trello import TrelloApiError, TrelloClient

logger = get_logger("board.service")


class DashboardService:
    def __init__(
        self,
        client: TrelloClient,
        config: PipelineConfig,
        cache: SnapshotCache | None = None,
        revalidate_seconds: int = 60,
        timeout_seconds: float = 45.0,
    ):
        self.client = client
        self.config = config
        self.cache = cache or SnapshotCache()
        self.revalidate_seconds = revalidate_seconds
        self.timeout_seconds = timeout_seconds

    async def _produce(self) -> DashboardSnapshot:
        try:
            return await asyncio.wait_for(
                produce_pipeline_snapshot(self.client, self.config),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise TrelloApiError(
                f"Board fetch did not finish within {self.timeout_seconds:.0f}s", 504
            ) from e

    async def get_snapshot(self) -> DashboardSnapshot:
        return await self.cache.get_or_compute(
            cache_key(self.config),
            self._produce,
            ttl=self.revalidate_seconds,
            tags=(DASHBOARD_TAG,),
        )

    def refresh(self) -> datetime:
        self.cache.invalidate_tag(DASHBOARD_TAG)
        revalidated_at = datetime.now(timezone.utc)
        logger.info("Dashboard cache invalidated for board %s", self.config.board_id)
        return revalidated_at
