"""Refresh orchestration: normalize an agency's feed, then swap it into the store.

Nothing is written unless the whole feed was fetched and decoded. Refreshes of
different agencies touch disjoint rows; two concurrent refreshes of the same
agency are not coordinated and the last batch to commit wins.
"""

import logging
import time

from train_times.data.config import AgencyRegistry
from train_times.data.database import SqliteExecutor
from train_times.data.feed_normalizer import FeedNormalizer
from train_times.data.store_sync import StoreSynchronizer
from train_times.errors import TrainTimesError
from train_times.models.responses import RefreshAllResponse, RefreshResponse

logger = logging.getLogger(__name__)


async def refresh_agency(
    registry: AgencyRegistry,
    agency_id: str,
    executor: SqliteExecutor,
    normalizer: FeedNormalizer | None = None,
) -> RefreshResponse:
    """Download an agency's feed and replace its stored schedule.

    Args:
        registry: Configured agencies.
        agency_id: Agency to refresh.
        executor: SQL executor for the store.
        normalizer: Feed normalizer to use (default: one built from settings).

    Returns:
        RefreshResponse with the row counts written.

    Raises:
        InputError: If agency_id is not configured.
        RetrievalError, FormatError: If the feed could not be obtained. The
            store is left untouched.
        PersistenceError: If the store rejected the batch. Prior rows remain.
    """
    agency = registry.require(agency_id)
    normalizer = normalizer or FeedNormalizer()

    started = time.monotonic()
    logger.info(f"Refreshing {agency.agency_id} from {agency.gtfs_url}")

    feed = await normalizer.normalize(agency)
    result = await StoreSynchronizer(executor).sync(agency.agency_id, feed)

    duration_ms = int((time.monotonic() - started) * 1000)
    logger.info(f"Refresh of {agency.agency_id} complete in {duration_ms:,} ms")
    return RefreshResponse(
        agency_id=agency.agency_id,
        stops=result.stops,
        routes=result.routes,
        trips=result.trips,
        stop_times=result.stop_times,
        stop_routes=result.stop_routes,
        dropped_rows=feed.dropped_rows,
        duration_ms=duration_ms,
    )


async def refresh_all(
    registry: AgencyRegistry,
    executor: SqliteExecutor,
    normalizer: FeedNormalizer | None = None,
) -> RefreshAllResponse:
    """Refresh every configured agency in turn.

    A failing agency is recorded in `errors` and does not stop the others.
    """
    normalizer = normalizer or FeedNormalizer()
    results: list[RefreshResponse] = []
    errors = []
    for agency_id in registry:
        try:
            results.append(await refresh_agency(registry, agency_id, executor, normalizer))
        except TrainTimesError as e:
            logger.warning(f"Refresh of {agency_id} failed: {e}")
            error = e.to_response()
            error.agency_id = agency_id
            errors.append(error)
    return RefreshAllResponse(results=results, errors=errors)
