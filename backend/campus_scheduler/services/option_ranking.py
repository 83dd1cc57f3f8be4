from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import logging
import random
from time import perf_counter

from campus_scheduler.core.exceptions import InfeasibleScheduleError, SchedulerError
from campus_scheduler.schemas.catalog import CatalogSnapshot
from campus_scheduler.schemas.generator import GenerationSettings, RankedOption
from campus_scheduler.services.placement_search import SearchResult, generate_timetable
from campus_scheduler.services.solution_scorer import score_option

logger = logging.getLogger(__name__)


def option_rng(seed: int | None, variation: int) -> random.Random:
    if seed is None:
        return random.Random()
    # Distinct, reproducible stream per option.
    return random.Random(f"{seed}:{variation}")


def _run_option(
    snapshot: CatalogSnapshot,
    variation: int,
    settings: GenerationSettings,
    seed: int | None,
) -> SearchResult | None:
    try:
        return generate_timetable(
            snapshot,
            variation=variation,
            settings=settings,
            rng=option_rng(seed, variation),
        )
    except SchedulerError as exc:
        logger.warning("Option %s failed: %s %s", variation + 1, exc.message, exc.details)
        return None


def generate_options(
    snapshot: CatalogSnapshot,
    num_options: int,
    *,
    settings: GenerationSettings | None = None,
    seed: int | None = None,
) -> list[RankedOption]:
    """Run ``num_options`` independent generations and rank them by option score.

    Option ``i`` searches with ``variation=i``. Failed options are dropped; if
    none succeeds the whole request is infeasible.
    """
    settings = settings or GenerationSettings()
    if seed is None:
        seed = settings.random_seed
    start = perf_counter()

    variations = list(range(num_options))
    workers = min(settings.option_workers, max(1, num_options))
    if workers <= 1:
        results = [_run_option(snapshot, variation, settings, seed) for variation in variations]
    else:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(_run_option, snapshot, variation, settings, seed) for variation in variations]
            results = [future.result() for future in futures]

    options: list[RankedOption] = []
    for variation, result in zip(variations, results):
        if result is None:
            continue
        options.append(
            RankedOption(
                option=variation + 1,
                score=score_option(result.placements),
                placements=result.placements,
                evaluation_score=result.score,
            )
        )

    if not options:
        raise InfeasibleScheduleError(
            "Unable to generate any timetable options",
            details={"requested": num_options},
        )

    options.sort(key=lambda item: item.score, reverse=True)
    logger.info(
        "Generated %s of %s option(s) in %sms",
        len(options),
        num_options,
        int((perf_counter() - start) * 1000),
    )
    return options
