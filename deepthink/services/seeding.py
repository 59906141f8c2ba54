"""Seed bundled scenario graphs into the database."""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from deepthink.core.config import get_settings
from deepthink.engine.graph import load_scenario_dir
from deepthink.models.scenario import Scenario
from deepthink.schemas.scenario import ScenarioGraph

logger = logging.getLogger(__name__)


def scenario_row(graph: ScenarioGraph) -> Scenario:
    return Scenario(
        id=graph.id,
        title=graph.title,
        domain=graph.domain,
        difficulty_level=graph.difficulty_level,
        version=graph.version,
        graph_json=graph.model_dump_json(by_alias=True),
    )


async def seed_scenarios(db: AsyncSession, graphs: list[ScenarioGraph] | None = None) -> int:
    """Insert scenarios that are not stored yet. Returns how many were added.

    Existing rows are left alone so edits made in the database survive restarts.
    A scenario file that fails validation aborts seeding.
    """
    if graphs is None:
        graphs = load_scenario_dir(get_settings().scenario_dir)

    result = await db.execute(select(Scenario.id))
    existing = set(result.scalars().all())

    added = 0
    for graph in graphs:
        if graph.id in existing:
            continue
        db.add(scenario_row(graph))
        added += 1

    if added:
        await db.commit()
    logger.info("Seeded %d scenario(s), %d already present", added, len(existing))
    return added
