from deepthink.services.scoring import build_debrief, compute_level, get_tips_for_weak_areas
from deepthink.services.seeding import seed_scenarios
from deepthink.services.stats import compute_aggregate_metrics

__all__ = [
    "build_debrief",
    "compute_aggregate_metrics",
    "compute_level",
    "get_tips_for_weak_areas",
    "seed_scenarios",
]
