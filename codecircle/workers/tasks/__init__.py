from codecircle.workers.tasks.cycle_reset import run_cycle_reset
from codecircle.workers.tasks.distribution import run_distribution_tick, run_group_distribution
from codecircle.workers.tasks.penalties import run_penalty_checkpoint

__all__ = [
    "run_cycle_reset",
    "run_distribution_tick",
    "run_group_distribution",
    "run_penalty_checkpoint",
]
