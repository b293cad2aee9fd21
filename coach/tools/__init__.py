"""Built-in coaching tools.

Surrounding applications usually register their own data-access tools
(workout plans, diet plans, nutrition lookup); the tools here are pure
calculators that need no storage.
"""

from coach.core.types import ToolSpec
from coach.tools.health_metrics import calculate_health_metrics

HEALTH_METRICS_TOOL = ToolSpec(
    name="calculate_health_metrics",
    description=(
        "Calculate BMI, BMR, maintenance and target calories, and macro targets "
        "from weight (kg), height (cm), age, gender, activity level and goal."
    ),
    invoke=calculate_health_metrics,
)


def default_tools() -> list[ToolSpec]:
    """Tools every coaching agent gets."""
    return [HEALTH_METRICS_TOOL]


__all__ = [
    "calculate_health_metrics",
    "default_tools",
    "HEALTH_METRICS_TOOL",
]
