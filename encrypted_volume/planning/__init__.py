"""Resource planning: intent value objects and the planner."""

from .intents import LogicalName, Ref, ResourceIntent, ResourceKind, ResourcePlan
from .planner import plan

__all__ = ["LogicalName", "Ref", "ResourceIntent", "ResourceKind", "ResourcePlan", "plan"]
