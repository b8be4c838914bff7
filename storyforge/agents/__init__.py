"""Agent modules for multi-phase story generation."""

from .phase_generator import PhaseGenerator, StoryPhase
from .story_graph import StoryGenerationGraph, StoryResult

__all__ = ["PhaseGenerator", "StoryPhase", "StoryGenerationGraph", "StoryResult"]
