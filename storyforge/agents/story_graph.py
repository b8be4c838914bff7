"""LangGraph workflow for multi-phase story generation: bible, then chapters, then scenes."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, TypedDict, Union

from langgraph.graph import END, StateGraph
from pydantic import BaseModel, Field, ValidationError

from storyforge.models.story_element import StoryElement
from .phase_generator import (
    BIBLE_PHASE,
    CHAPTERS_PHASE,
    SCENES_PHASE,
    PhaseGenerator,
    StoryPhase,
    TextGenerator,
)

logger = logging.getLogger(__name__)

PHASES = (BIBLE_PHASE, CHAPTERS_PHASE, SCENES_PHASE)
CHAPTER_TITLE_KEY = "t"
CHAPTER_INDEX_KEY = "i"


class StoryState(TypedDict, total=False):
    """State for the story workflow."""
    bible: List[Dict[str, Any]]
    chapters: List[Dict[str, Any]]
    scenes: Dict[int, List[Dict[str, Any]]]


class StoryResult(BaseModel):
    """Everything produced (or resumed) by one workflow run."""

    bible: List[Dict[str, Any]] = Field(default_factory=list)
    chapters: List[Dict[str, Any]] = Field(default_factory=list)
    scenes: Dict[int, List[Dict[str, Any]]] = Field(default_factory=dict)
    elements: List[StoryElement] = Field(default_factory=list, description="Bible entries parsed as StoryElement")


def _chapter_index(chapter: Dict[str, Any]) -> int:
    value = chapter.get(CHAPTER_INDEX_KEY)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return 0


def _parse_elements(bible: List[Dict[str, Any]]) -> List[StoryElement]:
    elements = []
    for entry in bible:
        try:
            elements.append(StoryElement.model_validate(entry))
        except ValidationError as e:
            logger.warning("Skipping malformed story element %s: %s", entry, e)
    return elements


class StoryGenerationGraph:
    """LangGraph workflow that writes each phase to a checkpoint file and resumes from existing ones."""

    def __init__(
        self,
        llm: TextGenerator,
        output_dir: Union[str, Path] = "outputs",
        prompts_dir: Union[str, Path] = "prompts",
        temperature: Optional[float] = None,
    ):
        """
        Initialize the story graph.

        Args:
            llm: Text generator (e.g. an OllamaClient).
            output_dir: Folder for checkpoint files.
            prompts_dir: Folder with bible/chapters/scenes prompt templates.
            temperature: Optional sampling temperature for every phase.
        """
        self.output_dir = Path(output_dir)
        self.phase_generator = PhaseGenerator(llm, prompts_dir, temperature=temperature)

        # Build the graph
        self.graph = self._build_graph()

    def _build_graph(self) -> StateGraph:
        """Build the LangGraph workflow."""
        workflow = StateGraph(StoryState)

        workflow.add_node("load_bible", self._load_bible)
        workflow.add_node("load_chapters", self._load_chapters)
        workflow.add_node("load_scenes", self._load_scenes)

        workflow.set_entry_point("load_bible")
        workflow.add_edge("load_bible", "load_chapters")
        workflow.add_edge("load_chapters", "load_scenes")
        workflow.add_edge("load_scenes", END)

        return workflow.compile()

    def _checkpoint(self, phase: StoryPhase, prefix: Optional[str] = None) -> Path:
        return self.output_dir / phase.checkpoint_name(prefix)

    def _load_bible(self, state: StoryState) -> StoryState:
        """Generate (or resume) the story bible. It has no prior context."""
        state["bible"] = self.phase_generator.run(BIBLE_PHASE, [], self._checkpoint(BIBLE_PHASE))
        return state

    def _load_chapters(self, state: StoryState) -> StoryState:
        """Generate (or resume) the chapter outline from the bible."""
        state["chapters"] = self.phase_generator.run(
            CHAPTERS_PHASE, state.get("bible") or [], self._checkpoint(CHAPTERS_PHASE)
        )
        return state

    def _load_scenes(self, state: StoryState) -> StoryState:
        """Generate (or resume) the scenes of each chapter, given the bible and that chapter."""
        bible = state.get("bible") or []
        scenes: Dict[int, List[Dict[str, Any]]] = {}
        for chapter in state.get("chapters") or []:
            title = chapter.get(CHAPTER_TITLE_KEY)
            if not isinstance(title, str) or not title:
                logger.warning("Chapter element is missing 't' property. Skipping: %s", chapter)
                continue
            index = _chapter_index(chapter)
            logger.info("Generating scenes for chapter %d: %s", index, title)
            scenes[index] = self.phase_generator.run(
                SCENES_PHASE,
                bible + [chapter],
                self._checkpoint(SCENES_PHASE, prefix=str(index)),
            )
        state["scenes"] = scenes
        return state

    def clear_checkpoints(self) -> List[Path]:
        """Delete every checkpoint in the output folder. Returns the deleted paths."""
        candidates = [self._checkpoint(BIBLE_PHASE), self._checkpoint(CHAPTERS_PHASE)]
        if self.output_dir.exists():
            candidates.extend(sorted(self.output_dir.glob(f"*_{SCENES_PHASE.checkpoint_name()}")))
        deleted = []
        for path in candidates:
            if path.exists():
                path.unlink()
                logger.info("Deleted previous output file: %s", path)
                deleted.append(path)
        return deleted

    def generate(self, force_new: bool = False) -> StoryResult:
        """
        Run every phase, resuming from checkpoints already on disk.

        Args:
            force_new: Delete previous checkpoints first so every phase is regenerated.

        Returns:
            StoryResult with the bible, chapters, scenes per chapter index and
            the bible parsed as StoryElement objects.
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        if force_new:
            logger.info("Force new story generation enabled. Previous outputs will be deleted.")
            self.clear_checkpoints()

        initial_state: StoryState = {"bible": [], "chapters": [], "scenes": {}}
        result = self.graph.invoke(initial_state)

        bible = result.get("bible") or []
        return StoryResult(
            bible=bible,
            chapters=result.get("chapters") or [],
            scenes=result.get("scenes") or {},
            elements=_parse_elements(bible),
        )
