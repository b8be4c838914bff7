"""One story generation phase: render the prompt, call the model, parse NDJSON, checkpoint."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union

from langchain_core.prompts import PromptTemplate
from pydantic import BaseModel, Field

from storyforge.ndjson import parse_ndjson, read_ndjson, to_ndjson, write_ndjson

logger = logging.getLogger(__name__)

PREVIOUS_OUTPUT_VARIABLE = "previous_output"


class TextGenerator(Protocol):
    """Anything that turns a prompt into text (OllamaClient satisfies this)."""

    def generate(self, prompt: str, options: Optional[Dict[str, Any]] = None) -> str:
        ...


class StoryPhase(BaseModel):
    """A named phase and the prompt template file it renders."""

    name: str = Field(description="Phase name, also the default checkpoint stem")
    prompt_file: str = Field(description="Template file name inside the prompts folder")

    model_config = {"frozen": True}

    def checkpoint_name(self, prefix: Optional[str] = None) -> str:
        """Checkpoint file name, e.g. ``bible.txt`` or ``3_scenes.txt`` with prefix "3"."""
        if prefix is None:
            return f"{self.name}.txt"
        return f"{prefix}_{self.name}.txt"


BIBLE_PHASE = StoryPhase(name="bible", prompt_file="bible_prompt.txt")
CHAPTERS_PHASE = StoryPhase(name="chapters", prompt_file="chapters_prompt.txt")
SCENES_PHASE = StoryPhase(name="scenes", prompt_file="scenes_prompt.txt")


class PhaseGenerator:
    """Runs a single phase against the model, reusing an existing checkpoint when present."""

    def __init__(
        self,
        llm: TextGenerator,
        prompts_dir: Union[str, Path],
        temperature: Optional[float] = None,
    ):
        """
        Initialize the phase generator.

        Args:
            llm: Text generator used for every phase.
            prompts_dir: Folder holding the phase prompt templates.
            temperature: Optional sampling temperature passed as a model option.
        """
        self.llm = llm
        self.prompts_dir = Path(prompts_dir)
        self.options = {"temperature": temperature} if temperature is not None else None
        self._templates: Dict[str, PromptTemplate] = {}

    def _load_template(self, phase: StoryPhase) -> PromptTemplate:
        if phase.prompt_file not in self._templates:
            path = self.prompts_dir / phase.prompt_file
            self._templates[phase.prompt_file] = PromptTemplate.from_template(
                path.read_text(encoding="utf-8"), template_format="jinja2"
            )
            logger.info("Loaded prompt template: %s", path)
        return self._templates[phase.prompt_file]

    def render_prompt(self, phase: StoryPhase, context: List[Dict[str, Any]]) -> str:
        """Render the phase template with ``previous_output`` set to the context as NDJSON."""
        template = self._load_template(phase)
        return template.format(**{PREVIOUS_OUTPUT_VARIABLE: to_ndjson(context)})

    def generate(self, phase: StoryPhase, context: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Call the model for one phase and parse its NDJSON reply.

        Args:
            phase: Phase to run.
            context: Elements from earlier phases made available to the prompt.

        Returns:
            Parsed elements; lines that are not JSON objects are dropped.
        """
        logger.info("Starting story generation phase: %s", phase.name)
        prompt = self.render_prompt(phase, context)
        logger.debug("Prompt content: %s", prompt)
        response = self.llm.generate(prompt, options=self.options)
        logger.debug("Generated content: %s", response)
        elements = list(parse_ndjson(response))
        logger.info("Phase '%s' produced %d elements", phase.name, len(elements))
        return elements

    def run(
        self,
        phase: StoryPhase,
        context: List[Dict[str, Any]],
        checkpoint_path: Union[str, Path],
    ) -> List[Dict[str, Any]]:
        """
        Load the phase result from ``checkpoint_path`` if it exists, otherwise generate and save it.

        Returns:
            The phase elements.
        """
        checkpoint_path = Path(checkpoint_path)
        if checkpoint_path.exists():
            logger.info("Resuming phase '%s' from %s", phase.name, checkpoint_path)
            return read_ndjson(checkpoint_path)
        elements = self.generate(phase, context)
        write_ndjson(checkpoint_path, elements)
        return elements
