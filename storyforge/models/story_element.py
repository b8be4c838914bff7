"""Story element model for NDJSON records produced by the story phases."""

from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field


class StoryElement(BaseModel):
    """One element of the story bible (character, location, rule, thread, ...).

    The model emits compact keys to save tokens (``n`` for name, ``sum`` for
    summary, ``desc``, ``loc``, ``attrs``); they are accepted as aliases.
    """

    type: str = Field(default="", description="Element kind (e.g. character, location, rule)")
    id: Optional[str] = Field(default=None, description="Identifier assigned by the model")
    name: Optional[str] = Field(default=None, alias="n", description="Display name")
    summary: Optional[str] = Field(default=None, alias="sum", description="One-line summary")
    bio: Optional[str] = Field(default=None, description="Character biography")
    goal: Optional[str] = Field(default=None, description="Character goal")
    flaw: Optional[str] = Field(default=None, description="Character flaw")
    description: Optional[str] = Field(default=None, alias="desc", description="Free-form description")
    rule: Optional[str] = Field(default=None, description="World rule statement")
    evidence: Optional[str] = Field(default=None, description="How the rule shows up in the story")
    owner: Optional[str] = Field(default=None, description="Owner of an item or thread")
    status: Optional[str] = Field(default=None, description="Status of a plot thread")
    purpose: Optional[str] = Field(default=None, description="Narrative purpose")
    location: Optional[str] = Field(default=None, alias="loc", description="Where the element lives")
    tags: Optional[List[str]] = Field(default=None, description="Free-form tags")
    traits: Optional[List[str]] = Field(default=None, description="Character traits")
    attributes: Optional[Dict[str, Any]] = Field(default=None, alias="attrs", description="Extra key/value attributes")

    model_config = {
        "extra": "allow",
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {
                "type": "character",
                "id": "c1",
                "n": "Mira Vance",
                "bio": "A cartographer who maps places that no longer exist.",
                "goal": "Find the city her father erased",
                "flaw": "Trusts maps more than people",
                "traits": ["stubborn", "precise"],
            }
        },
    }

    @classmethod
    def from_json(cls, json_text: str) -> "StoryElement":
        """Parse a single NDJSON line into a StoryElement."""
        return cls.model_validate_json(json_text)

    def get_all_properties(self) -> Dict[str, Any]:
        """Get all non-empty properties, including extra fields the model invented."""
        return self.model_dump(exclude_none=True)
