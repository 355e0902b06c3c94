"""Service for loading generation prompts from YAML."""

import yaml
from pathlib import Path
from typing import Optional
from pydantic import BaseModel


class PromptLibrary(BaseModel):
    """Prompt texts sent to the generation service."""

    system: str
    cover_letter: str


def load_prompt_library(data_dir: Optional[Path] = None) -> PromptLibrary:
    """
    Load prompts.yaml.

    Args:
        data_dir: Directory containing prompts.yaml. Defaults to app/data/

    Returns:
        PromptLibrary: Validated prompts

    Raises:
        FileNotFoundError: If the prompt file doesn't exist
        ValueError: If the YAML is invalid
    """
    if data_dir is None:
        data_dir = Path(__file__).parent.parent / "data"
    filepath = data_dir / "prompts.yaml"

    if not filepath.exists():
        raise FileNotFoundError(f"Prompt file not found: {filepath}")

    try:
        with open(filepath, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML format in {filepath}: {e}")

    try:
        return PromptLibrary(**(data or {}))
    except Exception as e:
        raise ValueError(f"Invalid prompt data in {filepath}: {e}")


_prompts: Optional[PromptLibrary] = None


def get_prompt_library() -> PromptLibrary:
    """Get or load the prompt library singleton."""
    global _prompts
    if _prompts is None:
        _prompts = load_prompt_library()
    return _prompts
