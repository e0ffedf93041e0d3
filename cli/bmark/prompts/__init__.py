"""Prompt Templates - System prompts shipped with the package."""

from functools import lru_cache
from pathlib import Path


PROMPTS_DIR = Path(__file__).parent


@lru_cache(maxsize=None)
def load_prompt(category: str, name: str) -> str:
    """
    Load a prompt template from the prompts directory.

    Args:
        category: The category folder (e.g., 'benchmark')
        name: The prompt file name without extension (e.g., 'system')

    Returns:
        The prompt text with surrounding whitespace removed

    Raises:
        FileNotFoundError: If the prompt file doesn't exist
    """
    path = PROMPTS_DIR / category / f"{name}.md"
    if not path.exists():
        raise FileNotFoundError(f"Prompt not found: {category}/{name}")
    return path.read_text(encoding="utf-8").strip()

