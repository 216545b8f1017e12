from __future__ import annotations

from functools import lru_cache
from pathlib import Path


@lru_cache(maxsize=16)
def load_prompt(prompt_path: Path) -> str:
    """Purpose: Read a prompt template once per process.
    Inputs/Outputs: Input is a Path to the template; output is its text without a BOM.
    Side Effects / State: Caches file contents by path.
    Dependencies: Path.read_text with utf-8-sig; used by the relay and the routine request.
    Failure Modes: A missing file raises FileNotFoundError; undecodable bytes are replaced.
    If Removed: The relay cannot build its system instruction and routines cannot be requested.
    Testing Notes: Render both bundled templates and check no placeholder survives.
    """
    # utf-8-sig drops a leading BOM; replacement keeps a damaged template usable.
    return prompt_path.read_text(encoding="utf-8-sig", errors="replace")


def render_prompt(prompt_path: Path, **values: str) -> str:
    """Fill a template's ``{placeholders}``; surrounding whitespace is dropped."""
    return load_prompt(prompt_path).format(**values).strip()
