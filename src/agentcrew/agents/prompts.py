"""Prompt library - system prompts stored as markdown files.

Files are keyed by stem: ``configs/prompts/scout.md`` is the prompt for
any profile whose ``prompt_key`` is ``scout``. ``{today}`` in a prompt is
replaced with the current date when the system context is built.
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from agentcrew.core.dispatcher import BasicSystemContext, render_scratch
from agentcrew.models import AgentProfile
from agentcrew.utils.logging import get_logger

logger = get_logger(__name__)


class PromptLibrary:
    """System context builder backed by prompt files.

    Profiles without a prompt file fall back to a description-only context.
    """

    def __init__(self, prompts: dict[str, str] | None = None) -> None:
        self._prompts = dict(prompts or {})
        self._fallback = BasicSystemContext()

    @classmethod
    def from_directory(cls, dir_path: str | Path) -> PromptLibrary:
        """Load every ``*.md`` file in a directory.

        A missing directory yields an empty library.
        """
        dir_path = Path(dir_path)
        prompts: dict[str, str] = {}
        if not dir_path.is_dir():
            logger.warning("Prompt directory not found", path=str(dir_path))
            return cls(prompts)

        for prompt_file in sorted(dir_path.glob("*.md")):
            prompts[prompt_file.stem] = prompt_file.read_text(encoding="utf-8").strip()

        logger.info("Prompts loaded", count=len(prompts))
        return cls(prompts)

    def get(self, key: str) -> str | None:
        return self._prompts.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._prompts

    def __len__(self) -> int:
        return len(self._prompts)

    def build(self, profile: AgentProfile, scratch: dict[str, Any]) -> str:
        """Build the system context for one agent turn."""
        template = self._prompts.get(profile.prompt_key)
        if template is None:
            return self._fallback.build(profile, scratch)

        today = datetime.now(UTC).strftime("%A %d %B %Y")
        sections = [template.replace("{today}", today)]
        sections.extend(render_scratch(scratch))
        return "\n\n".join(sections)
