"""Agent Loader - builds agent profiles from YAML configuration.

Each file under ``configs/agents`` describes one agent::

    agent_id: scout
    name: Scout
    emoji: "🔍"
    description: research and prospecting
    model_tier: standard
    capabilities: [search_web, prospect_company]
    error_message: "..."
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from agentcrew.models import AgentProfile
from agentcrew.utils.exceptions import AgentCrewError
from agentcrew.utils.logging import get_logger

logger = get_logger(__name__)


class AgentLoadError(AgentCrewError):
    """Raised when an agent profile cannot be loaded."""

    def __init__(self, message: str, path: str | None = None, cause: Exception | None = None):
        self.path = path
        super().__init__(
            message=message + (f" (path: {path})" if path else ""),
            details={"path": path} if path else {},
            cause=cause,
        )


class AgentConfigError(AgentLoadError):
    """Raised when a profile file parses but is not a valid profile."""

    pass


class AgentLoader:
    """Loader for agent profiles stored as YAML files."""

    def load_from_yaml(self, path: str | Path) -> AgentProfile:
        """Load one agent profile.

        Args:
            path: Path to the YAML file.

        Returns:
            The parsed profile.

        Raises:
            AgentLoadError: If the file cannot be read.
            AgentConfigError: If the content is not a valid profile.
        """
        path = Path(path)

        if not path.exists():
            raise AgentLoadError("Configuration file not found", str(path))

        if not path.is_file():
            raise AgentLoadError("Path is not a file", str(path))

        try:
            with open(path, encoding="utf-8") as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise AgentLoadError(f"Invalid YAML: {e}", str(path), cause=e) from e
        except OSError as e:
            raise AgentLoadError(f"Cannot read file: {e}", str(path), cause=e) from e

        if not config_data:
            raise AgentConfigError("Empty configuration file", str(path))

        if not isinstance(config_data, dict):
            raise AgentConfigError("Configuration must be a mapping", str(path))

        return self.create_profile(config_data, source_path=str(path))

    def load_all_from_directory(self, dir_path: str | Path) -> list[AgentProfile]:
        """Load every ``*.yaml`` and ``*.yml`` profile in a directory.

        Files that fail to load are logged and skipped, unless none load.

        Raises:
            AgentLoadError: If the directory is missing or nothing loads.
        """
        dir_path = Path(dir_path)

        if not dir_path.exists():
            raise AgentLoadError("Directory not found", str(dir_path))

        if not dir_path.is_dir():
            raise AgentLoadError("Path is not a directory", str(dir_path))

        profiles: list[AgentProfile] = []
        errors: list[str] = []

        files = sorted([*dir_path.glob("*.yaml"), *dir_path.glob("*.yml")])
        for config_file in files:
            try:
                profiles.append(self.load_from_yaml(config_file))
            except AgentLoadError as e:
                logger.warning("Skipping agent profile", path=str(config_file), error=e.message)
                errors.append(e.message)

        if errors and not profiles:
            raise AgentLoadError(
                f"Failed to load any agents. Errors: {'; '.join(errors)}",
                str(dir_path),
            )

        logger.info(
            "Agent profiles loaded",
            count=len(profiles),
            agents=[p.agent_id.value for p in profiles],
        )
        return profiles

    def create_profile(
        self,
        config_data: dict[str, Any],
        source_path: str | None = None,
    ) -> AgentProfile:
        """Create a profile from a configuration mapping.

        Raises:
            AgentConfigError: If the mapping is not a valid profile.
        """
        errors = validate_profile_data(config_data)
        if errors:
            raise AgentConfigError(f"Invalid agent configuration: {'; '.join(errors)}", source_path)

        data = dict(config_data)
        data["capabilities"] = frozenset(data.get("capabilities") or ())

        try:
            return AgentProfile(**data)
        except ValidationError as e:
            raise AgentConfigError(
                f"Invalid agent configuration: {e}", source_path, cause=e
            ) from e


def validate_profile_data(config_data: dict[str, Any]) -> list[str]:
    """Check the shape of a profile mapping before model validation.

    Returns:
        List of validation error messages (empty if valid).
    """
    errors: list[str] = []

    for field in ("agent_id", "name"):
        if field not in config_data:
            errors.append(f"Missing required field: {field}")

    capabilities = config_data.get("capabilities", [])
    if capabilities is not None and not isinstance(capabilities, list):
        errors.append("capabilities must be a list")
    elif capabilities:
        for i, name in enumerate(capabilities):
            if not isinstance(name, str):
                errors.append(f"capabilities[{i}] must be a string")

    if "max_tokens" in config_data:
        max_tokens = config_data["max_tokens"]
        if not isinstance(max_tokens, int) or max_tokens < 1:
            errors.append("max_tokens must be a positive integer")

    if "temperature" in config_data:
        temperature = config_data["temperature"]
        if not isinstance(temperature, (int, float)) or not 0 <= temperature <= 1:
            errors.append("temperature must be a number between 0 and 1")

    return errors
