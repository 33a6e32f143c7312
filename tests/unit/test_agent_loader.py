"""Unit tests for AgentLoader, PromptLibrary and AgentProfileTable."""

from pathlib import Path

import pytest

from agentcrew.agents import (
    AgentConfigError,
    AgentLoader,
    AgentLoadError,
    PromptLibrary,
    validate_profile_data,
)
from agentcrew.core import AgentProfileTable, CapabilityRegistry
from agentcrew.core.dispatcher import HANDOFF_FROM_KEY, HANDOFF_REASON_KEY
from agentcrew.models import AgentProfile, AgentRole, ModelTier
from agentcrew.tools import build_default_registry
from agentcrew.utils.config import AppConfig
from agentcrew.utils.exceptions import InvalidConfigurationError, UnknownAgentError

CONFIGS = Path(__file__).parents[2] / "configs"


@pytest.fixture
def loader() -> AgentLoader:
    """Create an AgentLoader instance."""
    return AgentLoader()


@pytest.fixture
def valid_yaml_content() -> str:
    """Valid YAML profile content."""
    return """
agent_id: scout
name: Scout
emoji: "🔍"
description: research specialist
model_tier: standard
capabilities:
  - echo
error_message: "Scout is having trouble."
max_tokens: 2048
temperature: 0.5
"""


class TestLoadFromYaml:
    """Test AgentLoader.load_from_yaml."""

    def test_load_valid_yaml(self, loader: AgentLoader, tmp_path: Path, valid_yaml_content: str):
        path = tmp_path / "scout.yaml"
        path.write_text(valid_yaml_content, encoding="utf-8")

        profile = loader.load_from_yaml(path)

        assert profile.agent_id == AgentRole.SCOUT
        assert profile.name == "Scout"
        assert profile.capabilities == frozenset({"echo"})
        assert profile.model_tier == ModelTier.STANDARD
        assert profile.max_tokens == 2048
        assert profile.error_message == "Scout is having trouble."

    def test_minimal_profile(self, loader: AgentLoader, tmp_path: Path):
        path = tmp_path / "maven.yaml"
        path.write_text("agent_id: maven\nname: Maven\n")
        profile = loader.load_from_yaml(path)
        assert profile.capabilities == frozenset()
        assert profile.prompt_key == "maven"

    def test_file_not_found(self, loader: AgentLoader, tmp_path: Path):
        with pytest.raises(AgentLoadError) as exc_info:
            loader.load_from_yaml(tmp_path / "missing.yaml")
        assert "Configuration file not found" in exc_info.value.message
        assert exc_info.value.path == str(tmp_path / "missing.yaml")

    def test_directory_is_not_a_file(self, loader: AgentLoader, tmp_path: Path):
        with pytest.raises(AgentLoadError):
            loader.load_from_yaml(tmp_path)

    def test_invalid_yaml(self, loader: AgentLoader, tmp_path: Path):
        path = tmp_path / "bad.yaml"
        path.write_text("agent_id: [unclosed\n")
        with pytest.raises(AgentLoadError) as exc_info:
            loader.load_from_yaml(path)
        assert "Invalid YAML" in exc_info.value.message

    def test_empty_file(self, loader: AgentLoader, tmp_path: Path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        with pytest.raises(AgentConfigError):
            loader.load_from_yaml(path)

    def test_not_a_mapping(self, loader: AgentLoader, tmp_path: Path):
        path = tmp_path / "list.yaml"
        path.write_text("- scout\n- sage\n")
        with pytest.raises(AgentConfigError):
            loader.load_from_yaml(path)

    def test_unknown_agent_id(self, loader: AgentLoader, tmp_path: Path):
        path = tmp_path / "wizard.yaml"
        path.write_text("agent_id: wizard\nname: Wizard\n")
        with pytest.raises(AgentConfigError):
            loader.load_from_yaml(path)

    def test_unknown_field(self, loader: AgentLoader, tmp_path: Path):
        path = tmp_path / "scout.yaml"
        path.write_text("agent_id: scout\nname: Scout\nsystem_prompt: hi\n")
        with pytest.raises(AgentConfigError):
            loader.load_from_yaml(path)


class TestLoadAllFromDirectory:
    """Test AgentLoader.load_all_from_directory."""

    def test_skips_broken_files(self, loader: AgentLoader, tmp_path: Path):
        (tmp_path / "a_scout.yaml").write_text("agent_id: scout\nname: Scout\n")
        (tmp_path / "b_sage.yml").write_text("agent_id: sage\nname: Sage\n")
        (tmp_path / "c_broken.yaml").write_text("name: Nobody\n")
        (tmp_path / "notes.txt").write_text("ignored")

        profiles = loader.load_all_from_directory(tmp_path)

        assert [p.agent_id.value for p in profiles] == ["scout", "sage"]

    def test_nothing_loads(self, loader: AgentLoader, tmp_path: Path):
        (tmp_path / "broken.yaml").write_text("name: Nobody\n")
        with pytest.raises(AgentLoadError) as exc_info:
            loader.load_all_from_directory(tmp_path)
        assert "Failed to load any agents" in exc_info.value.message

    def test_empty_directory(self, loader: AgentLoader, tmp_path: Path):
        assert loader.load_all_from_directory(tmp_path) == []

    def test_missing_directory(self, loader: AgentLoader, tmp_path: Path):
        with pytest.raises(AgentLoadError):
            loader.load_all_from_directory(tmp_path / "nope")

    def test_shipped_profiles(self, loader: AgentLoader):
        profiles = loader.load_all_from_directory(CONFIGS / "agents")
        ids = {p.agent_id for p in profiles}
        assert ids == set(AgentRole)
        maven = next(p for p in profiles if p.agent_id == AgentRole.MAVEN)
        assert maven.model_tier == ModelTier.FAST


class TestValidateProfileData:
    """Test validate_profile_data."""

    def test_valid(self):
        assert validate_profile_data({"agent_id": "scout", "name": "Scout"}) == []

    def test_missing_fields(self):
        errors = validate_profile_data({})
        assert "Missing required field: agent_id" in errors
        assert "Missing required field: name" in errors

    def test_capabilities_shape(self):
        errors = validate_profile_data(
            {"agent_id": "scout", "name": "Scout", "capabilities": "search_web"}
        )
        assert errors == ["capabilities must be a list"]

        errors = validate_profile_data(
            {"agent_id": "scout", "name": "Scout", "capabilities": ["ok", 3]}
        )
        assert errors == ["capabilities[1] must be a string"]

    def test_numeric_bounds(self):
        errors = validate_profile_data(
            {"agent_id": "scout", "name": "Scout", "max_tokens": 0, "temperature": 1.5}
        )
        assert errors == [
            "max_tokens must be a positive integer",
            "temperature must be a number between 0 and 1",
        ]


class TestPromptLibrary:
    """Test PromptLibrary."""

    @pytest.fixture
    def profile(self) -> AgentProfile:
        return AgentProfile(agent_id=AgentRole.TRENDS, name="Trends", description="Roundups")

    def test_from_directory(self, tmp_path: Path):
        (tmp_path / "trends.md").write_text("  Today is {today}.  \n")
        library = PromptLibrary.from_directory(tmp_path)
        assert len(library) == 1
        assert "trends" in library
        assert library.get("trends") == "Today is {today}."

    def test_missing_directory(self, tmp_path: Path):
        assert len(PromptLibrary.from_directory(tmp_path / "nope")) == 0

    def test_build_substitutes_date(self, profile: AgentProfile):
        library = PromptLibrary({"trends": "Today is {today}."})
        context = library.build(profile, {})
        assert "{today}" not in context
        assert context.startswith("Today is ")

    def test_build_appends_handoff_note(self, profile: AgentProfile):
        library = PromptLibrary({"trends": "You are Trends."})
        context = library.build(
            profile, {HANDOFF_FROM_KEY: "maven", HANDOFF_REASON_KEY: "news request"}
        )
        assert context == (
            "You are Trends.\n\n"
            "This request was handed to you by maven. Reason: news request."
        )

    def test_fallback_without_prompt(self, profile: AgentProfile):
        context = PromptLibrary().build(profile, {})
        assert context == "You are Trends. Roundups"

    def test_shipped_prompts(self):
        library = PromptLibrary.from_directory(CONFIGS / "prompts")
        for role in AgentRole:
            assert role.value in library


class TestAgentProfileTable:
    """Test AgentProfileTable."""

    def test_lookup(self, profiles: AgentProfileTable):
        assert profiles.get("scout").name == "Scout"
        assert profiles.default_agent == "maven"
        assert profiles.ids() == ["scout", "sage", "maven"]
        assert len(profiles) == 3
        assert "sage" in profiles

    def test_unknown_agent(self, profiles: AgentProfileTable):
        with pytest.raises(UnknownAgentError):
            profiles.get("trends")

    def test_resolve_falls_back_to_default(self, profiles: AgentProfileTable):
        assert profiles.resolve("trends").agent_id == AgentRole.MAVEN
        assert profiles.resolve(None).agent_id == AgentRole.MAVEN

    def test_summaries(self, profiles: AgentProfileTable):
        summaries = {s.agent_id: s for s in profiles.summaries()}
        assert summaries["maven"].is_default
        assert summaries["scout"].capabilities == ["echo", "explode"]
        assert summaries["sage"].model_tier == "advanced"

    def test_unregistered_capability(self, registry: CapabilityRegistry):
        profile = AgentProfile(
            agent_id=AgentRole.SCOUT, name="Scout", capabilities=frozenset({"teleport"})
        )
        with pytest.raises(InvalidConfigurationError) as exc_info:
            AgentProfileTable([profile], default_agent="scout", registry=registry)
        assert "teleport" in exc_info.value.message

    def test_duplicate_profile(self, registry: CapabilityRegistry):
        profile = AgentProfile(agent_id=AgentRole.SCOUT, name="Scout")
        with pytest.raises(InvalidConfigurationError):
            AgentProfileTable([profile, profile], default_agent="scout", registry=registry)

    def test_missing_default(self, registry: CapabilityRegistry):
        profile = AgentProfile(agent_id=AgentRole.SCOUT, name="Scout")
        with pytest.raises(InvalidConfigurationError):
            AgentProfileTable([profile], default_agent="maven", registry=registry)

    def test_shipped_configuration_is_consistent(self, loader: AgentLoader, provider):
        """Every shipped allowlist names a registered capability."""
        registry = build_default_registry(AppConfig(), provider=provider)
        table = AgentProfileTable(
            loader.load_all_from_directory(CONFIGS / "agents"),
            default_agent="maven",
            registry=registry,
        )
        assert len(table) == 5
        assert len(registry) == 10
        assert table.get("chronicle").can_use("generate_news_article")
