"""Capability executors shipped with agentcrew."""

from .article import ArticleWriter, article_capability
from .builtin import build_default_registry
from .exa import ExaClient, ExaResult
from .quality import quality_capability, record_quality_score, review_article
from .research import ResearchTools, research_capabilities
from .weather import WeatherTool, weather_capability

__all__ = [
    "build_default_registry",
    # Articles
    "ArticleWriter",
    "article_capability",
    # Exa
    "ExaClient",
    "ExaResult",
    "ResearchTools",
    "research_capabilities",
    # Quality
    "quality_capability",
    "record_quality_score",
    "review_article",
    # Weather
    "WeatherTool",
    "weather_capability",
]
