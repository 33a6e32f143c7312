"""Default capability set."""

from __future__ import annotations

from agentcrew.core.registry import CapabilityRegistry
from agentcrew.llm.base import BaseLLMProvider
from agentcrew.utils.config import AppConfig
from agentcrew.utils.logging import get_logger
from agentcrew.utils.observability import LangfuseClient

from .article import ArticleWriter, article_capability
from .exa import ExaClient
from .quality import quality_capability
from .research import research_capabilities
from .weather import WeatherTool, weather_capability

logger = get_logger(__name__)


def build_default_registry(
    config: AppConfig,
    exa: ExaClient | None = None,
    weather: WeatherTool | None = None,
    provider: BaseLLMProvider | None = None,
    observability: LangfuseClient | None = None,
) -> CapabilityRegistry:
    """Build a registry holding every shipped capability.

    Args:
        config: Application configuration.
        exa: Exa client to share; built from ``config.exa`` when omitted.
        weather: Weather executor; a default one is used when omitted.
        provider: Model provider for article drafting. Without one
            ``generate_news_article`` is not registered.
        observability: Langfuse client for quality scores; the global
            client is used when omitted.
    """
    exa = exa or ExaClient.from_config(config.exa)
    if not exa.configured:
        logger.warning("EXA_API_KEY not set; research capabilities will fail when called")

    threshold = config.quality.pass_threshold
    capabilities = [
        *research_capabilities(exa),
        quality_capability(threshold, observability),
        weather_capability(weather),
    ]
    if provider is not None:
        writer = ArticleWriter(provider, threshold=threshold, observability=observability)
        capabilities.append(article_capability(writer))

    registry = CapabilityRegistry(capabilities)
    logger.info("Capabilities registered", count=len(registry), names=registry.names())
    return registry
