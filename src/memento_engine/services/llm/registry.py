"""
LLM provider registry.

Providers are configured as named profiles; activities (such as
``consolidation``) can be pointed at a profile. Anything that does not resolve
falls back to the ``default`` profile.
"""
from logging import Logger
from typing import Any

from scitrera_app_framework import Variables

from .base import LLMProvider, LLMProviderRegistryPluginBase
from .noop import NoOpLLMProvider
from ...models.llm import LLMRequest, LLMResponse

MEMENTO_LLM_PROFILE_PREFIX = 'MEMENTO_LLM_PROFILE'
MEMENTO_LLM_ASSIGN_PREFIX = 'MEMENTO_LLM_ASSIGN'

PROFILE_FIELDS = ('provider', 'model', 'base_url', 'api_key', 'max_tokens', 'temperature')


class LLMProviderRegistry:
    """Named LLM providers plus an activity -> profile map."""

    def __init__(self, providers: dict[str, LLMProvider], profile_map: dict[str, str] | None = None):
        if "default" not in providers:
            raise ValueError("LLM registry requires a 'default' provider")
        self._providers = providers
        self._profile_map: dict[str, str] = profile_map or {}

    def get_provider(self, profile: str = "default") -> LLMProvider:
        """Resolve an activity or profile name to a provider, falling back to ``default``."""
        name = self._profile_map.get(profile, profile)
        return self._providers.get(name) or self._providers["default"]

    async def complete(self, request: LLMRequest, profile: str = "default") -> LLMResponse:
        return await self.get_provider(profile).complete(request)

    @property
    def profile_names(self) -> list[str]:
        return list(self._providers)

    @property
    def profile_map(self) -> dict[str, str]:
        return dict(self._profile_map)


def discover_profiles(profile_vars: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """
    Group flattened profile settings by profile name.

    ``{"default_provider": "openai", "cheap_model": "x"}`` becomes
    ``{"default": {"provider": "openai"}, "cheap": {"model": "x"}}``. Keys that
    do not end in a known field are ignored.
    """
    profiles: dict[str, dict[str, Any]] = {}
    for key, value in profile_vars.items():
        key = key.lower()
        for fld in PROFILE_FIELDS:
            suffix = f'_{fld}'
            if key.endswith(suffix) and len(key) > len(suffix):
                profiles.setdefault(key[:-len(suffix)], {})[fld] = value
                break
    return profiles


def create_provider_from_config(
        name: str,
        provider_type: str,
        model: str | None = None,
        base_url: str | None = None,
        api_key: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        v: Variables = None,
) -> LLMProvider:
    """
    Instantiate the provider for one profile.

    Raises:
        ValueError: If provider_type is not ``openai`` or ``noop``
    """
    if provider_type == "openai":
        from .openai import OpenAILLMProvider
        return OpenAILLMProvider(
            api_key=api_key, base_url=base_url, **({"model": model} if model else {}),
            default_max_tokens=max_tokens, default_temperature=temperature, v=v,
        )
    if provider_type == "noop":
        return NoOpLLMProvider(v=v)
    raise ValueError(f"Unknown provider type for LLM profile {name!r}: {provider_type!r}")


class DefaultLLMProviderRegistryPlugin(LLMProviderRegistryPluginBase):
    """Builds the LLM registry from configuration.

    Profiles:
        MEMENTO_LLM_PROFILE_<NAME>_PROVIDER=openai|noop
        MEMENTO_LLM_PROFILE_<NAME>_MODEL=gpt-4o-mini
        MEMENTO_LLM_PROFILE_<NAME>_BASE_URL=...
        MEMENTO_LLM_PROFILE_<NAME>_API_KEY=...
        MEMENTO_LLM_PROFILE_<NAME>_MAX_TOKENS=512
        MEMENTO_LLM_PROFILE_<NAME>_TEMPERATURE=0.2

    Assignments:
        MEMENTO_LLM_ASSIGN_CONSOLIDATION=<profile name>

    Without a ``default`` profile the NoOp provider is installed, which makes
    consolidation fall back to template summaries.
    """
    PROVIDER_NAME = 'default'

    def initialize(self, v: Variables, logger: Logger) -> LLMProviderRegistry:
        # keys come back lowercased with the prefix stripped, e.g. "default_provider"
        profiles = discover_profiles(v.import_from_env_by_prefix(MEMENTO_LLM_PROFILE_PREFIX))

        providers: dict[str, LLMProvider] = {}
        for name, cfg in sorted(profiles.items()):
            if not cfg.get('provider'):
                logger.warning("LLM profile '%s' missing PROVIDER, skipping", name)
                continue
            provider = create_provider_from_config(
                name=name,
                provider_type=str(cfg['provider']).lower(),
                model=cfg.get('model'),
                base_url=cfg.get('base_url'),
                api_key=cfg.get('api_key'),
                max_tokens=int(cfg['max_tokens']) if cfg.get('max_tokens') is not None else None,
                temperature=float(cfg['temperature']) if cfg.get('temperature') is not None else None,
                v=v,
            )
            providers[name] = provider
            logger.info("LLM profile '%s': %s/%s", name, cfg['provider'], provider.default_model)

        if 'default' not in providers:
            logger.info("No default LLM profile configured, consolidation will use template summaries")
            providers['default'] = NoOpLLMProvider(v=v)

        profile_map = {
            activity.lower(): str(profile).lower()
            for activity, profile in v.import_from_env_by_prefix(MEMENTO_LLM_ASSIGN_PREFIX).items()
        }
        for activity, profile in profile_map.items():
            logger.info("LLM activity '%s' -> profile '%s'", activity, profile)

        return LLMProviderRegistry(providers=providers, profile_map=profile_map)
