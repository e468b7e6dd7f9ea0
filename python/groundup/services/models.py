"""Upstream model catalogue and default model resolution."""

from groundup.schemas.keys import ModelOut, ProviderModelsOut

# Used when a credential has no stored default_model
DEFAULT_MODELS: dict[str, str] = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-sonnet-20241022",
    "google": "gemini-flash-latest",
}

MODEL_CATALOGUE: dict[str, list[ModelOut]] = {
    "openai": [
        ModelOut(value="gpt-4o", label="GPT-4o", description="Most capable, best quality"),
        ModelOut(value="gpt-4o-mini", label="GPT-4o Mini", description="Balanced speed and quality"),
        ModelOut(value="gpt-4-turbo", label="GPT-4 Turbo", description="Advanced reasoning"),
        ModelOut(value="gpt-3.5-turbo", label="GPT-3.5 Turbo", description="Fast and low cost"),
    ],
    "anthropic": [
        ModelOut(
            value="claude-3-5-sonnet-20241022",
            label="Claude 3.5 Sonnet",
            description="Best overall performance",
        ),
        ModelOut(value="claude-3-opus-20240229", label="Claude 3 Opus", description="Most powerful"),
        ModelOut(
            value="claude-3-haiku-20240307", label="Claude 3 Haiku", description="Fast and efficient"
        ),
    ],
    "google": [
        ModelOut(
            value="gemini-flash-latest",
            label="Gemini Flash Latest",
            description="Latest hybrid model with 1M token context",
        ),
        ModelOut(
            value="gemini-flash-lite-latest",
            label="Gemini Flash-Lite Latest",
            description="Most cost effective, built for scale",
        ),
        ModelOut(value="gemini-2.5-flash", label="Gemini 2.5 Flash", description="1M token context"),
        ModelOut(value="gemini-1.5-pro", label="Gemini 1.5 Pro", description="Most capable"),
    ],
}


def resolve_model(provider: str, credential_default: str | None) -> str:
    """Credential's stored default, else the provider default.

    Raises:
        KeyError: If provider has no default model.
    """
    return credential_default or DEFAULT_MODELS[provider]


def list_provider_models(enabled: dict[str, bool] | None = None) -> list[ProviderModelsOut]:
    """Catalogue for every provider, skipping providers disabled by feature flag."""
    enabled = enabled or {}
    return [
        ProviderModelsOut(provider=provider, default_model=DEFAULT_MODELS[provider], models=models)
        for provider, models in MODEL_CATALOGUE.items()
        if enabled.get(provider, True)
    ]
