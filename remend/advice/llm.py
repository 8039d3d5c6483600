"""OpenAI model construction shared by the advice and weekly summary agents."""

from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider


def openai_model(model_name: str, api_key: str | None = None) -> OpenAIChatModel:
    """OpenAI chat model for a pydantic_ai Agent.

    The key defaults to the configured OPENAI_API_KEY. An empty key leaves the
    provider to read the environment on its own.
    """
    if api_key is None:
        from remend.config.settings import settings

        api_key = settings.openai_api_key
    return OpenAIChatModel(model_name, provider=OpenAIProvider(api_key=api_key or None))
