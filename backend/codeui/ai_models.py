"""
AI model registry.

Single source of truth for the models offered through OpenRouter. Models can
be narrowed with the ENABLED_AI_MODELS setting (comma separated ids).
"""

from typing import List, Optional
from pydantic import BaseModel

import config

FALLBACK_MODEL_ID = "deepseek/deepseek-chat"


class AIModel(BaseModel):
    id: str
    name: str
    provider: str
    description: Optional[str] = None
    context_length: int
    supports_reasoning: bool = False
    is_fast: bool = False
    is_new: bool = False


ALL_MODELS: List[AIModel] = [
    AIModel(
        id="deepseek/deepseek-chat",
        name="DeepSeek V3",
        provider="DeepSeek",
        description="Powerful general-purpose model",
        context_length=64000,
        is_fast=True,
    ),
    AIModel(
        id="anthropic/claude-haiku-4.5",
        name="Claude Haiku 4.5",
        provider="Anthropic",
        description="Lightweight Claude for fast, low-cost tasks",
        context_length=200000,
        is_fast=True,
        is_new=True,
    ),
    AIModel(
        id="deepseek/deepseek-r1",
        name="DeepSeek R1",
        provider="DeepSeek",
        description="Advanced reasoning model",
        context_length=64000,
        supports_reasoning=True,
    ),
    AIModel(
        id="moonshotai/kimi-k2:free",
        name="Kimi K2",
        provider="Moonshot AI",
        description="Free Kimi K2 model",
        context_length=128000,
    ),
    AIModel(
        id="moonshotai/kimi-k2-thinking",
        name="Kimi K2 Thinking",
        provider="Moonshot AI",
        description="Reasoning-enhanced Kimi",
        context_length=128000,
        supports_reasoning=True,
    ),
    AIModel(
        id="z-ai/glm-4.7",
        name="GLM 4.7",
        provider="Zhipu",
        description="GLM 4.7",
        context_length=128000,
    ),
    AIModel(
        id="mistralai/devstral-2512:free",
        name="Devstral",
        provider="Mistral",
        description="Devstral 2512 (free)",
        context_length=64000,
        is_fast=True,
    ),
    AIModel(
        id="google/gemini-3-flash-preview",
        name="Gemini 3 Flash Preview",
        provider="Google",
        description="Latest Gemini model preview",
        context_length=2000000,
        is_fast=True,
        is_new=True,
    ),
]


def get_enabled_model_ids(setting: Optional[str] = None) -> List[str]:
    setting = config.ENABLED_AI_MODELS if setting is None else setting
    if not setting:
        return [model.id for model in ALL_MODELS]
    return [model_id.strip() for model_id in setting.split(",") if model_id.strip()]


def get_enabled_models(setting: Optional[str] = None) -> List[AIModel]:
    enabled_ids = set(get_enabled_model_ids(setting))
    return [model for model in ALL_MODELS if model.id in enabled_ids]


def get_model_by_id(model_id: str) -> Optional[AIModel]:
    return next((model for model in ALL_MODELS if model.id == model_id), None)


def is_model_enabled(model_id: str, setting: Optional[str] = None) -> bool:
    return model_id in get_enabled_model_ids(setting)


def get_default_model_id(setting: Optional[str] = None) -> str:
    """First enabled model, or DeepSeek V3 when nothing is enabled"""
    enabled = get_enabled_models(setting)
    return enabled[0].id if enabled else FALLBACK_MODEL_ID
