"""Inference service configuration management."""

import os
from dataclasses import dataclass


@dataclass
class InferenceConfig:
    """Azure OpenAI vision model configuration."""

    openai_endpoint: str
    openai_api_key: str
    openai_api_version: str = "2024-02-15-preview"

    # Vision-capable chat deployment
    vision_deployment: str = "gpt-4o"

    max_tokens: int = 4000
    temperature: float = 0.2

    @classmethod
    def from_env(cls) -> "InferenceConfig":
        """Load configuration from environment variables."""
        return cls(
            openai_endpoint=os.getenv("AZURE_OPENAI_ENDPOINT", ""),
            openai_api_key=os.getenv("AZURE_OPENAI_API_KEY", ""),
            openai_api_version=os.getenv("AZURE_OPENAI_API_VERSION", "2024-02-15-preview"),
            vision_deployment=os.getenv("AZURE_OPENAI_GPT4V_DEPLOYMENT", "gpt-4o"),
            max_tokens=int(os.getenv("GEOIMAGE_INFERENCE_MAX_TOKENS", "4000")),
            temperature=float(os.getenv("GEOIMAGE_INFERENCE_TEMPERATURE", "0.2")),
        )

    def is_configured(self) -> bool:
        """Check if Azure OpenAI is properly configured."""
        return bool(self.openai_endpoint and self.openai_api_key)
