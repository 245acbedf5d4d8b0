"""
Config Module - Application Configuration
=========================================
Holds the model credential and the static generation/safety settings
sent with every analysis request.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

from dotenv import load_dotenv


DEFAULT_MODEL_ID = "gemini-2.5-pro"

# Checked in order; the first non-empty value wins
API_KEY_ENV_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY")


@dataclass(frozen=True)
class GenerationSettings:
    """Decoding parameters shared by every request."""
    temperature: float = 0.9
    top_k: int = 32
    top_p: float = 0.95
    max_output_tokens: int = 1024


@dataclass(frozen=True)
class SafetySetting:
    """
    A content-safety threshold for one harm category.
    
    Attributes:
        category: SDK HarmCategory name
        threshold: SDK HarmBlockThreshold name
    """
    category: str
    threshold: str


DEFAULT_GENERATION_SETTINGS = GenerationSettings()

DEFAULT_SAFETY_SETTINGS: Tuple[SafetySetting, ...] = tuple(
    SafetySetting(category, "BLOCK_MEDIUM_AND_ABOVE")
    for category in (
        "HARM_CATEGORY_HARASSMENT",
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
    )
)


@dataclass
class AppConfig:
    """
    Runtime configuration injected at startup.
    
    Attributes:
        api_key: Credential for the model backend (empty if absent)
        model_id: Model identifier
        request_timeout: Seconds before an outstanding analysis is
            abandoned (None waits forever)
    """
    api_key: str = ""
    model_id: str = DEFAULT_MODEL_ID
    request_timeout: Optional[float] = None
    
    def has_credentials(self) -> bool:
        """Check if a usable API key is present."""
        return bool(self.api_key and self.api_key.strip())
    
    @classmethod
    def from_env(
        cls,
        dotenv_path: Optional[Union[str, Path]] = None,
        **overrides
    ) -> "AppConfig":
        """
        Build a config from the environment.
        
        Loads a .env file first; variables already set are kept.
        
        Args:
            dotenv_path: Explicit .env location (searched for if None)
            **overrides: Field values taking precedence over the environment
            
        Returns:
            AppConfig instance
        """
        load_dotenv(dotenv_path)
        
        api_key = ""
        for name in API_KEY_ENV_VARS:
            api_key = os.environ.get(name, "").strip()
            if api_key:
                break
        
        values = {"api_key": api_key}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
