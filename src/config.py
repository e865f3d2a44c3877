"""
Pipeline configuration.

Values come from config/config.yaml; any missing file, section or key
falls back to the defaults below.  The model credential is read from the
environment (GROQ_API_KEY, then OPENAI_API_KEY) after loading .env.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from src.chunking.chunker import MAX_TOKENS
from src.extraction.extractor import MAX_FILE_SIZE
from src.generation.generator import DEFAULT_BASE_URL, DEFAULT_MODEL
from src.generation.retry import BASE_DELAY, JITTER, MAX_DELAY, MAX_RETRIES

DEFAULT_CONFIG_PATH = "config/config.yaml"


class ChunkingConfig(BaseModel):
    max_tokens: int = Field(MAX_TOKENS, ge=1)


class RetryConfig(BaseModel):
    max_retries: int = Field(MAX_RETRIES, ge=0)
    base_delay: float = Field(BASE_DELAY, ge=0)      # seconds
    max_delay: float = Field(MAX_DELAY, ge=0)        # seconds
    jitter: float = Field(JITTER, ge=0)


class GenerationConfig(BaseModel):
    model: str = DEFAULT_MODEL
    base_url: Optional[str] = DEFAULT_BASE_URL
    temperature: float = 0.3
    max_concurrency: int = Field(1, ge=1)
    timeout: Optional[float] = None                  # seconds for a whole batch


class ExtractionConfig(BaseModel):
    max_file_size: int = MAX_FILE_SIZE
    remote_endpoint: Optional[str] = None
    remote_api_key_env: str = "EXTRACTION_API_KEY"
    remote_timeout: float = 60.0


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file: str = "logs/pipeline.log"
    error_log: str = "logs/error.log"


class PipelineConfig(BaseModel):
    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: str | Path = DEFAULT_CONFIG_PATH) -> PipelineConfig:
    """Load YAML config; a missing file yields all defaults."""
    p = Path(path)
    if not p.exists():
        return PipelineConfig()
    with open(p, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    return PipelineConfig.model_validate(raw)


def resolve_api_key(explicit: Optional[str] = None) -> Optional[str]:
    """Explicit key, else GROQ_API_KEY, else OPENAI_API_KEY."""
    if explicit:
        return explicit
    load_dotenv()
    return os.getenv("GROQ_API_KEY") or os.getenv("OPENAI_API_KEY")
