"""
Configuration Management for Second Brain

Loads configuration from ~/.brain/config.json and environment variables.
Set BRAIN_HOME to relocate the whole directory.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, List, Optional

logger = logging.getLogger("brain.common.config")

# Default config paths
CONFIG_DIR = Path(os.getenv("BRAIN_HOME", str(Path.home() / ".brain"))).expanduser()
CONFIG_PATH = CONFIG_DIR / "config.json"
DATA_DIR = CONFIG_DIR / "data"

DEFAULT_LOGIN_URLS = {
    "gmail": "/api/auth/google/login",
    "ms_graph": "/api/auth/microsoft/login",
    "salesforce": "/api/auth/salesforce/login",
}

MORNING_SHIELD_MESSAGE = (
    "Morgens wird konzentriert gearbeitet. Meetings erst ab 10:00 Uhr vorschlagen."
)


@dataclass
class LLMConfig:
    """Text generation provider configuration"""
    provider: str = "google"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    google_api_key: str = ""
    google_model: str = "gemini-2.5-flash"

    @property
    def model(self) -> str:
        """Model name for the selected provider"""
        return {
            "anthropic": self.anthropic_model,
            "openai": self.openai_model,
            "google": self.google_model,
        }.get(self.provider, "")


@dataclass
class EmbeddingConfig:
    """Embedding model configuration"""
    mode: str = "femb"  # fastembed (on-device)
    model: str = "sentence-transformers/paraphrase-multilingual-MiniLM-L12-v2"


@dataclass
class StorageConfig:
    """Local JSON storage locations"""
    data_dir: str = str(DATA_DIR)
    brain_file: str = "personal_brain.json"
    memory_file: str = "memory.json"

    @property
    def brain_path(self) -> Path:
        return Path(self.data_dir).expanduser() / self.brain_file

    @property
    def memory_path(self) -> Path:
        return Path(self.data_dir).expanduser() / self.memory_file


@dataclass
class PolicyConfig:
    """Standing behavioral rules"""
    morning_shield_active: bool = True
    morning_shield_start_hour: int = 0
    morning_shield_end_hour: int = 10
    morning_shield_message: str = MORNING_SHIELD_MESSAGE


@dataclass
class OrchestratorConfig:
    """Routing and synthesis configuration"""
    language: str = "de"  # "de" or "en"
    mail_days: int = 14
    calendar_days: int = 7
    summary_max_items: int = 10
    memory_limit: int = 3
    login_urls: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_LOGIN_URLS))
    # Keyword table overrides; None keeps the built-in tables
    domain_terms: Optional[Dict[str, List[str]]] = None
    intent_terms: Optional[Dict[str, List[str]]] = None
    sync_terms: Optional[List[str]] = None


@dataclass
class BrainConfig:
    """Main Second Brain configuration"""
    llm: LLMConfig = field(default_factory=LLMConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    orchestrator: OrchestratorConfig = field(default_factory=OrchestratorConfig)
    _env_sourced_keys: set = field(default_factory=set, repr=False)


def _parse_llm_config(data: dict) -> LLMConfig:
    """Parse llm section from config dict"""
    llm_data = data.get("llm", {})
    defaults = LLMConfig()
    return LLMConfig(
        provider=llm_data.get("provider", defaults.provider),
        anthropic_api_key=llm_data.get("anthropic_api_key", ""),
        anthropic_model=llm_data.get("anthropic_model", defaults.anthropic_model),
        openai_api_key=llm_data.get("openai_api_key", ""),
        openai_model=llm_data.get("openai_model", defaults.openai_model),
        google_api_key=llm_data.get("google_api_key", ""),
        google_model=llm_data.get("google_model", defaults.google_model),
    )


def _parse_embedding_config(data: dict) -> EmbeddingConfig:
    """Parse embedding section from config dict"""
    embedding_data = data.get("embedding", {})
    defaults = EmbeddingConfig()
    return EmbeddingConfig(
        mode=embedding_data.get("mode", defaults.mode),
        model=embedding_data.get("model", defaults.model),
    )


def _parse_storage_config(data: dict) -> StorageConfig:
    """Parse storage section from config dict"""
    storage_data = data.get("storage", {})
    defaults = StorageConfig()
    return StorageConfig(
        data_dir=storage_data.get("data_dir", defaults.data_dir),
        brain_file=storage_data.get("brain_file", defaults.brain_file),
        memory_file=storage_data.get("memory_file", defaults.memory_file),
    )


def _parse_policy_config(data: dict) -> PolicyConfig:
    """Parse policy section from config dict"""
    policy_data = data.get("policy", {})
    return PolicyConfig(
        morning_shield_active=policy_data.get("morning_shield_active", True),
        morning_shield_start_hour=int(policy_data.get("morning_shield_start_hour", 0)),
        morning_shield_end_hour=int(policy_data.get("morning_shield_end_hour", 10)),
        morning_shield_message=policy_data.get("morning_shield_message", MORNING_SHIELD_MESSAGE),
    )


def _parse_orchestrator_config(data: dict) -> OrchestratorConfig:
    """Parse orchestrator section from config dict"""
    orch_data = data.get("orchestrator", {})
    login_urls = dict(DEFAULT_LOGIN_URLS)
    login_urls.update(orch_data.get("login_urls", {}))
    return OrchestratorConfig(
        language=orch_data.get("language", "de"),
        mail_days=int(orch_data.get("mail_days", 14)),
        calendar_days=int(orch_data.get("calendar_days", 7)),
        summary_max_items=int(orch_data.get("summary_max_items", 10)),
        memory_limit=int(orch_data.get("memory_limit", 3)),
        login_urls=login_urls,
        domain_terms=orch_data.get("domain_terms"),
        intent_terms=orch_data.get("intent_terms"),
        sync_terms=orch_data.get("sync_terms"),
    )


def load_config() -> BrainConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.brain/config.json)
    3. Default values
    """
    config = BrainConfig()

    # Load from config file if exists
    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.llm = _parse_llm_config(data)
            config.embedding = _parse_embedding_config(data)
            config.storage = _parse_storage_config(data)
            config.policy = _parse_policy_config(data)
            config.orchestrator = _parse_orchestrator_config(data)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Failed to load config file: %s", e)

    # Environment variable overrides
    if os.getenv("EMBEDDING_MODE"):
        config.embedding.mode = os.getenv("EMBEDDING_MODE")
    if os.getenv("EMBEDDING_MODEL"):
        config.embedding.model = os.getenv("EMBEDDING_MODEL")
    if os.getenv("BRAIN_DATA_DIR"):
        config.storage.data_dir = os.getenv("BRAIN_DATA_DIR")
    if os.getenv("BRAIN_LANGUAGE"):
        config.orchestrator.language = os.getenv("BRAIN_LANGUAGE")

    # LLM env var overrides (track env-sourced keys)
    _env_llm_map = {
        "ANTHROPIC_API_KEY": "anthropic_api_key",
        "ANTHROPIC_MODEL": "anthropic_model",
        "OPENAI_API_KEY": "openai_api_key",
        "OPENAI_MODEL": "openai_model",
        "GOOGLE_API_KEY": "google_api_key",
        "GEMINI_API_KEY": "google_api_key",
        "GOOGLE_MODEL": "google_model",
        "BRAIN_LLM_PROVIDER": "provider",
    }
    for env_var, attr in _env_llm_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(config.llm, attr, val)
            config._env_sourced_keys.add(attr)

    return config


def save_config(config: BrainConfig) -> None:
    """Save configuration to file.

    API key fields that were sourced from environment variables are written
    as empty strings so that secrets are not persisted to disk.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    env_sourced = getattr(config, "_env_sourced_keys", set())

    _llm_api_key_fields = {
        "anthropic_api_key", "openai_api_key", "google_api_key",
    }
    llm_section = {
        "provider": config.llm.provider,
        "anthropic_api_key": config.llm.anthropic_api_key,
        "anthropic_model": config.llm.anthropic_model,
        "openai_api_key": config.llm.openai_api_key,
        "openai_model": config.llm.openai_model,
        "google_api_key": config.llm.google_api_key,
        "google_model": config.llm.google_model,
    }
    for key in _llm_api_key_fields:
        if key in env_sourced:
            llm_section[key] = ""

    orchestrator_section = {
        "language": config.orchestrator.language,
        "mail_days": config.orchestrator.mail_days,
        "calendar_days": config.orchestrator.calendar_days,
        "summary_max_items": config.orchestrator.summary_max_items,
        "memory_limit": config.orchestrator.memory_limit,
        "login_urls": config.orchestrator.login_urls,
    }
    for key in ("domain_terms", "intent_terms", "sync_terms"):
        value = getattr(config.orchestrator, key)
        if value is not None:
            orchestrator_section[key] = value

    data = {
        "llm": llm_section,
        "embedding": {
            "mode": config.embedding.mode,
            "model": config.embedding.model,
        },
        "storage": {
            "data_dir": config.storage.data_dir,
            "brain_file": config.storage.brain_file,
            "memory_file": config.storage.memory_file,
        },
        "policy": {
            "morning_shield_active": config.policy.morning_shield_active,
            "morning_shield_start_hour": config.policy.morning_shield_start_hour,
            "morning_shield_end_hour": config.policy.morning_shield_end_hour,
            "morning_shield_message": config.policy.morning_shield_message,
        },
        "orchestrator": orchestrator_section,
    }

    with open(CONFIG_PATH, "w") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)

    # Set secure permissions
    CONFIG_PATH.chmod(0o600)


def ensure_directories(config: Optional[BrainConfig] = None) -> None:
    """Ensure required directories exist"""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    data_dir = Path(config.storage.data_dir).expanduser() if config else DATA_DIR
    data_dir.mkdir(parents=True, exist_ok=True)
