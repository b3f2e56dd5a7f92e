"""Load settings.yaml into typed dataclasses. Resolves API keys at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from ai_debate.models import ModelDescriptor, ProviderKind

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class DefaultsConfig:
    rounds: int
    max_rounds: int
    output_dir: Path
    affirmative: str
    opposition: str
    language: str = "English"
    timeout_sec: float = 60.0
    word_delay_sec: float = 0.05


@dataclass
class PromptsConfig:
    affirmative: str
    opposition: str


@dataclass
class ResearchConfig:
    model: str
    prompt: str


@dataclass
class InboxConfig:
    dir: Path
    archive_dir: Path


@dataclass(frozen=True)
class Credentials:
    """API keys keyed by vendor ("openai", "claude", "gemini", "deepseek", "groq")."""

    keys: dict[str, str] = field(default_factory=dict)

    def get(self, vendor: str) -> str | None:
        key = self.keys.get(vendor, "").strip()
        return key or None

    def for_model(self, model: ModelDescriptor) -> str | None:
        return self.get(model.vendor)

    @property
    def vendors(self) -> set[str]:
        return {v for v in self.keys if self.get(v)}

    @classmethod
    def from_env(cls, env_names: dict[str, str]) -> "Credentials":
        keys: dict[str, str] = {}
        for vendor, env_name in env_names.items():
            value = os.environ.get(env_name, "").strip()
            if value:
                keys[vendor] = value
                logger.info("Credential available: %s", vendor)
            else:
                logger.info("Credential missing: %s (set %s in .env)", vendor, env_name)
        return cls(keys)


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelDescriptor]
    prompts: PromptsConfig
    research: ResearchConfig
    inbox: InboxConfig
    credentials: Credentials = field(default_factory=Credentials)

    def resolve_model(self, key_or_name: str) -> ModelDescriptor:
        """Look a model up by catalog key or display name (case-insensitive)."""
        wanted = key_or_name.strip().lower()
        for key, model in self.models.items():
            if wanted in (key.lower(), model.name.lower()):
                return model
        raise KeyError(f"Unknown model '{key_or_name}'. Available: {', '.join(self.models)}")


def _parse_model(key: str, raw: dict) -> ModelDescriptor:
    try:
        kind = ProviderKind(raw["provider"])
    except ValueError as exc:
        raise ValueError(f"Model '{key}': unknown provider '{raw['provider']}'") from exc
    return ModelDescriptor(
        name=str(raw.get("name", key)),
        kind=kind,
        model_id=str(raw["model"]),
        vendor=str(raw.get("vendor", kind.value)),
        base_url=raw.get("base_url"),
    )


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing and ValueError when the
    default debaters are not in the model catalog. Missing API keys are only
    logged; the debate treats them as per-turn failures.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        rounds=int(defaults_raw["rounds"]),
        max_rounds=int(defaults_raw["max_rounds"]),
        output_dir=Path(defaults_raw["output_dir"]),
        affirmative=str(defaults_raw["affirmative"]),
        opposition=str(defaults_raw["opposition"]),
        language=str(defaults_raw.get("language", "English")),
        timeout_sec=float(defaults_raw.get("timeout_sec", 60.0)),
        word_delay_sec=float(defaults_raw.get("word_delay_sec", 0.05)),
    )

    models = {key: _parse_model(key, model_raw) for key, model_raw in raw["models"].items()}
    for side in ("affirmative", "opposition"):
        if getattr(defaults, side) not in models:
            raise ValueError(f"Default {side} model '{getattr(defaults, side)}' is not in the catalog")

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        affirmative=prompts_raw["affirmative"],
        opposition=prompts_raw["opposition"],
    )

    research_raw = raw["research"]
    research = ResearchConfig(model=str(research_raw["model"]), prompt=research_raw["prompt"])

    inbox_raw = raw.get("inbox", {})
    inbox = InboxConfig(
        dir=Path(inbox_raw.get("dir", "./inbox")),
        archive_dir=Path(inbox_raw.get("archive_dir", "./inbox/archive")),
    )

    credentials = Credentials.from_env({str(k): str(v) for k, v in raw.get("credentials", {}).items()})

    return AppConfig(
        defaults=defaults,
        models=models,
        prompts=prompts,
        research=research,
        inbox=inbox,
        credentials=credentials,
    )
