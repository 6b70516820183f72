import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Always load .env from apps/api/.env (stable, regardless of CWD)
BASE_DIR = Path(__file__).resolve().parents[2]  # apps/api
load_dotenv(dotenv_path=BASE_DIR / ".env", override=False)


def _env_bool(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./notra.db")
    env: str = os.getenv("ENV", "local")

    # openai | ollama
    llm_provider: str = os.getenv("LLM_PROVIDER", "openai").lower()

    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
    openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    openai_timeout_sec: float = float(os.getenv("OPENAI_TIMEOUT_SEC", "180"))
    openai_max_retries: int = int(os.getenv("OPENAI_MAX_RETRIES", "2"))

    ollama_base_url: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    ollama_model: str = os.getenv("OLLAMA_MODEL", "qwen2.5:7b-instruct")
    ollama_timeout_sec: float = float(os.getenv("OLLAMA_TIMEOUT_SEC", "120"))

    # generation knobs
    temperature: float = float(os.getenv("NOTRA_TEMPERATURE", "0.5"))
    summary_temperature: float = float(os.getenv("NOTRA_SUMMARY_TEMPERATURE", "0.2"))
    max_output_tokens: int = int(os.getenv("NOTRA_MAX_OUTPUT_TOKENS", "6000"))
    summary_max_tokens: int = int(os.getenv("NOTRA_SUMMARY_MAX_TOKENS", "2000"))

    # length strategy thresholds (characters)
    thin_threshold: int = int(os.getenv("NOTRA_THIN_THRESHOLD", "500"))
    max_context_chars: int = int(os.getenv("NOTRA_MAX_CONTEXT_CHARS", "12000"))
    very_long_threshold: int = int(os.getenv("NOTRA_VERY_LONG_THRESHOLD", "20000"))
    summary_target_chars: int = int(os.getenv("NOTRA_SUMMARY_TARGET_CHARS", "5000"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_json: bool = _env_bool("LOG_JSON", "1")


settings = Settings()


@dataclass(frozen=True)
class GenerationConfig:
    """
    Immutable knobs for one pipeline instance.

    Built once (usually from Settings) and handed to the engine, the
    strategy selector and the summarizer, so tests can swap thresholds
    without touching env vars.
    """

    model: str = "gpt-4o-mini"
    temperature: float = 0.5
    summary_temperature: float = 0.2
    max_output_tokens: int = 6000
    summary_max_tokens: int = 2000

    thin_threshold: int = 500
    max_context_chars: int = 12000
    very_long_threshold: int = 20000
    summary_target_chars: int = 5000

    def __post_init__(self) -> None:
        if not (0 < self.thin_threshold <= self.max_context_chars <= self.very_long_threshold):
            raise ValueError(
                "thresholds must satisfy 0 < thin_threshold <= max_context_chars <= very_long_threshold "
                f"(got {self.thin_threshold}, {self.max_context_chars}, {self.very_long_threshold})"
            )
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError(f"temperature out of range: {self.temperature}")

    @classmethod
    def from_settings(cls, s: Settings) -> "GenerationConfig":
        model = s.ollama_model if s.llm_provider == "ollama" else s.openai_model
        return cls(
            model=model,
            temperature=s.temperature,
            summary_temperature=s.summary_temperature,
            max_output_tokens=s.max_output_tokens,
            summary_max_tokens=s.summary_max_tokens,
            thin_threshold=s.thin_threshold,
            max_context_chars=s.max_context_chars,
            very_long_threshold=s.very_long_threshold,
            summary_target_chars=s.summary_target_chars,
        )
