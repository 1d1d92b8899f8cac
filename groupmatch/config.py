from typing import List

from pydantic_settings import BaseSettings

PLACEHOLDER_PREFIXES = ("your_", "your-", "changeme", "xxx")


class Settings(BaseSettings):
    database_url: str = "sqlite:///./groupmatch.db"
    debug: bool = False
    log_level: str = "INFO"

    llm_provider: str = "anthropic"
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    llm_model: str = ""
    llm_timeout_seconds: float = 10.0
    validator_timeout_seconds: float = 6.0
    qualitative_timeout_seconds: float = 15.0

    messaging_api_url: str = "https://api.a1zap.com/v1/messages/individual"
    messaging_api_key: str = ""
    messaging_timeout_seconds: float = 10.0
    matchmaker_agent_id: str = ""
    assistant_agent_id: str = ""
    test_chat_prefixes: List[str] = ["test-", "test_"]

    history_timeout_seconds: float = 5.0
    process_timeout_seconds: float = 12.0
    history_limit: int = 10
    dedup_ttl_seconds: int = 300
    dedup_sweep_interval_seconds: float = 60.0

    admin_token: str = ""
    alert_bot_token: str = ""
    alert_chat_id: str = ""

    documents_dir: str = "documents"

    class Config:
        env_file = ".env"
        extra = "ignore"


def _is_placeholder(value: str) -> bool:
    lowered = (value or "").strip().lower()
    return not lowered or lowered.startswith(PLACEHOLDER_PREFIXES)


def validate_settings(current: Settings) -> dict:
    """Report configuration problems without failing startup."""
    warnings: list[str] = []
    errors: list[str] = []

    if _is_placeholder(current.messaging_api_key):
        errors.append("MESSAGING_API_KEY is missing or a placeholder")
    if _is_placeholder(current.matchmaker_agent_id):
        errors.append("MATCHMAKER_AGENT_ID is missing or a placeholder")
    if _is_placeholder(current.assistant_agent_id):
        warnings.append("ASSISTANT_AGENT_ID not set; assistant agent cannot reply")

    provider = current.llm_provider.strip().lower()
    if provider == "openai" and _is_placeholder(current.openai_api_key):
        warnings.append("OPENAI_API_KEY not set; LLM calls will fail and fall back")
    elif provider == "anthropic" and _is_placeholder(current.anthropic_api_key):
        warnings.append("ANTHROPIC_API_KEY not set; LLM calls will fail and fall back")
    elif provider not in {"openai", "anthropic"}:
        errors.append(f"Unknown LLM_PROVIDER: {current.llm_provider}")

    if not current.admin_token:
        warnings.append("ADMIN_TOKEN not set; admin endpoints are disabled")

    return {"warnings": warnings, "errors": errors}


settings = Settings()
