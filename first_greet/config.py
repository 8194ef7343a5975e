import logging
import re

from pydantic import field_validator
from pydantic_settings import BaseSettings

RETELL_BASE_URL = "https://api.retellai.com"
E164_PATTERN = re.compile(r"^\+[1-9]\d{7,14}$")


class Settings(BaseSettings):
    # Retell
    retell_api_key: str
    retell_base_url: str = RETELL_BASE_URL
    retell_agent_id: str = ""          # Pin the agent by id instead of looking it up by name
    request_timeout: float = 30.0      # seconds

    # Call screening
    owner_name: str = "Mike"
    transfer_phone_number: str         # Owner's personal line, E.164

    # Resource lookup
    agent_name: str = "First Greet"
    phone_nickname_match: str = "First Greet"

    # Model / voice
    llm_model: str = "gpt-4.1-mini"
    llm_temperature: float = 0.3
    voice_id: str = "11labs-Grace"

    # Behaviour
    rollback_on_failure: bool = False
    log_level: str = "WARNING"

    @field_validator("retell_api_key")
    @classmethod
    def _api_key_present(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("RETELL_API_KEY must not be empty")
        return value

    @field_validator("transfer_phone_number")
    @classmethod
    def _e164(cls, value: str) -> str:
        value = value.strip()
        if not E164_PATTERN.match(value):
            raise ValueError(f"{value!r} is not an E.164 phone number (e.g. +18475550100)")
        return value

    @field_validator("llm_temperature")
    @classmethod
    def _temperature_range(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("LLM_TEMPERATURE must be between 0 and 1")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        value = value.strip().upper()
        if not isinstance(logging.getLevelName(value), int):
            raise ValueError(f"LOG_LEVEL {value!r} is not a logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")
        return value

    @field_validator("retell_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


def load_settings(env_file: str | None = None) -> Settings:
    """Read settings from the environment (and ``.env``), raising on invalid values."""
    if env_file:
        return Settings(_env_file=env_file)
    return Settings()
