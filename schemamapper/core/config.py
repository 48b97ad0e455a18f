"""Application configuration loaded from environment variables."""

from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Backend
    backend_host: str = "0.0.0.0"
    backend_port: int = 9200
    log_level: str = "INFO"

    # Knowledge base used when a schema does not name one
    default_knowledge_base: str = "wikidata"

    # Drop validation ceilings (characters per sample value)
    label_max_length: int = 250
    alias_max_length: int = 100

    # Column profiling
    sample_size: int = 10

    # Paths (relative to package root)
    rules_file: str = "rules/completeness_rules.yaml"

    @property
    def package_root(self) -> Path:
        return Path(__file__).parent.parent

    model_config = {"env_file": ".env", "env_prefix": "SCHEMAMAPPER_", "extra": "ignore"}


settings = Settings()
