from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Generation (OpenAI-compatible). Checked per request, not at import.
    openai_api_key: str = ""
    openai_base_url: str = ""
    answer_model: str = "gpt-4o"
    answer_temperature: float = 0.7
    answer_max_tokens: int = 2000
    follow_up_max_tokens: int = 150
    max_follow_up_questions: int = 5

    # Search/scrape microservice
    search_service_url: str = Field(
        default="http://localhost:8008/search",
        validation_alias=AliasChoices("search_service_url", "crawl4ai_service_url"),
    )
    search_result_limit: int = 5
    search_timeout_seconds: float = 60.0

    # Context assembly / emission
    source_char_limit: int = 2000
    sources_render_delay_ms: int = 300
    stream_protocol_version: str = "v1"

    # App
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]


settings = Settings()
