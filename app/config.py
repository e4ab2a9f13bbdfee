from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # You.com (search, contents and agents share one key)
    you_api_key: str = ""
    you_search_base_url: str = "https://ydc-index.io"
    you_agents_base_url: str = "https://api.you.com"

    # Search provider
    search_provider: str = "you"  # you | brave
    brave_api_key: str = ""
    search_results_per_query: int = 5
    search_freshness: str = "year"  # day | week | month | year
    search_crawl_mode: str = ""  # web | news | all, empty disables livecrawl
    search_timeout_s: float = 30.0

    # Deep read (content extraction)
    deep_read_max_urls: int = 3
    deep_read_max_authority: int = 2
    deep_read_max_other: int = 1
    rejected_sources_max: int = 5
    extract_crawl_timeout_s: int = 10
    extract_max_markdown_chars: int = 3000
    extract_max_block_chars: int = 2000

    # Reasoning
    reasoning_provider: str = "you"  # you | openrouter | none
    reasoning_timeout_s: float = 45.0
    reasoning_max_steps: int = 2
    reasoning_search_effort: str = "low"
    reasoning_verbosity: str = "medium"
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_model: str = "openai/gpt-4o-mini"

    # Sentence readability gate
    readable_min_chars: int = 30
    readable_max_chars: int = 2000
    readable_min_words: int = 5
    readable_min_alpha_ratio: float = 0.55

    # Report
    report_max_citations: int = 10

    # News digest
    news_results_count: int = 10
    news_max_articles: int = 12

    # App
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]


settings = Settings()
