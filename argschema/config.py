import os
import logging
from pydantic_settings import BaseSettings
from pydantic import model_validator
from typing import Optional


logger = logging.getLogger(__name__)


def _env_or_dotenv(key: str, dotenv_path: str = ".env") -> Optional[str]:
    """Get a value from env var (if non-empty) or from .env file.

    Pydantic-settings prefers env vars over .env files. If the env var
    is set to an empty string, pydantic treats it as the actual value and
    ignores the .env file. This helper ensures that empty env vars fall
    through to the .env file value.
    """
    val = os.environ.get(key)
    if val:
        return val
    try:
        from dotenv import dotenv_values
        vals = dotenv_values(dotenv_path)
        return vals.get(key) or None
    except ImportError:
        return None


# ---------------------------------------------------------------------------
# Documentation sources
# ---------------------------------------------------------------------------

LEARN_BASE_URL = "https://learn.microsoft.com"
GITHUB_API_URL = "https://api.github.com"

# Table reference page (HTML) with one <h2> per table
SUPPORTED_TABLES_URL = (
    f"{LEARN_BASE_URL}/en-us/azure/governance/resource-graph/reference/supported-tables-resources"
)

# MicrosoftDocs repositories → content paths
AZURE_DOCS_REPO = "MicrosoftDocs/azure-docs"
KUSTO_DOCS_REPO = "MicrosoftDocs/dataexplorer-docs"

SAMPLE_SEARCH_PATHS: list[str] = [
    "articles/governance/resource-graph/includes/samples-by-category",
    "articles/governance/resource-graph/samples",
]
QUERY_LANGUAGE_DOC_PATH = "articles/governance/resource-graph/concepts/query-language.md"
KQL_REFERENCE_PATH = "data-explorer/kusto/query"

# Public URL prefix for rendered KQL reference pages
KQL_DOCS_URL = f"{LEARN_BASE_URL}/en-us/kusto/query"


class Settings(BaseSettings):
    # GitHub (optional token raises the anonymous rate limit)
    github_token: Optional[str] = None
    user_agent: str = "arg-schema-gen/1.0"

    # Fetching
    request_timeout: float = 10.0
    max_retries: int = 5
    base_retry_delay: float = 1.0
    max_retry_delay: float = 10.0
    request_delay: float = 2.0
    batch_size: int = 10
    max_workers: int = 8

    # Output
    output_dir: str = "schema"
    syntax_dir: str = "syntaxes"
    language_elements_path: str = "kusto-language-elements.json"

    # Extraction
    min_snippet_length: int = 10

    # Doc slug → extra spellings used by the language service
    operator_name_synonyms: dict[str, list[str]] = {"take": ["limit"]}

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _resolve_empty_env_vars(self) -> "Settings":
        """Fix empty env vars overriding .env file values."""
        if not self.github_token:
            val = _env_or_dotenv("GITHUB_TOKEN")
            if val:
                object.__setattr__(self, "github_token", val)
        return self


settings = Settings()
