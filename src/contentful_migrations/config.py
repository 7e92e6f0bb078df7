"""Configuration for the content transfer tooling.

Reads Management API settings from CLI args, environment variables,
.env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    CONTENTFUL_SPACE_ID: Space id (required)
    CONTENTFUL_MANAGEMENT_TOKEN: Content Management API token (required)
    CONTENTFUL_HOST: API host (optional, default: api.contentful.com)
    CONTENTFUL_MIGRATIONS_STORAGE: Where the migration version is kept,
        "tag" or "content" (optional, default: tag)
    CONTENTFUL_INSECURE: Skip SSL verification (optional, default: false)
    CONTENTFUL_MAX_PARALLEL_REQUESTS: Max parallel API requests (optional, default: 2)
    CONTENTFUL_PAGE_SIZE: Items per list request (optional, default: 1000)
"""

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

STORAGE_TAG = "tag"
STORAGE_CONTENT = "content"
VALID_STORAGES = (STORAGE_TAG, STORAGE_CONTENT)


@dataclass
class Config:
    space_id: str
    access_token: str
    host: str = "api.contentful.com"
    storage: str = STORAGE_TAG
    field_id: str = "migration"
    migration_content_type_id: str = "contentful-migrations"
    insecure: bool = False
    debug: bool = False
    max_parallel_requests: int = 2
    page_size: int = 1000

    @property
    def base_url(self) -> str:
        """Base URL of the Content Management API."""
        if self.host.startswith(("http://", "https://")):
            return self.host
        return f"https://{self.host}"


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If credentials are empty or a setting is out of range.
    """
    config.host = config.host.strip().removesuffix("/")
    if not config.host:
        raise ValueError(
            "Management API host cannot be empty. Set CONTENTFUL_HOST "
            "or remove it to use api.contentful.com."
        )

    if not config.space_id.strip():
        raise ValueError(
            "Space id cannot be empty. Set CONTENTFUL_SPACE_ID environment variable."
        )

    if not config.access_token.strip():
        raise ValueError(
            "Management token cannot be empty. "
            "Set CONTENTFUL_MANAGEMENT_TOKEN environment variable."
        )

    if config.storage not in VALID_STORAGES:
        raise ValueError(
            f"Invalid migration storage '{config.storage}': "
            f"must be one of {', '.join(VALID_STORAGES)}"
        )

    if not (1 <= config.max_parallel_requests <= 100):
        raise ValueError(
            f"Invalid max_parallel_requests '{config.max_parallel_requests}': "
            "must be a number between 1 and 100"
        )

    if not (1 <= config.page_size <= 1000):
        raise ValueError(
            f"Invalid page_size '{config.page_size}': "
            "must be a number between 1 and 1000"
        )

    if config.insecure:
        logger.warning(
            "WARNING: SSL verification disabled (insecure=True). Use only for development."
        )


def _int_setting(
    env_key: str, fb: dict, fb_key: str, default: int, low: int, high: int
) -> int:
    raw = os.getenv(env_key)
    if raw is None:
        return int(fb[fb_key]) if fb_key in fb else default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(
            f"Invalid {env_key} '{raw}': must be a number between {low} and {high}"
        ) from None
    if not (low <= value <= high):
        raise ValueError(
            f"Invalid {env_key} '{raw}': must be a number between {low} and {high}"
        )
    return value


def load_config(
    space_id: str | None = None,
    access_token: str | None = None,
    host: str | None = None,
    storage: str | None = None,
    insecure: bool = False,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        space_id: Override space id.
        access_token: Override management token.
        host: Override API host.
        storage: Override migration version storage (``tag``/``content``).
        insecure: Skip SSL verification (CLI flag).
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Dict of values from the YAML ``contentful`` section.
            Used as fallback when CLI arg and env var are both unset.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If the space id or token is missing after checking
            all sources, or a value is invalid.
    """
    fb = yaml_fallbacks or {}

    # --- String fields: CLI > env > YAML > error/default ---

    final_space = space_id or os.getenv("CONTENTFUL_SPACE_ID") or fb.get("space_id")
    if not final_space:
        raise ValueError(
            "Space id not found. Set CONTENTFUL_SPACE_ID environment variable, "
            "pass --space-id CLI argument, or add 'space_id' to config.yml."
        )

    final_token = (
        access_token
        or os.getenv("CONTENTFUL_MANAGEMENT_TOKEN")
        or fb.get("access_token")
    )
    if not final_token:
        raise ValueError(
            "Management token not found. Set CONTENTFUL_MANAGEMENT_TOKEN "
            "environment variable, pass --access-token CLI argument, or add "
            "'access_token' to config.yml."
        )

    final_host = (
        host or os.getenv("CONTENTFUL_HOST") or fb.get("host") or "api.contentful.com"
    )
    final_storage = (
        storage
        or os.getenv("CONTENTFUL_MIGRATIONS_STORAGE")
        or fb.get("storage")
        or STORAGE_TAG
    ).strip().lower()

    # --- Boolean fields: CLI > env > YAML > default ---

    def get_bool_env(key: str) -> bool | None:
        """Return True/False from env var, or None if unset."""
        val = os.getenv(key)
        if val is None:
            return None
        return val.lower() in ("true", "1", "yes", "on")

    if insecure:
        final_insecure = True
    else:
        env_insecure = get_bool_env("CONTENTFUL_INSECURE")
        if env_insecure is not None:
            final_insecure = env_insecure
        else:
            final_insecure = bool(fb.get("insecure", False))

    if debug:
        final_debug = True
    else:
        env_debug = get_bool_env("CONTENTFUL_DEBUG")
        if env_debug is not None:
            final_debug = env_debug
        else:
            final_debug = bool(fb.get("debug", False))

    # --- Numeric fields: env > YAML > default ---

    final_max_parallel = _int_setting(
        "CONTENTFUL_MAX_PARALLEL_REQUESTS", fb, "max_parallel_requests", 2, 1, 100
    )
    final_page_size = _int_setting(
        "CONTENTFUL_PAGE_SIZE", fb, "page_size", 1000, 1, 1000
    )

    config = Config(
        space_id=final_space.strip(),
        access_token=final_token.strip(),
        host=final_host,
        storage=final_storage,
        field_id=fb.get("field_id", "migration"),
        migration_content_type_id=fb.get(
            "migration_content_type_id", "contentful-migrations"
        ),
        insecure=final_insecure,
        debug=final_debug,
        max_parallel_requests=final_max_parallel,
        page_size=final_page_size,
    )

    validate_config(config)

    return config
