"""Runtime settings for the synctree command line.

Resolves which repository to open, the default base revision and the
debug flag from CLI args, environment variables, .env files and the YAML
config.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    SYNCTREE_REPO: Repository root (default: enclosing repository of CWD)
    SYNCTREE_BASE: Default base revision (default: HEAD)
    SYNCTREE_REMOTE: Default remote revision for ``status`` (optional)
    SYNCTREE_DEBUG: Enable debug logging (optional, default: false)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .core.scope import find_repository_root

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    repository: str
    base: str = "HEAD"
    remote: str | None = None
    debug: bool = False
    first_parent: bool = False


def validate_settings(settings: Settings) -> None:
    """Validate settings and raise ValueError if invalid.

    Args:
        settings: Settings instance to validate.

    Raises:
        ValueError: If the repository is not a git working tree or the
            base revision is empty.
    """
    settings.repository = settings.repository.strip()
    root = Path(settings.repository).expanduser()

    if not root.is_dir():
        raise ValueError(f"Repository path '{settings.repository}' is not a directory")

    if not (root / ".git").exists():
        raise ValueError(
            f"'{settings.repository}' is not a git working tree (no .git found)"
        )

    settings.repository = str(root.resolve())

    if not settings.base.strip():
        raise ValueError(
            "Base revision cannot be empty. Set SYNCTREE_BASE or pass --base."
        )
    settings.base = settings.base.strip()


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def load_settings(
    repository: str | None = None,
    base: str | None = None,
    remote: str | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Settings:
    """Load settings with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        repository: Override repository root.
        base: Override base revision.
        remote: Override remote revision.
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: The ``repository`` section of the YAML config.

    Returns:
        Validated Settings instance.

    Raises:
        ValueError: If no repository can be located or validation fails.
    """
    fb = yaml_fallbacks or {}

    repo_path = repository or os.getenv("SYNCTREE_REPO") or fb.get("path")
    if not repo_path:
        found = find_repository_root(Path.cwd())
        if found is None:
            raise ValueError(
                "No repository found. Run inside a git working tree, set "
                "SYNCTREE_REPO, pass --repo, or add 'repository.path' to the config."
            )
        repo_path = str(found)

    final_base = base or os.getenv("SYNCTREE_BASE") or fb.get("base") or "HEAD"
    final_remote = remote or os.getenv("SYNCTREE_REMOTE") or None

    if debug:
        final_debug = True
    else:
        env_debug = _get_bool_env("SYNCTREE_DEBUG")
        final_debug = env_debug if env_debug is not None else False

    settings = Settings(
        repository=repo_path,
        base=final_base,
        remote=final_remote,
        debug=final_debug,
        first_parent=bool(fb.get("first_parent", False)),
    )

    validate_settings(settings)

    return settings
