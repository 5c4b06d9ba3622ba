"""
Hierarchical YAML configuration for synctree.

Config files are discovered by convention, may pull in other files with
``!include``, and may reference environment variables as ``${VAR}`` or
``${VAR:-default}``.  Files found closer to the project override global
ones key by key at the top level.

Usage:
    from synctree.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SYNCTREE_CONFIG"
PROJECT_DIR = ".synctree"

# ---------------------------------------------------------------------------
# 1. Env var interpolation
# ---------------------------------------------------------------------------

# ${VAR} or ${VAR:-default}
_ENV_REF = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Expand ``${VAR}`` and ``${VAR:-default}`` references in *value*.

    * An unset or empty ``VAR`` expands to *default*, or to ``""`` when no
      default is given.
    * An unterminated ``${`` is kept literally.
    """

    def _expand(match: re.Match) -> str:
        current = os.environ.get(match.group(1))
        if current:
            return current
        return match.group(2) or ""

    return _ENV_REF.sub(_expand, value)


def _interpolate_tree(node: Any) -> Any:
    if isinstance(node, str):
        return interpolate_env_vars(node)
    if isinstance(node, dict):
        return {key: _interpolate_tree(value) for key, value in node.items()}
    if isinstance(node, list):
        return [_interpolate_tree(item) for item in node]
    return node


# ---------------------------------------------------------------------------
# 2. YAML !include support
# ---------------------------------------------------------------------------


class ConfigLoader(yaml.SafeLoader):
    """``SafeLoader`` subclass understanding ``!include <path>``.

    Registering the tag on a subclass leaves ``yaml.SafeLoader`` untouched.
    Each loader instance carries the chain of files being loaded so that
    include cycles are reported instead of recursing forever.
    """

    include_chain: list[Path]


def _include(loader: ConfigLoader, node: yaml.ScalarNode) -> Any:
    target = Path(loader.construct_scalar(node))
    if not target.is_absolute():
        target = Path(loader.name).resolve().parent / target
    target = target.resolve()

    chain = getattr(loader, "include_chain", [])
    if target in chain:
        cycle = " -> ".join(str(p) for p in [*chain, target])
        raise ValueError(f"Circular include detected: {cycle}")
    if not target.exists():
        raise FileNotFoundError(
            f"Include file not found: {target} "
            f"(referenced from {Path(loader.name).resolve()})"
        )
    return load_yaml_file(target, _chain=[*chain, target])


ConfigLoader.add_constructor("!include", _include)


def load_yaml_file(path: Path, *, _chain: list[Path] | None = None) -> Any:
    """Parse one YAML file, resolving ``!include`` relative to it."""
    path = path.resolve()
    with open(path, "r", encoding="utf-8") as fh:
        loader = ConfigLoader(fh)
        loader.include_chain = _chain or [path]
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


# ---------------------------------------------------------------------------
# 3. Discovery
# ---------------------------------------------------------------------------


def discover_config_files() -> list[Path]:
    """Return existing config files, highest precedence first.

    Candidates, in order:
        1. The file named by ``SYNCTREE_CONFIG``.
        2. ``.synctree/config.yml`` in the current directory.
        3. ``.synctree/config.yaml`` in the current directory.
        4. ``~/.config/synctree/config.yml``.
    """
    candidates: list[Path] = []

    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        candidates.append(Path(explicit).expanduser().resolve())

    project = Path.cwd() / PROJECT_DIR
    candidates.append(project / "config.yml")
    candidates.append(project / "config.yaml")
    candidates.append(Path.home() / ".config" / "synctree" / "config.yml")

    return [p for p in candidates if p.exists()]


_STARTER_CONFIG = """\
# synctree configuration
#
# The repository can also be chosen with SYNCTREE_REPO or --repo.
#
# repository:
#   path: .
#   base: HEAD
#   first_parent: false
#
# compare:
#   containers: [services/api, services/web]
#   collapse: true
#   ignore: ["*.lock"]
#
# Named synchronize profiles (synctree status --profile upstream):
#
# sync:
#   upstream:
#     roots: [src, docs]
#     base: HEAD
#     remote: ${SYNCTREE_REMOTE:-origin/main}
#     include_local: true
#     ignore: ["*.generated.py"]
#
# logging:
#   level: INFO
#   file: null
"""


def ensure_config(target: Path | None = None) -> Path:
    """Return the active config file, writing a commented starter if none.

    Args:
        target: Where to create the starter file; defaults to
            ``.synctree/config.yml`` in the current directory.

    Returns:
        Path of the existing or newly created file.
    """
    existing = discover_config_files()
    if existing:
        logger.debug("Config file already exists: %s", existing[0])
        return existing[0]

    path = target or Path.cwd() / PROJECT_DIR / "config.yml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Created starter config: %s", path)
    return path


# ---------------------------------------------------------------------------
# 4. Hierarchical merge
# ---------------------------------------------------------------------------


def load_hierarchical_config() -> dict[str, Any]:
    """Load every discovered config file and merge them.

    Files are applied from lowest to highest precedence; each replaces
    whole top-level sections of the files before it.  Environment
    references are expanded after merging.

    Returns:
        The merged mapping; empty when no config file exists.
    """
    paths = discover_config_files()
    if not paths:
        logger.debug("No config files found; using defaults")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        try:
            data = load_yaml_file(path)
        except Exception:
            logger.exception("Failed to load config file %s", path)
            raise

        if isinstance(data, dict):
            merged.update(data)
        elif data is not None:
            logger.warning(
                "Config file %s has a %s at its root; skipping",
                path,
                type(data).__name__,
            )

    return _interpolate_tree(merged)
