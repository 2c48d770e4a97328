r"""
YAML + environment configuration for the user export.

Sample ``config.yaml``
----------------------
```yaml
directory:
  server: dc01.company.com
  port: 636
  use_ssl: true
  bind_dn: CN=svc-export,OU=Service,DC=company,DC=com
  password_env: USER_EXPORT_BIND_PASSWORD   # read from the environment / .env

export:
  search_base: OU=Company,DC=company,DC=com
  format: CSV            # CSV or TXT
  output: ./export/users.csv
  skip_users:
    - "^svc-"
    - "admin.*"

# canonical field -> directory attribute, only deltas are needed
attributes:
  Rank: title
  OrgUnit1: department

rules:
  ou_removals: ["BRFK+19VMRFK"]
  ou_replacements:
    - pattern: '\s*\(OSZTÁLY JOGÁLLÁSÚ\)'
      replacement: ""
```
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import find_dotenv, load_dotenv

from .directory import DirectorySettings
from .errors import ConfigError
from .rules import DEFAULT_RULES, NormalizationRules, build_rules, parse_replacement_entries
from .schema import DEFAULT_ATTRIBUTES, merge_attribute_map
from .writer import ExportFormat

CONFIG_ENV_KEY = "USER_EXPORT_CONFIG"
DEFAULT_CONFIG_PATH = Path("config.yaml")
DEFAULT_SEARCH_BASE = "OU=Company,DC=company,DC=com"
DEFAULT_OUTPUT = Path("./export/users.csv")
DEFAULT_PASSWORD_ENV = "USER_EXPORT_BIND_PASSWORD"


@dataclass
class ExportSettings:
    search_base: str = DEFAULT_SEARCH_BASE
    skip_users: List[str] = field(default_factory=list)
    format: ExportFormat = ExportFormat.CSV
    output: Path = DEFAULT_OUTPUT


@dataclass
class AppConfig:
    path: Optional[Path]
    directory: DirectorySettings
    export: ExportSettings
    attributes: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ATTRIBUTES))
    rules: NormalizationRules = DEFAULT_RULES


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"`{name}` must be a mapping")
    return value


def _ensure_list(value: Any, name: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"`{name}` must be a list")
    return [str(v) for v in value]


def _resolve_path(base: Path, value: str) -> Path:
    return (base / value).expanduser()


def _parse_format(value: Any) -> ExportFormat:
    if value is None:
        return ExportFormat.CSV
    try:
        return ExportFormat.parse(str(value))
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc


def parse_config(raw: Dict[str, Any], base_dir: Path, path: Optional[Path] = None) -> AppConfig:
    """Build an AppConfig from an already-parsed YAML mapping."""

    if not isinstance(raw, dict):
        raise ConfigError("Configuration root must be a mapping")

    directory_cfg = _section(raw, "directory")
    password_env = str(directory_cfg.get("password_env", DEFAULT_PASSWORD_ENV))
    try:
        directory = DirectorySettings(
            server=str(directory_cfg.get("server", "localhost")),
            port=int(directory_cfg.get("port", 389)),
            use_ssl=bool(directory_cfg.get("use_ssl", False)),
            bind_dn=directory_cfg.get("bind_dn") or None,
            password=os.getenv(password_env),
            page_size=int(directory_cfg.get("page_size", 500)),
            connect_timeout=int(directory_cfg.get("connect_timeout", 10)),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid `directory` section: {exc}") from exc

    export_cfg = _section(raw, "export")
    export = ExportSettings(
        search_base=str(export_cfg.get("search_base", DEFAULT_SEARCH_BASE)),
        skip_users=_ensure_list(export_cfg.get("skip_users"), "export.skip_users"),
        format=_parse_format(export_cfg.get("format")),
        output=_resolve_path(base_dir, str(export_cfg["output"])) if export_cfg.get("output") else DEFAULT_OUTPUT,
    )

    try:
        attributes = merge_attribute_map(_section(raw, "attributes"))
    except KeyError as exc:
        raise ConfigError(f"Unknown attribute field in `attributes`: {exc.args[0]}") from exc

    rules_cfg = _section(raw, "rules")
    removals = rules_cfg.get("ou_removals")
    replacements = rules_cfg.get("ou_replacements")
    try:
        rules = build_rules(
            ou_removals=_ensure_list(removals, "rules.ou_removals") if removals is not None else None,
            ou_replacements=parse_replacement_entries(replacements) if replacements is not None else None,
        )
    except (TypeError, ValueError, re.error) as exc:
        raise ConfigError(f"Invalid `rules` section: {exc}") from exc

    return AppConfig(path=path, directory=directory, export=export, attributes=attributes, rules=rules)


def load_config(path: Optional[Path] = None) -> AppConfig:
    """
    Load the YAML configuration, honouring ``.env`` and USER_EXPORT_CONFIG.

    Without an explicit path, a missing default ``config.yaml`` yields the
    built-in defaults.
    """

    load_dotenv(find_dotenv(usecwd=True))

    explicit = path is not None or CONFIG_ENV_KEY in os.environ
    if path is None:
        path = Path(os.environ.get(CONFIG_ENV_KEY, DEFAULT_CONFIG_PATH))

    if not path.exists():
        if explicit:
            raise ConfigError(f"Configuration file not found: {path}")
        return parse_config({}, Path.cwd())

    try:
        with path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    return parse_config(raw, path.parent, path=path)
