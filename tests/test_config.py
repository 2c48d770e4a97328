from pathlib import Path

import pytest

from user_export.config import (
    DEFAULT_OUTPUT,
    DEFAULT_SEARCH_BASE,
    load_config,
    parse_config,
)
from user_export.errors import ConfigError
from user_export.normalize import normalize_org_path
from user_export.rules import DEFAULT_RULES
from user_export.schema import DEFAULT_ATTRIBUTES
from user_export.writer import ExportFormat


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    monkeypatch.delenv("USER_EXPORT_CONFIG", raising=False)
    # set first so teardown also removes values loaded from .env files
    monkeypatch.setenv("USER_EXPORT_BIND_PASSWORD", "")
    monkeypatch.delenv("USER_EXPORT_BIND_PASSWORD")
    monkeypatch.chdir(tmp_path)


def test_missing_default_config_uses_defaults():
    config = load_config()

    assert config.path is None
    assert config.export.search_base == DEFAULT_SEARCH_BASE
    assert config.export.skip_users == []
    assert config.export.format is ExportFormat.CSV
    assert config.export.output == DEFAULT_OUTPUT
    assert config.attributes == DEFAULT_ATTRIBUTES
    assert config.rules == DEFAULT_RULES


def test_missing_explicit_config_is_an_error(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "nope.yaml")


def test_env_var_selects_config_file(tmp_path, monkeypatch):
    monkeypatch.setenv("USER_EXPORT_CONFIG", str(tmp_path / "missing.yaml"))
    with pytest.raises(ConfigError):
        load_config()


def test_load_full_config(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_PW", "s3cret")
    config_path = tmp_path / "conf" / "config.yaml"
    config_path.parent.mkdir()
    config_path.write_text(
        """
directory:
  server: dc01.company.com
  port: 636
  use_ssl: true
  bind_dn: CN=svc,DC=company,DC=com
  password_env: SECRET_PW
export:
  search_base: OU=Police,DC=company,DC=com
  format: txt
  output: ../out/users.txt
  skip_users:
    - "^svc-"
    - "admin.*"
attributes:
  Rank: title
rules:
  ou_removals: ["NOISE"]
  ou_replacements:
    - pattern: '\\s*\\(OLD\\)'
      replacement: ""
""",
        encoding="utf-8",
    )

    config = load_config(config_path)

    assert config.path == config_path
    assert config.directory.server == "dc01.company.com"
    assert config.directory.port == 636
    assert config.directory.use_ssl is True
    assert config.directory.bind_dn == "CN=svc,DC=company,DC=com"
    assert config.directory.password == "s3cret"
    assert config.export.search_base == "OU=Police,DC=company,DC=com"
    assert config.export.format is ExportFormat.TXT
    assert config.export.output == tmp_path / "conf" / ".." / "out" / "users.txt"
    assert config.export.skip_users == ["^svc-", "admin.*"]
    assert config.attributes["Rank"] == "title"
    assert config.attributes["AccountId"] == "sAMAccountName"
    assert normalize_org_path(["NOISE", "Unit (OLD)", "BRFK+19VMRFK"], config.rules) == "Unit, BRFK+19VMRFK"


def test_password_is_read_from_dotenv(tmp_path):
    (tmp_path / ".env").write_text("USER_EXPORT_BIND_PASSWORD=from-dotenv\n", encoding="utf-8")
    config_path = tmp_path / "config.yaml"
    config_path.write_text("directory:\n  server: dc01\n", encoding="utf-8")

    config = load_config(config_path)
    assert config.directory.password == "from-dotenv"


@pytest.mark.parametrize(
    "raw",
    [
        {"export": {"format": "xml"}},
        {"attributes": {"NoSuchField": "x"}},
        {"directory": {"port": "not-a-number"}},
        {"rules": {"ou_replacements": [{"replacement": "x"}]}},
        {"rules": {"ou_replacements": [{"pattern": "(("}]}},
        {"export": "not-a-mapping"},
        ["not", "a", "mapping"],
    ],
)
def test_invalid_config_values(raw):
    with pytest.raises(ConfigError):
        parse_config(raw, Path("."))


def test_invalid_yaml(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("export: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(config_path)


def test_config_module_compiles_without_escape_warnings():
    import warnings

    import user_export.config as config_module

    source = Path(config_module.__file__).read_text(encoding="utf-8")
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        compile(source, config_module.__file__, "exec")
