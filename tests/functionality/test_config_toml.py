"""
Tests for Config Persistence (TOML).

Verifies that:
1. RuntimeConfig.load() picks up [tool.interop_migrator] from pyproject.toml.
2. CLI arguments override TOML settings.
3. File traversal finds toml in parent directories.
4. Invalid values are rejected, unknown keys are dropped with a warning.
"""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from interop_migrator.config import DEFAULT_DOCUMENTATION_LINK, RuntimeConfig, parse_cli_key_values
from interop_migrator.enums import ConversionMode


@pytest.fixture
def toml_file(tmp_path):
  """Creates a dummy pyproject.toml in the temp dir."""
  fpath = tmp_path / "pyproject.toml"
  content = """
[tool.interop_migrator]
mode = "preprocessor"
condition_symbol = "NET7_0_OR_GREATER"
diagnostic_id = "INTEROP001"
"""
  fpath.write_text(content, encoding="utf-8")
  return fpath


def test_defaults():
  config = RuntimeConfig()

  assert config.mode == ConversionMode.DIRECT
  assert config.condition_symbol == "NET"
  assert config.documentation_link == DEFAULT_DOCUMENTATION_LINK
  assert config.legacy_attribute in config.referenced_types
  assert config.generated_attribute in config.referenced_types


def test_load_defaults_from_toml(tmp_path, toml_file):
  """
  Scenario: User runs CLI without args inside a configured project.
  Expect: Config matches TOML values.
  """
  config = RuntimeConfig.load(search_path=tmp_path)

  assert config.mode == ConversionMode.PREPROCESSOR_GUARDED
  assert config.condition_symbol == "NET7_0_OR_GREATER"
  assert config.diagnostic_id == "INTEROP001"


def test_cli_overrides_toml(tmp_path, toml_file):
  """
  Scenario: User provides CLI args which contradict TOML.
  Expect: CLI args take precedence, the rest falls back to TOML.
  """
  config = RuntimeConfig.load(
    mode="direct",
    condition_symbol="NETCOREAPP",
    overrides={"documentation_link": "https://example.org/docs"},
    search_path=tmp_path,
  )

  assert config.mode == ConversionMode.DIRECT
  assert config.condition_symbol == "NETCOREAPP"
  assert config.documentation_link == "https://example.org/docs"
  assert config.diagnostic_id == "INTEROP001"


def test_toml_found_in_parent_directory(tmp_path, toml_file):
  nested = tmp_path / "src" / "Native"
  nested.mkdir(parents=True)

  config = RuntimeConfig.load(search_path=nested)
  assert config.condition_symbol == "NET7_0_OR_GREATER"


def test_pyproject_without_section(tmp_path):
  (tmp_path / "pyproject.toml").write_text('[project]\nname = "x"\n', encoding="utf-8")

  config = RuntimeConfig.load(search_path=tmp_path)
  assert config == RuntimeConfig()


def test_unreadable_toml_falls_back_to_defaults(tmp_path):
  (tmp_path / "pyproject.toml").write_text("[tool.interop_migrator\n", encoding="utf-8")

  with patch("interop_migrator.config.log_warning") as mock_warn:
    config = RuntimeConfig.load(search_path=tmp_path)

  assert config == RuntimeConfig()
  mock_warn.assert_called_once()


def test_unknown_keys_are_dropped(tmp_path, toml_file):
  with patch("interop_migrator.config.log_warning") as mock_warn:
    config = RuntimeConfig.load(overrides={"colour": "blue"}, search_path=tmp_path)

  assert not hasattr(config, "colour")
  assert "colour" in mock_warn.call_args[0][0]


@pytest.mark.parametrize("symbol", ["", "7NET", "NET 7", "NET&&X", "true"])
def test_invalid_condition_symbol(symbol):
  with pytest.raises(ValidationError, match="Invalid conditional compilation symbol"):
    RuntimeConfig(condition_symbol=symbol)


def test_invalid_symbol_from_load_is_a_value_error(tmp_path, toml_file):
  with pytest.raises(ValueError):
    RuntimeConfig.load(condition_symbol="#if", search_path=tmp_path)


def test_symbol_is_stripped():
  assert RuntimeConfig(condition_symbol="  NET  ").condition_symbol == "NET"


def test_invalid_metadata_name():
  with pytest.raises(ValidationError, match="Invalid type metadata name"):
    RuntimeConfig(generated_attribute="System..GeneratedDllImportAttribute")


def test_invalid_mode():
  with pytest.raises(ValidationError):
    RuntimeConfig(mode="sideways")


def test_parse_cli_key_values():
  parsed = parse_cli_key_values(["diagnostic_id=X001", "flag=true", "count=3", "ratio=0.5", "broken"])

  assert parsed == {"diagnostic_id": "X001", "flag": True, "count": 3, "ratio": 0.5}
  assert parse_cli_key_values(None) == {}
