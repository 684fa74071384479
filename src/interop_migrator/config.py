"""
Runtime Configuration Store.

Holds the values the rewrite needs but does not hard-code: the attribute type
names, the conditional-compilation symbol of the guarded conversion, the
documentation link quoted in the compatibility warning and the diagnostic id
the fixer answers to. Values come from ``[tool.interop_migrator]`` in the
nearest ``pyproject.toml`` and are overridden by CLI arguments.
"""

import re
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from interop_migrator.enums import ConversionMode
from interop_migrator.utils.console import log_warning

if sys.version_info >= (3, 11):
  import tomllib
else:
  import tomli as tomllib

LEGACY_ATTRIBUTE = "System.Runtime.InteropServices.DllImportAttribute"
GENERATED_ATTRIBUTE = "System.Runtime.InteropServices.GeneratedDllImportAttribute"
DEFAULT_CONDITION_SYMBOL = "NET"
DEFAULT_DOCUMENTATION_LINK = "https://learn.microsoft.com/dotnet/standard/native-interop/pinvoke-source-generation"
DEFAULT_DIAGNOSTIC_ID = "DLLIMPORTGENANALYZER015"

_IDENTIFIER_RE = re.compile(r"^[^\W\d]\w*$")
_TOML_SECTION = "interop_migrator"


class RuntimeConfig(BaseModel):
  """
  Global configuration container for the conversion engine.
  """

  mode: ConversionMode = Field(ConversionMode.DIRECT, description="Conversion variant applied by the engine.")
  condition_symbol: str = Field(
    DEFAULT_CONDITION_SYMBOL,
    description="Symbol tested by '#if' in preprocessor-guarded conversions.",
  )
  documentation_link: str = Field(
    DEFAULT_DOCUMENTATION_LINK,
    description="Link quoted in the compatibility warning attached to converted declarations.",
  )
  diagnostic_id: str = Field(DEFAULT_DIAGNOSTIC_ID, description="Diagnostic id the fixer handles.")
  legacy_attribute: str = Field(LEGACY_ATTRIBUTE, description="Metadata name of the attribute converted away from.")
  generated_attribute: str = Field(
    GENERATED_ATTRIBUTE,
    description="Metadata name of the attribute converted to.",
  )
  referenced_types: List[str] = Field(
    default_factory=lambda: [LEGACY_ATTRIBUTE, GENERATED_ATTRIBUTE],
    description="Types the compilation can resolve. Conversion is skipped when an attribute type is missing.",
  )

  @field_validator("condition_symbol")
  @classmethod
  def validate_condition_symbol(cls, v: str) -> str:
    """
    Ensures the symbol can appear in a ``#if`` directive.

    Args:
        v (str): The raw symbol.

    Returns:
        str: The stripped symbol.

    Raises:
        ValueError: If the symbol is not a valid C# identifier.
    """
    v_clean = v.strip()
    if not _IDENTIFIER_RE.match(v_clean) or v_clean in ("true", "false"):
      raise ValueError(f"Invalid conditional compilation symbol: '{v}'")
    return v_clean

  @field_validator("legacy_attribute", "generated_attribute")
  @classmethod
  def validate_metadata_name(cls, v: str) -> str:
    v_clean = v.strip()
    if not v_clean or any(not _IDENTIFIER_RE.match(part) for part in v_clean.split(".")):
      raise ValueError(f"Invalid type metadata name: '{v}'")
    return v_clean

  @classmethod
  def load(
    cls,
    mode: Optional[str] = None,
    condition_symbol: Optional[str] = None,
    documentation_link: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
    search_path: Optional[Path] = None,
  ) -> "RuntimeConfig":
    """
    Loads configuration from pyproject.toml and overrides with CLI arguments.

    Args:
        mode (Optional[str]): Override for the conversion mode.
        condition_symbol (Optional[str]): Override for the '#if' symbol.
        documentation_link (Optional[str]): Override for the warning link.
        overrides (Optional[Dict]): Additional ``key=value`` settings from the CLI.
        search_path (Optional[Path]): Directory to start searching for TOML config.

    Returns:
        RuntimeConfig: The fully resolved configuration object.
    """
    start_dir = search_path or Path.cwd()
    toml_config, _ = _load_toml_settings(start_dir)

    merged: Dict[str, Any] = {**toml_config, **(overrides or {})}
    if mode is not None:
      merged["mode"] = mode
    if condition_symbol is not None:
      merged["condition_symbol"] = condition_symbol
    if documentation_link is not None:
      merged["documentation_link"] = documentation_link

    known = set(cls.model_fields)
    for key in [k for k in merged if k not in known]:
      log_warning(f"Ignoring unknown setting '{key}'.")
      merged.pop(key)

    return cls(**merged)


def _load_toml_settings(start_path: Path) -> Tuple[Dict[str, Any], Optional[Path]]:
  """
  Recursively searches parents for 'pyproject.toml' and extracts config.

  Args:
      start_path (Path): Directory to start search from.

  Returns:
      Tuple[Dict, Optional[Path]]: The config dict and the directory definition was found in.
  """
  current = start_path.resolve()

  for parent in [current, *current.parents]:
    toml_path = parent / "pyproject.toml"
    if toml_path.exists() and toml_path.is_file():
      try:
        with open(toml_path, "rb") as f:
          data = tomllib.load(f)
      except (OSError, tomllib.TOMLDecodeError) as e:
        log_warning(f"Could not read {toml_path}: {e}")
        return {}, None

      tool_section = data.get("tool", {})
      return tool_section.get(_TOML_SECTION, {}), parent

  return {}, None


def parse_cli_key_values(items: Optional[List[str]]) -> Dict[str, Any]:
  """
  Parses a list of 'key=value' strings into a dictionary.

  Types are inferred (int, float, bool, or string).

  Args:
      items (Optional[List[str]]): List of raw CLI strings directly from argparse.

  Returns:
      Dict[str, Any]: Parsed dictionary.
  """
  if not items:
    return {}

  config = {}
  for item in items:
    if "=" not in item:
      log_warning(f"Ignoring invalid config format: '{item}'. Expected 'key=value'.")
      continue

    key, val_str = item.split("=", 1)
    key = key.strip()
    val_str = val_str.strip()

    final_val: Any = val_str

    if val_str.lower() == "true":
      final_val = True
    elif val_str.lower() == "false":
      final_val = False
    else:
      try:
        if "." in val_str or "e" in val_str:
          final_val = float(val_str)
        else:
          final_val = int(val_str)
      except ValueError:
        pass

    config[key] = final_val

  return config
