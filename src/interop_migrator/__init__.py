"""
interop-migrator Package.

A source-to-source rewriter moving C# P/Invoke declarations from
``[DllImport]`` to the source-generated ``[GeneratedDllImport]``.

Usage
-----

Simple String Conversion
^^^^^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    import interop_migrator as im
    code = '[System.Runtime.InteropServices.DllImport("lib", BestFitMapping = false)] static extern int F();'
    print(im.convert(code))
    # [System.Runtime.InteropServices.GeneratedDllImport("lib")] static partial int F();

Keeping the legacy declaration for older targets
^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    from interop_migrator import ConversionMode, MigrationEngine, RuntimeConfig

    config = RuntimeConfig(mode=ConversionMode.PREPROCESSOR_GUARDED, condition_symbol="NET7_0_OR_GREATER")
    res = MigrationEngine(config).run(code)

    if res.success:
        print(res.code)
    else:
        print(f"Errors: {res.errors}")
"""

from typing import Optional, Union

from interop_migrator.config import RuntimeConfig
from interop_migrator.core.conversion_result import ConversionResult
from interop_migrator.core.engine import MigrationEngine
from interop_migrator.enums import ConversionMode

__version__ = "0.1.0"


def convert(
  code: str,
  mode: Union[str, ConversionMode] = ConversionMode.DIRECT,
  condition_symbol: Optional[str] = None,
  config: Optional[RuntimeConfig] = None,
) -> str:
  """
  Converts every eligible declaration in a string of C# code.

  Args:
      code (str): The C# source.
      mode (str | ConversionMode): ``"direct"`` or ``"preprocessor"``.
      condition_symbol (str, optional): Symbol for the ``#if`` guard in
          preprocessor mode. Defaults to ``NET``.
      config (RuntimeConfig, optional): Complete settings; ``mode`` and
          ``condition_symbol`` are ignored when given.

  Returns:
      str: The converted source code.

  Raises:
      ValueError: If the input does not parse or a conversion breaks the document.
  """
  if config is None:
    settings = {"mode": mode}
    if condition_symbol is not None:
      settings["condition_symbol"] = condition_symbol
    config = RuntimeConfig(**settings)

  result = MigrationEngine(config).run(code)

  if not result.success:
    error_msg = "\n".join(result.errors)
    raise ValueError(f"Conversion failed:\n{error_msg}")

  return result.code


__all__ = [
  "ConversionMode",
  "ConversionResult",
  "MigrationEngine",
  "RuntimeConfig",
  "convert",
  "__version__",
]
