"""Public compiler entry points.

Use :class:`myblock.compiler.core.ProgramCompiler` as the stable API.
"""

from myblock.compiler.constants import RUNTIME_HANDLE_NAME
from myblock.compiler.core import ProgramCompiler

__all__ = ["ProgramCompiler", "RUNTIME_HANDLE_NAME"]
