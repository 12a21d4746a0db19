"""Load Python files that act as executable configuration.

Routes files, middleware registries, service override files and action
scripts are plain ``.py`` files loaded by path rather than imported by
module name.
"""

import importlib.util
import sys
from pathlib import Path
from types import ModuleType

from perch.errors import ConfigurationError


def load_module(path: str | Path, *, prefix: str = "perch_file") -> ModuleType:
    """Execute the file at *path* and return it as a module.

    Raises ``ConfigurationError`` if the file cannot be loaded as Python.
    """
    file = Path(path)
    module_name = f"_{prefix}_{file.stem}_{abs(hash(str(file.resolve())))}"
    spec = importlib.util.spec_from_file_location(module_name, file)
    if spec is None or spec.loader is None:
        msg = f"Cannot load Python file: {file}"
        raise ConfigurationError(msg)
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(module_name, None)
        raise
    return module


def load_attribute(path: str | Path, name: str, *, prefix: str = "perch_file") -> object:
    """Load *path* and return its module-level attribute *name*.

    Returns ``None`` when the file doesn't define it.
    """
    module = load_module(path, prefix=prefix)
    return getattr(module, name, None)
