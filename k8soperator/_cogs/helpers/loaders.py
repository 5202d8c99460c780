"""
Module- and file-loading, and loading of the declarative definitions.

The files/modules with the operators are usually specified on the command-line.
Currently, two loading modes are supported, both are equivalent to Python CLI:

* Plain files files (`k8soperator run file.py`).
* Importable modules (`k8soperator run -m pkg.mod`).

Multiple files/modules can be specified. They will be loaded in the order.
"""
import collections.abc
import importlib
import importlib.abc
import importlib.util
import os.path
import sys
import types
from typing import Any, Iterable, List, Mapping, Union, cast

import yaml


def preload(
        paths: Iterable[str],
        modules: Iterable[str],
) -> List[types.ModuleType]:
    """
    Load/import the files/modules and return them in the order of loading.
    """
    loaded: List[types.ModuleType] = []

    for idx, path in enumerate(paths):
        sys.path.insert(0, os.path.abspath(os.path.dirname(path)))
        name = f'__k8soperator_script_{idx}__{path}'  # same pseudo-name as '__main__'
        spec = importlib.util.spec_from_file_location(name, path)
        module = importlib.util.module_from_spec(spec) if spec is not None else None
        loader = cast(importlib.abc.Loader, spec.loader) if spec is not None else None
        if module is not None and loader is not None:
            sys.modules[name] = module
            loader.exec_module(module)
            loaded.append(module)
        else:
            raise ImportError(f"Failed loading {path}: no module or loader.")

    for name in modules:
        loaded.append(importlib.import_module(name))

    return loaded


def load_definition(path: Union[str, "os.PathLike[str]"]) -> Mapping[str, Any]:
    """
    Read a single YAML document, e.g. a custom resource definition.
    """
    with open(path, encoding='utf-8') as f:
        data = yaml.safe_load(f.read())
    if not isinstance(data, collections.abc.Mapping):
        raise ValueError(f"The definition in {path!r} is not a mapping: {type(data).__name__}.")
    return data
