"""
Detecting the package's own version.

The version is determined only once at startup when the code is loaded.
It is used to self-identify in the ``User-Agent`` header of API requests.
"""
from typing import Optional

version: Optional[str] = None

try:
    import importlib.metadata
except ImportError:
    pass
else:
    try:
        name, *_ = __name__.split('.')  # usually "k8soperator", unless renamed/forked.
        version = importlib.metadata.version(name)
    except Exception:
        pass  # installed from a source tree, from git, etc.
