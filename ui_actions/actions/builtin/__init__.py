"""Built-in type dispatchers."""

# Import all built-in actions to register them
from . import api, flow, modal, script, url

__all__ = ["api", "flow", "modal", "script", "url"]
