"""
Compassmax service wrappers.
"""

from .catalogue import ServiceMethod, build_call
from .client    import CompassClient

__all__ = ["ServiceMethod", "build_call", "CompassClient"]
