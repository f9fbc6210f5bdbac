from .base import Backend
from .simulated import SimulatedBackend
from .loading import load_backend

__all__ = ["Backend", "SimulatedBackend", "load_backend"]
