"""Remote folder catalog."""

from .directory import DirectoryCatalog
from .models import RemoteEntry, ScreenContainer, ScreenOccupancy

__all__ = ["DirectoryCatalog", "RemoteEntry", "ScreenContainer", "ScreenOccupancy"]
