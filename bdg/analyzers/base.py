"""Base classes for analyzer plugins."""

from abc import ABC, abstractmethod
from typing import Iterable

from ..models import Fact
from ..project import ProjectContext


class Analyzer(ABC):
    """Contract for analyzers that emit facts about the project."""

    name: str = ""

    @abstractmethod
    def supports(self, context: ProjectContext) -> bool:
        """Return True when this analyzer should run for the project."""

    @abstractmethod
    def analyze(self, context: ProjectContext) -> Iterable[Fact]:
        """Produce facts consumed by the badge catalog and ``bdg list``."""
