"""
irflow.analysis
===============

Base class for analyses that run over a single method.
"""

from __future__ import annotations

import abc
from typing import Any, ClassVar, Tuple

from irflow.config import AnalysisConfig
from irflow.ir import IR


class MethodAnalysis(abc.ABC):
    """An analysis whose unit of work is one method's :class:`IR`.

    Subclasses set ``ID`` (the key their result is stored under) and
    ``requires`` (IDs whose results must be on the IR before ``analyze``
    runs).
    """

    ID: ClassVar[str] = ""
    requires: ClassVar[Tuple[str, ...]] = ()

    def __init__(self, config: AnalysisConfig) -> None:
        self.config = config

    def get_id(self) -> str:
        return self.config.id

    def get_config(self) -> AnalysisConfig:
        return self.config

    @abc.abstractmethod
    def analyze(self, ir: IR) -> Any:
        """Compute and return this analysis's result for ``ir``."""
        ...
