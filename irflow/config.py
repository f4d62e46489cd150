"""
irflow.config
=============

Analysis configuration.

An :class:`AnalysisConfig` names the analysis to run and carries a flat
option dictionary.  The core analyses only read the options they know
about; everything else passes through untouched.

Command-line form (one per ``-a`` argument)::

    deadcode
    constprop=strategy:lifo
    livevar=strategy:fifo;trace:true
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from irflow.errors import ConfigException

_ID_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_\-]*$")


@dataclass(frozen=True)
class AnalysisConfig:
    """Identifies an analysis and the options it is constructed with."""

    id: str
    options: Mapping[str, Any] = field(default_factory=dict)
    description: str = ""

    def get_id(self) -> str:
        return self.id

    def get_options(self) -> Mapping[str, Any]:
        return self.options

    def get_option(self, key: str, default: Any = None) -> Any:
        return self.options.get(key, default)

    def __str__(self) -> str:
        if not self.options:
            return self.id
        opts = ";".join(f"{k}:{v}" for k, v in self.options.items())
        return f"{self.id}={opts}"


def _coerce(raw: str) -> Any:
    text = raw.strip()
    low = text.lower()
    if low in ("true", "yes", "on"):
        return True
    if low in ("false", "no", "off"):
        return False
    if re.fullmatch(r"-?\d+", text):
        return int(text)
    return text


def parse_analysis_spec(spec: str, description: Optional[str] = None) -> AnalysisConfig:
    """Parse ``id`` or ``id=key:value;key:value`` into a config."""
    spec = spec.strip()
    analysis_id, _, opt_text = spec.partition("=")
    analysis_id = analysis_id.strip()
    if not _ID_RE.match(analysis_id):
        raise ConfigException(f"invalid analysis id in {spec!r}")
    options: Dict[str, Any] = {}
    for item in filter(None, (part.strip() for part in opt_text.split(";"))):
        key, sep, value = item.partition(":")
        if not sep or not key.strip():
            raise ConfigException(
                f"malformed option {item!r} for analysis {analysis_id!r}; "
                f"expected key:value"
            )
        options[key.strip()] = _coerce(value)
    return AnalysisConfig(id=analysis_id, options=options,
                          description=description or "")
