"""
Pydantic models for a loose check of a downloaded collector configuration.

The installer treats the configuration as an opaque document owned by the
collector. These models only confirm the top-level layout: each of the
pipeline sections, when present, must be a mapping of component names.
"""

from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict

EXPECTED_SECTIONS = ("receivers", "processors", "exporters")


class CollectorConfigOutline(BaseModel):
    """The top-level sections of an OpenTelemetry Collector configuration."""

    model_config = ConfigDict(extra="allow")

    receivers: Optional[Dict[str, Any]] = None
    processors: Optional[Dict[str, Any]] = None
    exporters: Optional[Dict[str, Any]] = None
    extensions: Optional[Dict[str, Any]] = None
    service: Optional[Dict[str, Any]] = None

    def sections_found(self) -> Tuple[str, ...]:
        """The expected pipeline sections present in the document."""
        return tuple(s for s in EXPECTED_SECTIONS if s in self.model_fields_set)
