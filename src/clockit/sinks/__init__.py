"""Export destinations and their registry."""

from .base import (
    DEFAULT_SECRET_PREFIX,
    BaseSink,
    FieldKind,
    FieldScope,
    FieldSpec,
    SelectSpec,
    Sink,
    StaticOption,
    ValidationReport,
)
from .csv_file import CsvSink
from .jira import JiraSink
from .loader import SinkConfigError, default_sink_configs, load_sink_configs
from .notion import NotionSink
from .registry import SinkRegistrationError, SinkRegistry, default_registry

__all__ = [
    "BaseSink",
    "CsvSink",
    "DEFAULT_SECRET_PREFIX",
    "FieldKind",
    "FieldScope",
    "FieldSpec",
    "JiraSink",
    "NotionSink",
    "SelectSpec",
    "Sink",
    "SinkConfigError",
    "SinkRegistrationError",
    "SinkRegistry",
    "StaticOption",
    "ValidationReport",
    "default_registry",
    "default_sink_configs",
    "load_sink_configs",
]
