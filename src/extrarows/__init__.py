"""extrarows - Google Sheets as a tabular datasource.

Reads sheets as lists of records keyed by header names and writes records
back as rows, for hosts that run workflow actions against Google Sheets.
"""

__version__ = "0.1.0"

from extrarows.actions import (
    ActionConfiguration,
    ActionType,
    DatasourceConfiguration,
    DestinationType,
)
from extrarows.cells import ValueFormat
from extrarows.exceptions import (
    IntegrationError,
    MissingHeaderError,
    RemoteCallError,
    UnexpectedKeyError,
    ValidationError,
)
from extrarows.plugin import DatasourceMetadata, ExecutionOutput, SheetsPlugin
from extrarows.transport import (
    GoogleSheetsTransport,
    InMemoryTransport,
    Transport,
    TransportError,
)

__all__ = [
    "ActionConfiguration",
    "ActionType",
    "DatasourceConfiguration",
    "DatasourceMetadata",
    "DestinationType",
    "ExecutionOutput",
    "GoogleSheetsTransport",
    "InMemoryTransport",
    "IntegrationError",
    "MissingHeaderError",
    "RemoteCallError",
    "SheetsPlugin",
    "Transport",
    "TransportError",
    "UnexpectedKeyError",
    "ValidationError",
    "ValueFormat",
    "__version__",
]
