"""rowcast: SQL execution, retry and row materialization for Python."""

from rowcast import adapters, core, driver, exceptions, typing, utils
from rowcast.__metadata__ import __version__
from rowcast.core.columns import ColumnDescriptor, IntegerScanType, TypeClass
from rowcast.core.config import DecodeConfig, ExecutionConfig
from rowcast.core.context import ExecutionContext
from rowcast.core.parameters import (
    ParameterStyle,
    flatten_parameters,
    generate_placeholders,
    insert_statement,
    record_columns,
    record_to_parameters,
)
from rowcast.core.retry import RetryPolicy, constant_backoff, exponential_backoff, is_permanent_error
from rowcast.core.statement import OperationType, Statement, classify_statement
from rowcast.driver import execute, execute_async
from rowcast.exceptions import (
    DecodeError,
    ExecutionCancelledError,
    HookError,
    ImproperConfigurationError,
    PermanentExecutionError,
    PreconditionError,
    RowcastError,
    SchemaDecodeError,
)
from rowcast.typing import DictRow

__all__ = (
    "ColumnDescriptor",
    "DecodeConfig",
    "DecodeError",
    "DictRow",
    "ExecutionCancelledError",
    "ExecutionConfig",
    "ExecutionContext",
    "HookError",
    "ImproperConfigurationError",
    "IntegerScanType",
    "OperationType",
    "ParameterStyle",
    "PermanentExecutionError",
    "PreconditionError",
    "RetryPolicy",
    "RowcastError",
    "SchemaDecodeError",
    "Statement",
    "TypeClass",
    "__version__",
    "adapters",
    "classify_statement",
    "constant_backoff",
    "core",
    "driver",
    "exceptions",
    "execute",
    "execute_async",
    "exponential_backoff",
    "flatten_parameters",
    "generate_placeholders",
    "insert_statement",
    "is_permanent_error",
    "record_columns",
    "record_to_parameters",
    "typing",
    "utils",
)
