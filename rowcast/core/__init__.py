"""Statement classification, retry, decoding and argument handling."""

from rowcast.core.columns import ColumnDescriptor, IntegerScanType, TypeClass, resolve_type_class
from rowcast.core.config import DecodeConfig, ExecutionConfig
from rowcast.core.context import ExecutionContext
from rowcast.core.decoder import RowDecoder, decode_value
from rowcast.core.parameters import (
    FIELD_TAG,
    ParameterStyle,
    flatten_parameters,
    generate_placeholders,
    insert_statement,
    record_columns,
    record_to_parameters,
)
from rowcast.core.retry import (
    RetryPolicy,
    constant_backoff,
    exponential_backoff,
    is_permanent_error,
    run_with_retry,
    run_with_retry_async,
)
from rowcast.core.statement import OperationType, Statement, classify_statement

__all__ = (
    "FIELD_TAG",
    "ColumnDescriptor",
    "DecodeConfig",
    "ExecutionConfig",
    "ExecutionContext",
    "IntegerScanType",
    "OperationType",
    "ParameterStyle",
    "RetryPolicy",
    "RowDecoder",
    "Statement",
    "TypeClass",
    "classify_statement",
    "constant_backoff",
    "decode_value",
    "exponential_backoff",
    "flatten_parameters",
    "generate_placeholders",
    "insert_statement",
    "is_permanent_error",
    "record_columns",
    "record_to_parameters",
    "resolve_type_class",
    "run_with_retry",
    "run_with_retry_async",
)
