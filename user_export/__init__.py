"""
Directory user export: query enabled accounts, normalize ranks, org-unit
paths and handles, and write a sorted CSV or text table.
"""

from .errors import (  # noqa: F401
    ConfigError,
    DirectoryQueryError,
    OutputPathError,
    SkipPatternError,
    UserExportError,
)

from .normalize import (  # noqa: F401
    ExportReport,
    build_record,
    build_records,
    compile_skip_pattern,
    default_if_blank,
    filter_excluded,
    normalize_org_path,
    normalize_rank,
    sanitize_handle,
)

from .schema import NormalizedRecord, OUTPUT_COLUMNS  # noqa: F401
from .writer import ExportFormat, write_export  # noqa: F401

__all__ = [
    "ConfigError",
    "DirectoryQueryError",
    "OutputPathError",
    "SkipPatternError",
    "UserExportError",
    "ExportReport",
    "build_record",
    "build_records",
    "compile_skip_pattern",
    "default_if_blank",
    "filter_excluded",
    "normalize_org_path",
    "normalize_rank",
    "sanitize_handle",
    "NormalizedRecord",
    "OUTPUT_COLUMNS",
    "ExportFormat",
    "write_export",
]
