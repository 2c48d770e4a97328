from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Sequence

from .config import AppConfig
from .directory import DirectorySettings, search_users
from .normalize import ExportReport, RawUserRecord, build_records, compile_skip_pattern, filter_excluded
from .schema import query_attributes
from .writer import validate_output_path, write_export

LOGGER = logging.getLogger(__name__)

FetchUsers = Callable[[DirectorySettings, str, Sequence[str]], List[Dict[str, object]]]


def run_export(config: AppConfig, fetch: Optional[FetchUsers] = None) -> ExportReport:
    """
    Query -> filter -> build -> sort -> write.

    The output extension and skip patterns are checked before the directory
    is contacted. ``fetch`` defaults to the LDAP search.
    """

    output = validate_output_path(config.export.output)
    skip = compile_skip_pattern(config.export.skip_users)

    fetch = fetch or search_users
    raws: List[RawUserRecord] = list(
        fetch(config.directory, config.export.search_base, query_attributes(config.attributes))
    )

    kept = filter_excluded(raws, skip, config.attributes)
    excluded = len(raws) - len(kept)
    if excluded:
        LOGGER.info("Excluded %d account(s) by skip-user patterns", excluded)

    records = build_records(kept, config.rules, config.attributes)
    written = write_export(records, output, config.export.format)

    return ExportReport(
        fetched=len(raws),
        excluded=excluded,
        exported=len(records) if written else 0,
        output_path=written,
    )
