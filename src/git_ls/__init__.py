"""git-ls: List the subfolders of a directory with their git sync status.

© 2026 git-ls contributors. Some rights reserved.
"""

from ._version import __version__
from .folders import Folder, UnreadableTargetError, list_folders
from .format import (
    REPORT_FORMATS_TYPE,
    ColumnWidths,
    filter_descriptors,
    format_report,
    sort_descriptors,
)
from .scan import ResultMap, scan_folders
from .status import (
    DisplayMode,
    DivergencePolicy,
    RepoDescriptor,
    check_divergence,
    collect_status,
)

__all__: list[str] = [
    "REPORT_FORMATS_TYPE",
    "ColumnWidths",
    "DisplayMode",
    "DivergencePolicy",
    "Folder",
    "RepoDescriptor",
    "ResultMap",
    "UnreadableTargetError",
    "__version__",
    "check_divergence",
    "collect_status",
    "filter_descriptors",
    "format_report",
    "list_folders",
    "scan_folders",
    "sort_descriptors",
]
