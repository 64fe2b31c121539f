"""assetbundler core package.

The package is organized into focused modules:

- **patterns**: Glob compilation and include/exclude selection
- **config**: YAML configuration loading into frozen dataclasses
- **resolver**: Merging global and bundle settings into effective build specs
- **staging**: Staging selected files into the build workspace
- **naming**: Output filename templates
- **orchestrator**: Per-bundle, per-target build state machine
- **report**: Aggregated results and exit status
- **run_summary**: Run recap logging and summary tables
- **help_formatter**: Rich argparse help with examples and environment variables

The main entry point for building is the ``BuildOrchestrator`` class.
"""

from .orchestrator import BuildOrchestrator
from .report import BuildReport
from .version import __version__

__all__ = [
    "__version__",
    "BuildOrchestrator",
    "BuildReport",
]
