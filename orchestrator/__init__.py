"""
Orchestrator Package - Cycle Coordination Layer.

============================================================
PACKAGE OVERVIEW
============================================================
This package runs the storage ask index. It owns startup,
shutdown and the cycle loop; the price computation itself
lives in ``price_index``.

============================================================
ARCHITECTURE
============================================================

    +-----------------------------------------------------+
    |                   CycleScheduler                    |
    |-----------------------------------------------------|
    |  IndexerConfig  |  Environment + CLI configuration  |
    |  CyclePolicy    |  Single run or continuous         |
    |  CycleState     |  Validated state machine          |
    |  CLI            |  Command-line interface           |
    +-----------------------------------------------------+

============================================================
QUICK START
============================================================
Command line usage::

    storage-ask-index
    storage-ask-index --policy continuous --cooldown 300

Programmatic usage::

    import asyncio
    from orchestrator import IndexerConfig, build_scheduler

    async def main():
        config = IndexerConfig.from_env()
        scheduler = build_scheduler(config)
        try:
            await scheduler.run()
        finally:
            await scheduler.close()

    asyncio.run(main())

============================================================
EXPORTS
============================================================
"""

# ============================================================
# Models
# ============================================================
from orchestrator.models import (
    CyclePolicy,
    CycleState,
    IndexerConfig,
    StateChange,
    VALID_TRANSITIONS,
    is_valid_transition,
)

# ============================================================
# Core
# ============================================================
from orchestrator.core import (
    CycleScheduler,
    setup_logging,
)

# ============================================================
# CLI
# ============================================================
from orchestrator.cli import (
    create_parser,
    build_config,
    build_scheduler,
    print_report,
    main,
    async_main,
)

# ============================================================
# Package metadata
# ============================================================
__version__ = "1.0.0"

__all__ = [
    # Models
    "CyclePolicy",
    "CycleState",
    "IndexerConfig",
    "StateChange",
    "VALID_TRANSITIONS",
    "is_valid_transition",

    # Core
    "CycleScheduler",
    "setup_logging",

    # CLI
    "create_parser",
    "build_config",
    "build_scheduler",
    "print_report",
    "main",
    "async_main",
]
