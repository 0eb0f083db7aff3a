"""
gridist: online grid pathfinding under partial knowledge.
Main package initialization.

Incremental (D* Lite) replanning coupled with a per-cell belief over
unobserved cells, for movingai-style benchmark maps.

Example:
    from gridist.planning.integration.agent_loop import AgentLoop
    from gridist.planning.integration.run_context import RunContext
"""

import logging
import sys

# Package version
__version__ = "0.3.0"
__description__ = "Online grid pathfinding with incremental search and belief-derived costs"

# Setup basic logging
if not logging.getLogger().handlers:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )

# Package logger
logger = logging.getLogger(__name__)
logger.debug(f"gridist v{__version__} package loaded")

__all__ = ['__version__', '__description__']
