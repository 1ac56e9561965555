"""
State serialisation support shared by memories and agents.
"""

import copy
import json
from typing import Any, Dict

from .utils import setup_logger

logger = setup_logger('reactor.module')


class StateModule:
    """Base class for objects whose state can be exported and restored."""

    def state_dict(self) -> Dict[str, Any]:
        """Return a JSON-compatible snapshot of the object's state."""
        return {}

    def load_state_dict(self, state: Dict[str, Any]) -> None:
        """Restore state previously produced by :meth:`state_dict`."""
        logger.warning(f"load_state_dict is not implemented for {type(self).__name__}")

    def deep_copy_state(self) -> Dict[str, Any]:
        """Return a detached copy of the state, round-tripped through JSON."""
        state = self.state_dict()
        try:
            return json.loads(json.dumps(state, default=str))
        except (TypeError, ValueError):
            return copy.deepcopy(state)

    def reset(self) -> None:
        """Return the object to its initial state."""
        logger.info(f"Reset called for {type(self).__name__}")

    def get_state_summary(self) -> str:
        return f"{type(self).__name__}(state_keys={sorted(self.state_dict().keys())})"
