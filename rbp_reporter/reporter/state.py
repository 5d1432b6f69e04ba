"""JSON-backed reporter state shared between reporter instantiations of one run."""

from __future__ import annotations

import os
import uuid
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from rbp_reporter.core.types import ReporterState
from rbp_reporter.error_handling import StateFileError
from rbp_reporter.monitoring.logger import get_logger

logger = get_logger(__name__)

# Run identity of this process when RBP_RUN_ID is unset. A state file left by
# an aborted run in another process never matches it.
PROCESS_RUN_ID = f"{os.getpid()}-{uuid.uuid4().hex[:12]}"


class ReporterStateStore:
    """Load-merge-save protocol against a shared state file.

    Fields are last-writer-wins, except the environment descriptor which keeps
    the first non-empty value.
    """

    def __init__(self, state_file: Union[str, Path], run_id: Optional[str] = None) -> None:
        self.state_file = Path(state_file)
        self.run_id = run_id

    # ------------------------------------------------------------------ #
    # Raw access
    # ------------------------------------------------------------------ #
    def read(self) -> Optional[ReporterState]:
        """Read the state file as is.

        Raises:
            StateFileError: if the file exists but cannot be parsed
        """
        if not self.state_file.exists():
            return None
        try:
            return ReporterState.model_validate_json(self.state_file.read_text(encoding="utf-8"))
        except (OSError, ValueError, ValidationError) as e:
            raise StateFileError(
                f"Unreadable reporter state: {e}",
                state_file=str(self.state_file),
                cause=e,
            ) from e

    def save(self, state: ReporterState) -> None:
        """Write the state, replacing the file atomically.

        Raises:
            StateFileError: if the file cannot be written
        """
        if self.run_id and not state.run_id:
            state.run_id = self.run_id

        tmp_path = self.state_file.with_name(f"{self.state_file.name}.{os.getpid()}.tmp")
        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(state.model_dump_json(indent=2), encoding="utf-8")
            os.replace(tmp_path, self.state_file)
        except OSError as e:
            raise StateFileError(
                f"Failed to write reporter state: {e}",
                state_file=str(self.state_file),
                cause=e,
            ) from e

    def clear(self) -> None:
        self.state_file.unlink(missing_ok=True)

    # ------------------------------------------------------------------ #
    # Protocol
    # ------------------------------------------------------------------ #
    def load(self) -> Optional[ReporterState]:
        """Return the state of the current run, or None.

        Finalized states and states of another run are ignored, as is a
        corrupt file.
        """
        try:
            state = self.read()
        except StateFileError as e:
            logger.warning(e.message)
            return None

        if state is None or state.finalized:
            return None
        if self.run_id and state.run_id != self.run_id:
            logger.debug(f"Ignoring reporter state of run {state.run_id}")
            return None
        return state

    @staticmethod
    def merge(current: ReporterState, loaded: Optional[ReporterState]) -> ReporterState:
        """Merge freshly computed state with the state loaded from disk.

        Results, counters, pending attachments and the sequence number come
        from disk; the environment keeps whichever descriptor was collected
        first and fills its gaps from the other.
        """
        if loaded is None:
            return current

        merged = loaded.model_copy(deep=True)
        merged.next_num = max(loaded.next_num, current.next_num)
        merged.run_id = loaded.run_id or current.run_id

        loaded_env = loaded.summary.environment
        current_env = current.summary.environment
        if loaded_env is not None and not loaded_env.is_empty():
            merged.summary.environment = loaded_env.merged_with(current_env)
        elif current_env is not None:
            merged.summary.environment = current_env.merged_with(loaded_env)
        return merged
