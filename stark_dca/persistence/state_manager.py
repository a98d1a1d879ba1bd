"""
Persistence of the plan store between runs.

The store is written as one JSON document. A file that cannot be parsed,
does not match the EngineState schema, or whose ledger disagrees with its
plans is quarantined and the previous copy is used instead.
"""

import json
import logging
import os
import shutil
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from ..plan_engine.models import EngineState
from ..timeutil import utc_now
from .ledger_checks import find_ledger_problems

logger = logging.getLogger(__name__)


class StateManager:
    """Saves and restores plans and the execution ledger with backup recovery."""

    DEFAULT_STATE_FILENAME = "engine_state.json"
    BACKUP_SUFFIX = ".backup"

    def __init__(self, state_dir: Optional[str] = None):
        """
        Initialize state manager with specified directory.

        Args:
            state_dir: Directory for state files. If None, uses ~/.stark_dca/state.
        """
        if state_dir is None:
            state_dir = os.path.join(os.path.expanduser("~"), ".stark_dca", "state")

        self._state_dir = Path(state_dir)
        self._state_dir.mkdir(parents=True, exist_ok=True)

        logger.debug(f"StateManager initialized with directory: {self._state_dir}")

    def get_state_file_path(self) -> Path:
        """Get the path to the main state file."""
        return self._state_dir / self.DEFAULT_STATE_FILENAME

    def get_backup_file_path(self) -> Path:
        """Get the path to the backup state file."""
        return self._state_dir / (self.DEFAULT_STATE_FILENAME + self.BACKUP_SUFFIX)

    def save_state(self, state: EngineState) -> bool:
        """
        Write the plan store to disk.

        The previous file becomes the backup, and the new one is written to a
        temp file and moved into place. A state whose ledger is inconsistent
        is never written.

        Returns:
            bool: True if save was successful, False otherwise
        """
        problems = find_ledger_problems(state)
        if problems:
            for problem in problems:
                logger.error(f"Refusing to save inconsistent state: {problem}")
            return False

        state_file = self.get_state_file_path()
        temp_file = state_file.with_suffix('.tmp')

        try:
            state.last_update = utc_now()
            payload = state.model_dump(mode='json')

            if state_file.exists():
                shutil.copy2(state_file, self.get_backup_file_path())

            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2)
            temp_file.replace(state_file)

        except Exception as e:
            logger.error(f"Failed to save engine state: {e}")
            return False

        logger.info(f"Saved {len(state.plans)} plans and {len(state.executions)} executions to {state_file}")
        return True

    def load_state(self) -> EngineState:
        """
        Restore the plan store from disk.

        Tries the main file, then the backup (re-saving it as the main file
        when it is usable), then falls back to an empty store.
        """
        state = self._read_state(self.get_state_file_path())

        backup_file = self.get_backup_file_path()
        if state is None and backup_file.exists():
            logger.warning("Main state file unusable or missing, attempting to load from backup")
            state = self._read_state(backup_file)

            if state is not None:
                logger.info(f"Recovered {len(state.plans)} plans from backup file")
                self.save_state(state)

        if state is None:
            logger.info("No valid state found, starting with an empty plan store")
            state = EngineState()

        return state

    def _read_state(self, file_path: Path) -> Optional[EngineState]:
        """Parse, validate and consistency-check one state file; quarantine it on failure."""
        if not file_path.exists():
            logger.debug(f"State file does not exist: {file_path}")
            return None

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                state = EngineState.model_validate(json.load(f))
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in state file {file_path}: {e}")
            self._quarantine(file_path, "corrupted")
            return None
        except ValidationError as e:
            logger.error(f"State file {file_path} does not match the plan schema: {e}")
            self._quarantine(file_path, "corrupted")
            return None
        except OSError as e:
            logger.error(f"Failed to read state file {file_path}: {e}")
            return None

        problems = find_ledger_problems(state)
        if problems:
            for problem in problems:
                logger.error(f"Inconsistent ledger in {file_path}: {problem}")
            self._quarantine(file_path, "inconsistent")
            return None

        logger.debug(f"Loaded {len(state.plans)} plans from {file_path}")
        return state

    def _quarantine(self, file_path: Path, reason: str) -> None:
        """Move a rejected state file aside so it is not read again."""
        target = file_path.with_suffix(f'.{reason}.{utc_now().strftime("%Y%m%d_%H%M%S")}')
        try:
            shutil.move(str(file_path), str(target))
            logger.warning(f"Moved {reason} state file to {target}")
        except OSError as e:
            logger.error(f"Failed to move {reason} file {file_path}: {e}")
