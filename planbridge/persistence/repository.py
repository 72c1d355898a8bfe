"""
Plan Repository - JSON file plan store

One JSON document per plan, named <plan id>.json. Plans live either in the
global store (~/.plan-bridge/plans) or in a project-local store
(<project>/.plan-bridge/plans). Project paths holding a local store are
indexed in ~/.plan-bridge/projects.json so listings can merge every scope.

Concurrency:
- Single writer assumed; no locking
- Writes go to a temp file and are renamed into place, so readers never
  observe a partially written plan
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from planbridge.config import BridgeConfig, STORAGE_SCOPES, ensure_storage
from planbridge.exceptions import PlanCorruptError, ValidationError
from planbridge.persistence.models import Plan, now_iso
from planbridge.state import PlanStatus

logger = logging.getLogger(__name__)


def _atomic_write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class PlanRepository:
    """
    Repository for all plan persistence operations.

    Usage:
        repo = PlanRepository(load_config())
        repo.initialize()

        repo.save(plan)
        plan = repo.load(plan_id)
        plans = repo.list(status=PlanStatus.NEEDS_FIXES)
    """

    def __init__(self, config: BridgeConfig):
        """
        Initialize repository.

        Args:
            config: Configuration providing the storage locations
        """
        self.config = config

    def initialize(self) -> None:
        """Create the global store if it doesn't exist."""
        ensure_storage(self.config)
        logger.debug(f"Plan store ready at {self.config.storage_dir}")

    # =========================================================================
    # LOCATIONS
    # =========================================================================

    def _dir_for(self, scope: str, project_path: str) -> Path:
        if scope == "local":
            return self.config.local_storage_dir(project_path)
        return self.config.storage_dir

    def _path_for(self, plan: Plan) -> Path:
        return self._dir_for(plan.storage_scope, plan.project_path) / f"{plan.id}.json"

    def known_project_paths(self) -> list[str]:
        """Project paths that have held a local plan store."""
        index = self.config.projects_file
        if not index.exists():
            return []
        try:
            with open(index, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise PlanCorruptError("Invalid JSON in project index", str(index), str(e))
        return [str(p) for p in data.get("projects", [])]

    def _register_project(self, project_path: str) -> None:
        known = self.known_project_paths()
        if project_path in known:
            return
        known.append(project_path)
        _atomic_write_json(self.config.projects_file, {"projects": known})
        logger.debug(f"Registered local plan store for {project_path}")

    def _search_dirs(self, scope: str | None = None, project_path: str | None = None) -> list[Path]:
        dirs: list[Path] = []
        if scope in (None, "local"):
            projects = [project_path] if project_path else self.known_project_paths()
            dirs.extend(self.config.local_storage_dir(p) for p in projects)
        if scope in (None, "global"):
            dirs.append(self.config.storage_dir)
        return dirs

    # =========================================================================
    # READ / WRITE
    # =========================================================================

    def _read(self, path: Path) -> Plan:
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise PlanCorruptError(f"Invalid JSON in plan file {path.name}", str(path), str(e))
        except OSError as e:
            raise PlanCorruptError(f"Unreadable plan file {path.name}", str(path), str(e))
        try:
            return Plan.from_dict(data)
        except (KeyError, ValueError, TypeError) as e:
            raise PlanCorruptError(f"Malformed plan file {path.name}", str(path), str(e))

    def save(self, plan: Plan) -> None:
        """Write a plan to the store of its scope."""
        if plan.storage_scope not in STORAGE_SCOPES:
            raise ValidationError(
                f"Invalid storage scope '{plan.storage_scope}'",
                {"allowed": list(STORAGE_SCOPES)},
            )
        path = self._path_for(plan)
        _atomic_write_json(path, plan.to_dict())
        if plan.storage_scope == "local":
            self._register_project(plan.project_path)
        logger.debug(f"Saved plan {plan.id} ({plan.status.value}) to {path}")

    def load(self, plan_id: str, scope_hint: str | None = None) -> Plan | None:
        """
        Load a plan by id.

        Args:
            plan_id: Plan id
            scope_hint: "global" or "local" store to look in first

        Returns:
            The plan, or None if no store holds it
        """
        dirs = self._search_dirs()
        if scope_hint == "global":
            dirs = [self.config.storage_dir] + [d for d in dirs if d != self.config.storage_dir]

        for directory in dirs:
            path = directory / f"{plan_id}.json"
            if path.exists():
                return self._read(path)
        return None

    def list(
        self,
        status: PlanStatus | None = None,
        project_path: str | None = None,
        scope: str | None = None,
    ) -> list[Plan]:
        """
        List plans, most recently updated first.

        Args:
            status: Only plans with this status
            project_path: Only plans for this project
            scope: Only plans in this storage scope

        Unreadable plan files are logged and skipped.
        """
        plans: dict[str, Plan] = {}
        for directory in self._search_dirs(scope, project_path):
            if not directory.exists():
                continue
            for path in sorted(directory.glob("*.json")):
                try:
                    plan = self._read(path)
                except PlanCorruptError as e:
                    logger.warning(f"Skipping plan file: {e}")
                    continue
                if status is not None and plan.status != status:
                    continue
                if project_path and plan.project_path != project_path:
                    continue
                plans.setdefault(plan.id, plan)

        return sorted(plans.values(), key=lambda p: p.updated_at, reverse=True)

    def load_latest(
        self,
        status: PlanStatus | None = None,
        project_path: str | None = None,
    ) -> Plan | None:
        """Get the most recently updated plan matching the filters."""
        plans = self.list(status=status, project_path=project_path)
        return plans[0] if plans else None

    def migrate_scope(self, plan_id: str, new_project_path: str) -> Plan | None:
        """
        Move a plan into the local store of a project.

        Args:
            plan_id: Plan id
            new_project_path: Project that will own the plan

        Returns:
            The migrated plan, or None if not found
        """
        plan = self.load(plan_id)
        if plan is None:
            return None

        old_path = self._path_for(plan)
        plan.project_path = new_project_path
        plan.storage_scope = "local"
        plan.updated_at = now_iso()
        self.save(plan)

        new_path = self._path_for(plan)
        if old_path != new_path and old_path.exists():
            old_path.unlink()

        logger.info(f"Migrated plan {plan.id} to local store of {new_project_path}")
        return plan

    def delete(self, plan_id: str) -> bool:
        """Remove a plan file. Returns False if it did not exist."""
        plan = self.load(plan_id)
        if plan is None:
            return False
        self._path_for(plan).unlink()
        logger.info(f"Deleted plan {plan_id}")
        return True
