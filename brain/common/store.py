"""
Brain Store

Single-file JSON storage for tasks, contexts and learned preferences
(default: ~/.brain/data/personal_brain.json).

Every mutation rewrites the whole file. There is no locking; one writer
process is assumed.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from .dates import parse_datetime, to_iso, utcnow
from .schemas import Task, TaskPriority, TaskStatus, generate_task_id

logger = logging.getLogger("brain.common.store")

_ALL = "all"


class BrainStore:
    """
    Persistent personal store.

    Tasks are kept as raw dicts so keys unknown to the Task model survive a
    round trip; ``list_tasks`` validates them into Task objects on read.
    """

    def __init__(self, path: Path, index=None):
        """
        Initialize store and load existing data.

        Args:
            path: JSON file path
            index: Optional SimilarityIndex; task and context text is indexed on write
        """
        self._path = Path(path)
        self._index = index
        self._data: Dict[str, Any] = self._empty()
        self._load()

    @staticmethod
    def _empty() -> Dict[str, Any]:
        return {"tasks": [], "contexts": [], "preferences": {}}

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            with open(self._path, encoding="utf-8") as f:
                raw = json.load(f)
            self._data = {
                "tasks": raw.get("tasks") if isinstance(raw.get("tasks"), list) else [],
                "contexts": raw.get("contexts") if isinstance(raw.get("contexts"), list) else [],
                "preferences": raw.get("preferences") if isinstance(raw.get("preferences"), dict) else {},
            }
        except (json.JSONDecodeError, IOError, AttributeError) as e:
            logger.warning("Failed to load store %s: %s", self._path, e)
            self._data = self._empty()

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=2, ensure_ascii=False, default=str)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def store_task(self, task: Union[Task, Dict[str, Any]]) -> Dict[str, Any]:
        """
        Append a task. Missing id, type, status and priority get defaults.

        Returns:
            The stored entry
        """
        item = task.to_dict() if isinstance(task, Task) else dict(task)
        entry = {**item, "id": item.get("id") or generate_task_id(), "timestamp": to_iso(utcnow())}
        if not entry.get("type"):
            entry["type"] = self._auto_detect_type(entry)
        entry.setdefault("status", TaskStatus.OPEN.value)
        entry.setdefault("priority", TaskPriority.MEDIUM.value)

        self._data["tasks"].append(entry)
        self._save()
        if entry.get("description"):
            self._index_text(f"{entry.get('title', '')} {entry['description']}", entry, "task")
        return entry

    def store_context(self, context: Dict[str, Any]) -> Dict[str, Any]:
        """Append a free-form context note (expects a ``content`` key)."""
        entry = {**context, "id": context.get("id") or generate_task_id(), "timestamp": to_iso(utcnow())}
        self._data["contexts"].append(entry)
        self._save()
        if entry.get("content"):
            self._index_text(entry["content"], entry, "context")
        return entry

    def store_preference(self, key: str, value: Any, confidence: float = 0.5) -> Dict[str, Any]:
        """Learn or overwrite a user preference."""
        self._data["preferences"][key] = {
            "value": value,
            "learned_at": to_iso(utcnow()),
            "confidence": confidence,
        }
        self._save()
        return {"id": key, **self._data["preferences"][key]}

    def update_task(self, task_id: str, updates: Dict[str, Any]) -> bool:
        """Merge updates into a task. Returns False if the id is unknown."""
        for i, item in enumerate(self._data["tasks"]):
            if item.get("id") == task_id:
                self._data["tasks"][i] = {
                    **item,
                    **updates,
                    "id": task_id,
                    "updated_at": to_iso(utcnow()),
                }
                self._save()
                return True
        return False

    def delete_task(self, task_id: str) -> bool:
        """Remove a task. Indexed memories of it are not removed."""
        before = len(self._data["tasks"])
        self._data["tasks"] = [t for t in self._data["tasks"] if t.get("id") != task_id]
        if len(self._data["tasks"]) < before:
            self._save()
            return True
        return False

    def refresh_urgency(self, now: Optional[datetime] = None) -> bool:
        """
        Promote open tasks whose ``process_at`` has passed to priority urgent.

        Tasks already high or urgent are left alone.

        Returns:
            True if any task changed
        """
        now = parse_datetime(now) or utcnow()
        changed = False
        for item in self._data["tasks"]:
            if item.get("status") == TaskStatus.COMPLETED.value:
                continue
            process_at = parse_datetime(item.get("process_at"))
            if process_at is None or now < process_at:
                continue
            if item.get("priority") not in (TaskPriority.HIGH.value, TaskPriority.URGENT.value):
                item["priority"] = TaskPriority.URGENT.value
                changed = True

        if changed:
            self._save()
        return changed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_tasks(
        self,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        category: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Raw task entries matching all given filters ("all" matches anything)."""
        filters = {"status": status, "priority": priority, "category": category}
        result = []
        for item in self._data["tasks"]:
            if all(v in (None, _ALL) or item.get(k) == v for k, v in filters.items()):
                result.append(dict(item))
        return result

    def list_tasks(self) -> List[Task]:
        """All tasks as validated Task models. Malformed entries are skipped."""
        tasks = []
        for item in self._data["tasks"]:
            try:
                tasks.append(Task.model_validate(item))
            except ValidationError as e:
                logger.warning("Skipping malformed task %s: %s", item.get("id"), e)
        return tasks

    def get_contexts(self, tags: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        contexts = [dict(c) for c in self._data["contexts"]]
        if tags:
            contexts = [c for c in contexts if set(c.get("tags") or []) & set(tags)]
        return contexts

    def get_preferences(self) -> Dict[str, Dict[str, Any]]:
        return {k: dict(v) for k, v in self._data["preferences"].items()}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _auto_detect_type(task: Dict[str, Any]) -> str:
        if task.get("termin_at"):
            return "termin"
        if task.get("event_at"):
            return "event"
        minutes = (task.get("duration_h") or 0) * 60 + (task.get("duration_m") or 0)
        if 0 < minutes < 10:
            return "todo"
        return "aufgabe"

    def _index_text(self, text: str, entry: Dict[str, Any], kind: str) -> None:
        if self._index is None or not text.strip():
            return
        try:
            self._index.index(text.strip(), {
                "type": f"brain_{kind}",
                "brain_id": entry["id"],
                "timestamp": entry["timestamp"],
            })
        except Exception as e:
            # The entry is already saved; memory indexing is best effort
            logger.warning("Memory indexing failed for %s %s: %s", kind, entry["id"], e)
