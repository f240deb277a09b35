import logging
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional

from core import delimited_list
from core.client_directory import ClientDirectory
from core.errors import GoalError
from models.goal import CompletedGoal, GoalChange

logger = logging.getLogger(__name__)


def calculate_completion_rate(active_count: int, completed_count: int) -> int:
    total = active_count + completed_count
    return round(completed_count / total * 100) if total > 0 else 0


class GoalManager:
    """Add, edit, reorder and complete the goals stored in a client's goals column."""

    def __init__(self, client_directory: ClientDirectory, config: Optional[Dict[str, Any]] = None):
        self.client_directory = client_directory
        self.config = config or {}
        self.history: List[GoalChange] = []
        self.completed: List[CompletedGoal] = []

    def get_goals(self, client_id: str) -> List[str]:
        return self.client_directory.get_client_goals(client_id)

    def _set_goals(self, client_id: str, goals: List[str]) -> None:
        column = self.client_directory.goals_column
        if not self.client_directory.update_client(client_id, {column: delimited_list.serialize(goals)}):
            raise GoalError(f"Could not save goals for client {client_id}")

    def _require_client(self, client_id: str) -> None:
        self.client_directory.require_client(client_id)

    def add_goal(self, client_id: str, goal_text: str) -> List[str]:
        if not goal_text or not goal_text.strip():
            raise GoalError("Goal text cannot be empty")

        self._require_client(client_id)
        current = self.get_goals(client_id)
        new_goal = goal_text.strip()

        if any(goal.lower() == new_goal.lower() for goal in current):
            raise GoalError("This goal already exists for the client")

        updated = delimited_list.parse(delimited_list.add(delimited_list.serialize(current), new_goal))
        self._set_goals(client_id, updated)
        self.log_goal_change(client_id, "ADDED", new_goal)
        return updated

    def remove_goal(self, client_id: str, goal_text: str) -> List[str]:
        self._require_client(client_id)
        current = self.get_goals(client_id)

        if not goal_text or goal_text.strip() not in current:
            raise GoalError("Goal not found")

        updated = delimited_list.parse(delimited_list.remove(delimited_list.serialize(current), goal_text))
        self._set_goals(client_id, updated)
        self.log_goal_change(client_id, "REMOVED", goal_text.strip())
        return updated

    def update_goal(self, client_id: str, old_goal_text: str, new_goal_text: str) -> List[str]:
        if not new_goal_text or not new_goal_text.strip():
            raise GoalError("New goal text cannot be empty")

        self._require_client(client_id)
        current = self.get_goals(client_id)
        old_goal = (old_goal_text or "").strip()
        new_goal = new_goal_text.strip()

        if old_goal not in current:
            raise GoalError("Original goal not found")

        others = [goal for goal in current if goal != old_goal]
        if any(goal.lower() == new_goal.lower() for goal in others):
            raise GoalError("A goal with this text already exists")

        updated = delimited_list.parse(delimited_list.update(delimited_list.serialize(current), old_goal, new_goal))
        self._set_goals(client_id, updated)
        self.log_goal_change(client_id, "UPDATED", f'"{old_goal}" -> "{new_goal}"')
        return updated

    def reorder_goals(self, client_id: str, reordered_goals: List[str]) -> List[str]:
        """Persist a new order; the list must hold exactly the current goals."""
        self._require_client(client_id)
        current = self.get_goals(client_id)

        if not isinstance(reordered_goals, list) or not all(isinstance(goal, str) for goal in reordered_goals):
            raise GoalError("Reordered goals must be a list of goal texts")

        if len(reordered_goals) != len(current):
            raise GoalError("Reordered goals must contain the same number of goals")

        proposed = [goal.strip() for goal in reordered_goals]
        if Counter(proposed) != Counter(current):
            raise GoalError("Reordered goals must contain exactly the same goals")

        updated = delimited_list.parse(delimited_list.reorder(delimited_list.serialize(current), reordered_goals))
        self._set_goals(client_id, updated)
        self.log_goal_change(client_id, "REORDERED", "Goals reordered")
        return updated

    def complete_goal(self, client_id: str, goal_text: str) -> Dict[str, Any]:
        """Remove a goal from the active list and archive it."""
        active = self.remove_goal(client_id, goal_text)
        completed = CompletedGoal(
            client_id=client_id,
            goal_text=goal_text.strip(),
            completed_date=datetime.now(),
        )
        self.completed.append(completed)
        self.log_goal_change(client_id, "COMPLETED", completed.goal_text)

        return {
            "active_goals": active,
            "completed_goal": completed.goal_text,
            "completed_date": completed.completed_date,
        }

    def bulk_update_goals(self, client_id: str, new_goals: List[Any]) -> List[str]:
        """Replace all goals: blanks dropped, entries trimmed, first occurrence kept."""
        self._require_client(client_id)
        validated = delimited_list.parse(delimited_list.merge([delimited_list.serialize(list(new_goals))]))
        self._set_goals(client_id, validated)
        self.log_goal_change(client_id, "BULK_UPDATE", f"Updated to {len(validated)} goals")
        return validated

    def get_completed_goals(self, client_id: str) -> List[CompletedGoal]:
        goals = [goal for goal in self.completed if goal.client_id == client_id]
        return sorted(goals, key=lambda goal: goal.completed_date, reverse=True)

    def get_goal_history(self, client_id: str, limit: int = 50) -> List[GoalChange]:
        entries = [entry for entry in self.history if entry.client_id == client_id]
        return sorted(entries, key=lambda entry: entry.date, reverse=True)[:limit]

    def get_goal_statistics(self, client_id: str) -> Dict[str, Any]:
        active = self.get_goals(client_id)
        completed = self.get_completed_goals(client_id)
        added = [entry for entry in self.get_goal_history(client_id) if entry.action == "ADDED"]

        return {
            "active_goals_count": len(active),
            "completed_goals_count": len(completed),
            "total_goals_ever": len(active) + len(completed),
            "last_goal_added": added[0].date if added else None,
            "last_goal_completed": completed[0].completed_date if completed else None,
            "goal_completion_rate": calculate_completion_rate(len(active), len(completed)),
        }

    def log_goal_change(self, client_id: str, action: str, details: str) -> None:
        self.history.append(GoalChange(
            date=datetime.now(),
            client_id=client_id,
            action=action,
            details=details,
        ))
        logger.info(f"Goal {action.lower()} for client {client_id}: {details}")
