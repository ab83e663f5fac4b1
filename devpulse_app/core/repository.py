"""Issue store port and the in-memory reference adapter.

The analytics engine only reads through this interface, except for
``link_recurrence`` which is the single transactional write.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime
from typing import Any, Protocol

from .errors import ConflictError, NotFoundError
from .mappers import map_developer, map_feature, map_issue, map_project
from .models import DeveloperModel, FeatureModel, IssueModel, ProjectModel, Timeframe

logger = logging.getLogger(__name__)


class IssueRepository(Protocol):
    def list_issues(
        self,
        *,
        project_id: str | None = None,
        feature_id: str | None = None,
        assigned_to_id: str | None = None,
        statuses: Iterable[str] | None = None,
        resolved_between: Timeframe | None = None,
        created_between: Timeframe | None = None,
    ) -> list[IssueModel]: ...

    def get_issue(self, issue_id: str) -> IssueModel | None: ...

    def get_developer(self, developer_id: str) -> DeveloperModel | None: ...

    def list_developers(self) -> list[DeveloperModel]: ...

    def get_feature(self, feature_id: str) -> FeatureModel | None: ...

    def list_features(self, project_id: str | None = None) -> list[FeatureModel]: ...

    def get_project(self, project_id: str) -> ProjectModel | None: ...

    def list_projects(self) -> list[ProjectModel]: ...

    def link_recurrence(self, child_id: str, root_id: str) -> IssueModel:
        """Atomically attach ``child_id`` to ``root_id`` and bump the root count.

        Must raise ConflictError when the child already has a parent or the
        root has become a child since it was read.
        """
        ...


def _clone(issue: IssueModel) -> IssueModel:
    return replace(issue, child_issue_ids=list(issue.child_issue_ids))


def _within(ts: datetime | None, frame: Timeframe | None) -> bool:
    return frame is None or frame.contains(ts)


class InMemoryIssueRepository:
    """Dict-backed repository. Reads return copies (snapshot semantics)."""

    def __init__(
        self,
        issues: Iterable[IssueModel] = (),
        developers: Iterable[DeveloperModel] = (),
        features: Iterable[FeatureModel] = (),
        projects: Iterable[ProjectModel] = (),
    ):
        self._lock = threading.RLock()
        self._issues: dict[str, IssueModel] = {i.id: _clone(i) for i in issues}
        self._developers: dict[str, DeveloperModel] = {d.id: d for d in developers}
        self._features: dict[str, FeatureModel] = {f.id: f for f in features}
        self._projects: dict[str, ProjectModel] = {p.id: p for p in projects}
        self._rebuild_children()

    @classmethod
    def from_records(
        cls,
        *,
        issues: Iterable[dict[str, Any]] = (),
        developers: Iterable[dict[str, Any]] = (),
        features: Iterable[dict[str, Any]] = (),
        projects: Iterable[dict[str, Any]] = (),
    ) -> InMemoryIssueRepository:
        return cls(
            issues=[map_issue(r) for r in issues],
            developers=[map_developer(r) for r in developers],
            features=[map_feature(r) for r in features],
            projects=[map_project(r) for r in projects],
        )

    def _rebuild_children(self) -> None:
        for issue in self._issues.values():
            issue.child_issue_ids = []
        for issue in self._issues.values():
            parent = self._issues.get(issue.parent_issue_id or "")
            if parent is not None:
                parent.child_issue_ids.append(issue.id)

    # ------------------ Reads ------------------
    def list_issues(
        self,
        *,
        project_id: str | None = None,
        feature_id: str | None = None,
        assigned_to_id: str | None = None,
        statuses: Iterable[str] | None = None,
        resolved_between: Timeframe | None = None,
        created_between: Timeframe | None = None,
    ) -> list[IssueModel]:
        wanted = set(statuses) if statuses is not None else None
        with self._lock:
            out = []
            for issue in self._issues.values():
                if project_id is not None and issue.project_id != project_id:
                    continue
                if feature_id is not None and issue.feature_id != feature_id:
                    continue
                if assigned_to_id is not None and issue.assigned_to_id != assigned_to_id:
                    continue
                if wanted is not None and issue.status not in wanted:
                    continue
                if not _within(issue.resolved_at, resolved_between):
                    continue
                if not _within(issue.created_at, created_between):
                    continue
                out.append(_clone(issue))
            return out

    def get_issue(self, issue_id: str) -> IssueModel | None:
        with self._lock:
            issue = self._issues.get(issue_id)
            return _clone(issue) if issue is not None else None

    def get_developer(self, developer_id: str) -> DeveloperModel | None:
        return self._developers.get(developer_id)

    def list_developers(self) -> list[DeveloperModel]:
        return list(self._developers.values())

    def get_feature(self, feature_id: str) -> FeatureModel | None:
        return self._features.get(feature_id)

    def list_features(self, project_id: str | None = None) -> list[FeatureModel]:
        return [f for f in self._features.values() if project_id is None or f.project_id == project_id]

    def get_project(self, project_id: str) -> ProjectModel | None:
        return self._projects.get(project_id)

    def list_projects(self) -> list[ProjectModel]:
        return list(self._projects.values())

    # ------------------ Writes ------------------
    def add_issue(self, issue: IssueModel) -> None:
        with self._lock:
            self._issues[issue.id] = _clone(issue)
            self._rebuild_children()

    def link_recurrence(self, child_id: str, root_id: str) -> IssueModel:
        with self._lock:
            child = self._issues.get(child_id)
            root = self._issues.get(root_id)
            if child is None or root is None:
                raise NotFoundError(
                    f"Cannot link {child_id} -> {root_id}: issue missing",
                    details={"child_id": child_id, "root_id": root_id},
                )
            if child_id == root_id:
                raise ConflictError(f"Issue {child_id} cannot be linked to itself")
            if child.parent_issue_id is not None:
                raise ConflictError(
                    f"Issue {child_id} is already linked to {child.parent_issue_id}",
                    details={"child_id": child_id, "parent_issue_id": child.parent_issue_id},
                )
            if child.child_issue_ids or child.recurrence_count > 0:
                raise ConflictError(
                    f"Issue {child_id} is a chain root and cannot become a child",
                    details={"child_id": child_id, "child_issue_ids": list(child.child_issue_ids)},
                )
            if root.parent_issue_id is not None:
                raise ConflictError(
                    f"Issue {root_id} is no longer a chain root",
                    details={"root_id": root_id, "parent_issue_id": root.parent_issue_id},
                )
            # Stage both records before publishing either one
            new_child = replace(_clone(child), parent_issue_id=root_id, is_recurring=True)
            new_root = _clone(root)
            new_root.recurrence_count += 1
            new_root.is_recurring = True
            new_root.child_issue_ids.append(child_id)
            self._commit({child_id: new_child, root_id: new_root})
            logger.debug("Linked %s to chain root %s", child_id, root_id)
            return _clone(new_child)

    def _commit(self, staged: dict[str, IssueModel]) -> None:
        self._issues.update(staged)
