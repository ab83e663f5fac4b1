"""Recurrence detection and linking of reopened/duplicate issues.

A newly created or updated issue is compared against recently resolved issues
on the same feature. The best title match above the similarity threshold
becomes its parent, always resolved to the chain root so chains stay one
level deep. The link write and the root's counter increment are a single
repository transaction.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import timedelta

from devpulse_app.core.config import (
    DEFAULT_RECURRENCE_LOOKBACK_DAYS,
    RECURRENCE_CONFLICT_RETRIES,
    RESOLVED_STATUSES,
    TITLE_SIMILARITY_THRESHOLD,
)
from devpulse_app.core.errors import AnalyticsError, ConflictError, NotFoundError, RepositoryError
from devpulse_app.core.models import IssueModel, RecurrenceResult, Timeframe
from devpulse_app.core.repository import IssueRepository

from .similarity import title_similarity

logger = logging.getLogger(__name__)


class ChainIndex:
    """Map issue id -> chain root id, built once per feature snapshot."""

    def __init__(self, issues: Iterable[IssueModel]):
        self._parents: dict[str, str | None] = {i.id: i.parent_issue_id for i in issues}
        self._roots: dict[str, str] = {}

    def root_of(self, issue_id: str) -> str:
        if issue_id in self._roots:
            return self._roots[issue_id]
        path: list[str] = []
        seen: set[str] = set()
        current = issue_id
        while True:
            if current in self._roots:
                root = self._roots[current]
                break
            parent = self._parents.get(current)
            if parent is None or parent in seen or parent not in self._parents:
                # Dangling parents and corrupt cycles stop at the last known node
                root = current
                break
            seen.add(current)
            path.append(current)
            current = parent
        for node in path:
            self._roots[node] = root
        self._roots[issue_id] = root
        return root

    def descendants_of(self, issue_id: str) -> set[str]:
        out: set[str] = set()
        for node in self._parents:
            if node == issue_id:
                continue
            current = self._parents.get(node)
            seen = {node}
            while current is not None and current not in seen:
                if current == issue_id:
                    out.add(node)
                    break
                seen.add(current)
                current = self._parents.get(current)
        return out


class RecurrenceLinker:
    def __init__(
        self,
        repository: IssueRepository,
        *,
        lookback_days: int = DEFAULT_RECURRENCE_LOOKBACK_DAYS,
        threshold: float = TITLE_SIMILARITY_THRESHOLD,
        conflict_retries: int = RECURRENCE_CONFLICT_RETRIES,
    ):
        self.repository = repository
        self.lookback = timedelta(days=lookback_days)
        self.threshold = threshold
        self.conflict_retries = conflict_retries

    def detect_recurrence(self, issue_id: str) -> RecurrenceResult:
        attempts = 0
        while True:
            try:
                return self._detect_once(issue_id)
            except ConflictError as exc:
                if attempts >= self.conflict_retries:
                    raise
                attempts += 1
                logger.warning("Recurrence link for %s conflicted, retrying: %s", issue_id, exc)

    def find_parent(self, target: IssueModel) -> IssueModel | None:
        """Return the best-matching resolved issue for ``target`` (not yet root-resolved)."""
        if target.feature_id is None:
            return None
        feature_issues = self._read(lambda: self.repository.list_issues(feature_id=target.feature_id))
        index = ChainIndex(feature_issues)
        excluded = index.descendants_of(target.id) | {target.id}
        window = Timeframe(start=target.created_at - self.lookback, end=target.created_at + self.lookback)
        best: IssueModel | None = None
        best_score = -1.0
        for candidate in feature_issues:
            if candidate.id in excluded or candidate.status not in RESOLVED_STATUSES:
                continue
            if not window.contains(candidate.resolved_at):
                continue
            score = title_similarity(target.title, candidate.title)
            if score < self.threshold:
                continue
            if score > best_score or (score == best_score and candidate.resolved_at > best.resolved_at):
                best, best_score = candidate, score
        if best is None:
            return None
        logger.debug("Issue %s matches %s (similarity %.2f)", target.id, best.id, best_score)
        root_id = index.root_of(best.id)
        if root_id in excluded:
            return None
        if root_id == best.id:
            return best
        return next((i for i in feature_issues if i.id == root_id), None)

    def _detect_once(self, issue_id: str) -> RecurrenceResult:
        target = self._read(lambda: self.repository.get_issue(issue_id))
        if target is None:
            raise NotFoundError(f"Issue {issue_id} not found", details={"issue_id": issue_id})
        if target.parent_issue_id is not None:
            return RecurrenceResult(linked=True, parent_issue_id=target.parent_issue_id)
        if target.child_issue_ids or target.recurrence_count > 0:
            # Already a chain root; linking it would push its children one level down
            logger.debug("Issue %s is a chain root, not relinking", target.id)
            return RecurrenceResult(linked=False)
        root = self.find_parent(target)
        if root is None:
            return RecurrenceResult(linked=False)
        try:
            linked = self.repository.link_recurrence(target.id, root.id)
        except AnalyticsError:
            raise
        except Exception as exc:
            raise RepositoryError(
                f"Failed to link {target.id} to {root.id}: {exc}",
                details={"issue_id": target.id, "root_id": root.id},
            ) from exc
        logger.info("Linked recurring issue %s to root %s", target.id, root.id)
        return RecurrenceResult(linked=True, parent_issue_id=linked.parent_issue_id)

    @staticmethod
    def _read(fetch):
        try:
            return fetch()
        except AnalyticsError:
            raise
        except Exception as exc:
            raise RepositoryError(f"Issue store read failed: {exc}") from exc
