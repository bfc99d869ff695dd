"""
Результаты переназначений в том виде, в каком их отдает API
"""
from dataclasses import dataclass, field
from typing import List

from .models import PullRequest, User


NO_REPLACEMENT_REASON = 'no active replacement candidate available'


@dataclass
class UserReplacement:
    old_user_id: str
    new_user_id: str


@dataclass
class ReassignedPullRequest:
    pull_request_id: str
    replacements: List[UserReplacement] = field(default_factory=list)


@dataclass
class FailedReassignment:
    pull_request_id: str
    old_user_id: str
    reason: str = NO_REPLACEMENT_REASON


@dataclass
class ReassignmentResult:
    pr: PullRequest
    replaced_by: User


@dataclass
class BulkDeactivationResult:
    team_name: str
    deactivated_users: List[str] = field(default_factory=list)
    reassigned_prs: List[ReassignedPullRequest] = field(default_factory=list)
    failed_reassignments: List[FailedReassignment] = field(default_factory=list)


class BulkDeactivationReport:
    """
    Копит исходы по слотам во время каскадного переназначения
    """

    def __init__(self, team_name: str, deactivated_users: list):
        self.result = BulkDeactivationResult(
            team_name=team_name,
            deactivated_users=list(deactivated_users),
        )
        self._current = None

    def start_pull_request(self, pr_id: str):
        self._current = ReassignedPullRequest(pull_request_id=pr_id)
        self.result.reassigned_prs.append(self._current)

    def replaced(self, old_user_id: str, new_user_id: str):
        self._current.replacements.append(UserReplacement(old_user_id, new_user_id))

    def failed(self, old_user_id: str):
        self.result.failed_reassignments.append(
            FailedReassignment(self._current.pull_request_id, old_user_id)
        )

    def finish(self) -> BulkDeactivationResult:
        self._current = None
        return self.result
