import logging
import random
from typing import Optional

from django.db import IntegrityError, transaction

from .exceptions import (
    AlreadyExists, Conflict, NotFound,
    NO_CANDIDATE, NOT_ASSIGNED, PR_EXISTS, PR_MERGED, TEAM_EXISTS, USER_IN_OTHER_TEAM,
)
from .models import PullRequest, Team, User
from .reporting import BulkDeactivationReport, BulkDeactivationResult, ReassignmentResult
from .selection import (
    CandidatePool, RandomSource, eligible_candidates, pick_initial_reviewers,
    pick_replacement, replace_in_slot,
)
from .store import ReviewStore

logger = logging.getLogger(__name__)


class BaseService:

    def __init__(self, store: Optional[ReviewStore] = None):
        self.store = store or ReviewStore()


class TeamService(BaseService):
    """
    Сервис для управления командами и пользователями
    """

    @transaction.atomic
    def create_team_with_members(self, team_name: str, members_data: list) -> Team:
        """
        Создает команду с пользователями. Состав команды задается
        один раз и потом не меняется
        """
        if self.store.team_exists(team_name):
            raise AlreadyExists('team_name already exists', code=TEAM_EXISTS)

        for member_data in members_data:
            if self.store.is_user_in_other_team(member_data['user_id'], team_name):
                raise AlreadyExists(
                    f"user {member_data['user_id']} already belongs to another team",
                    code=USER_IN_OTHER_TEAM,
                )

        team = self.store.create_team(team_name)
        for member_data in members_data:
            self.store.create_user(
                team,
                user_id=member_data['user_id'],
                username=member_data['username'],
                is_active=member_data['is_active'],
            )

        logger.info("Team '%s' created with %d members", team_name, len(members_data))
        return self.store.get_team(team_name)

    def get_team_with_members(self, team_name: str) -> Team:
        team = self.store.get_team(team_name)
        if team is None:
            raise NotFound(f"Team '{team_name}' not found")
        return team

    @transaction.atomic
    def bulk_deactivate_team_members(self, team_name: str, user_ids: list) -> BulkDeactivationResult:
        """
        Массовая деактивация пользователей команды с переназначением
        ревьюверов во всех открытых PR.

        Все выполняется в одной транзакции: либо деактивированы все
        пользователи и исправлены все PR, либо ничего не изменилось.
        """
        user_ids = list(dict.fromkeys(user_ids))

        if not self.store.team_exists(team_name):
            raise NotFound(f"Team '{team_name}' not found")

        # Снимок активных участников до деактивации
        active_ids = [user.id for user in self.store.get_active_users_by_team(team_name, for_update=True)]
        active_set = set(active_ids)
        for user_id in user_ids:
            if user_id not in active_set:
                raise NotFound(f'user not found or not active: {user_id}')

        report = BulkDeactivationReport(team_name, user_ids)
        if not user_ids:
            return report.finish()

        open_prs = self.store.get_open_prs_with_reviewers(user_ids, for_update=True)
        for pr in open_prs:
            self._reassign_deactivated_reviewers(pr, user_ids, active_ids, report)

        for user_id in user_ids:
            self.store.update_user_active(user_id, False)

        result = report.finish()
        logger.info(
            "Team '%s': deactivated %d users, touched %d PRs, %d slots left empty",
            team_name, len(user_ids), len(result.reassigned_prs), len(result.failed_reassignments),
        )
        return result

    def _reassign_deactivated_reviewers(self, pr: PullRequest, deactivating_ids: list,
                                        active_ids: list, report: BulkDeactivationReport):
        reviewer_ids = pr.reviewer_ids()
        # Пул считается для каждого PR отдельно
        pool = CandidatePool.for_pull_request(active_ids, pr.author_id, reviewer_ids, deactivating_ids)

        report.start_pull_request(pr.id)
        new_reviewer_ids = list(reviewer_ids)
        for old_id in deactivating_ids:
            if old_id not in reviewer_ids:
                continue

            new_id = pool.pop()
            if new_id is None:
                new_reviewer_ids.remove(old_id)
                report.failed(old_id)
                logger.warning("PR '%s': no replacement for deactivated reviewer '%s'", pr.id, old_id)
                continue

            new_reviewer_ids = replace_in_slot(new_reviewer_ids, old_id, new_id)
            report.replaced(old_id, new_id)

        self.store.update_pr_reviewers(pr.id, new_reviewer_ids)


class UserService(BaseService):
    """
    Сервис для управления пользователями
    """

    def set_user_active_status(self, user_id: str, is_active: bool) -> User:
        if self.store.get_user(user_id) is None:
            raise NotFound(f"User '{user_id}' not found")

        self.store.update_user_active(user_id, is_active)
        return self.store.get_user(user_id)

    def get_user_review_assignments(self, user_id: str) -> list:
        if self.store.get_user(user_id) is None:
            raise NotFound(f"User '{user_id}' not found")
        return self.store.get_prs_by_reviewer(user_id)


class PullRequestService(BaseService):
    """
    Сервис для управления Pull Request'ами
    """

    def __init__(self, store: Optional[ReviewStore] = None, rng: Optional[RandomSource] = None):
        super().__init__(store)
        self.rng = rng or random.Random()

    def create_pull_request(self, pr_id: str, pr_name: str, author_id: str) -> PullRequest:
        if self.store.pr_exists(pr_id):
            raise AlreadyExists('PR id already exists', code=PR_EXISTS)

        author = self.store.get_user(author_id)
        if author is None:
            raise NotFound(f"Author '{author_id}' not found")

        reviewer_ids = self._assign_reviewers(author)
        try:
            pr = self.store.create_pr(pr_id, pr_name, author, reviewer_ids)
        except IntegrityError:
            # Параллельный запрос успел создать PR с тем же id
            raise AlreadyExists('PR id already exists', code=PR_EXISTS)

        logger.info("PR '%s' created by '%s', reviewers: %s", pr_id, author_id, reviewer_ids)
        return pr

    def _assign_reviewers(self, author: User) -> list:
        # Активные участники команды автора, кроме самого автора
        active_ids = [user.id for user in self.store.get_active_users_by_team(author.team.name)]
        candidates = eligible_candidates(active_ids, {author.id})
        return pick_initial_reviewers(candidates, self.rng)

    @transaction.atomic
    def merge_pull_request(self, pr_id: str) -> PullRequest:
        pr = self.store.get_pr(pr_id, for_update=True)
        if pr is None:
            raise NotFound(f"PR '{pr_id}' not found")

        # Повторный merge ничего не меняет
        if pr.is_merged:
            return pr

        self.store.update_pr_status(pr_id, PullRequest.Status.MERGED)
        logger.info("PR '%s' merged", pr_id)
        return self.store.get_pr(pr_id)

    @transaction.atomic
    def reassign_reviewer(self, pr_id: str, old_user_id: str) -> ReassignmentResult:
        """
        Заменяет одного ревьювера случайным активным участником его команды.
        Остальные ревьюверы и их порядок не меняются.

        Блокировки берутся в том же порядке, что и при массовой деактивации:
        сначала активные участники команды, потом PR.
        """
        if not self.store.pr_exists(pr_id):
            raise NotFound(f"PR '{pr_id}' not found")

        old_reviewer = self.store.get_user(old_user_id)
        active_ids = []
        if old_reviewer is not None:
            active_ids = [
                user.id for user in self.store.get_active_users_by_team(old_reviewer.team.name, for_update=True)
            ]

        pr = self.store.get_pr(pr_id, for_update=True)
        if pr is None:
            raise NotFound(f"PR '{pr_id}' not found")

        if pr.is_merged:
            raise Conflict('cannot reassign on merged PR', code=PR_MERGED)

        reviewer_ids = pr.reviewer_ids()
        if old_user_id not in reviewer_ids:
            raise Conflict('reviewer is not assigned to this PR', code=NOT_ASSIGNED)

        if old_reviewer is None:
            raise NotFound(f"User '{old_user_id}' not found")

        candidates = eligible_candidates(active_ids, {old_user_id, pr.author_id, *reviewer_ids})
        new_reviewer_id = pick_replacement(candidates, self.rng)
        if new_reviewer_id is None:
            logger.warning("PR '%s': no candidate to replace '%s'", pr_id, old_user_id)
            raise Conflict('no active replacement candidate in team', code=NO_CANDIDATE)

        self.store.update_pr_reviewers(pr_id, replace_in_slot(reviewer_ids, old_user_id, new_reviewer_id))
        logger.info("PR '%s': reviewer '%s' replaced by '%s'", pr_id, old_user_id, new_reviewer_id)

        return ReassignmentResult(
            pr=self.store.get_pr(pr_id),
            replaced_by=self.store.get_user(new_reviewer_id),
        )


class StatsService(BaseService):
    """
    Сервис для сбора статистики
    """

    def get_review_stats(self) -> dict:
        """
        Returns:
            dict: Статистика по пользователям, PR и общая сводка
        """
        user_review_stats = self.store.get_user_review_stats()
        pr_reviewer_stats = self.store.get_pr_reviewer_stats()

        total_prs = len(pr_reviewer_stats)
        total_assignments = self.store.count_assignments()
        most_active = next((row for row in user_review_stats if row['prs_reviewed'] > 0), None)
        most_reviewed = next((row for row in pr_reviewer_stats if row['reviewers_count'] > 0), None)

        summary = {
            'total_users': len(user_review_stats),
            'total_prs': total_prs,
            'total_assignments': total_assignments,
            'avg_reviewers_per_pr': round(total_assignments / total_prs, 2) if total_prs else 0.0,
            'most_active_user': most_active['id'] if most_active else None,
            'most_reviewed_pr': most_reviewed['id'] if most_reviewed else None,
        }

        return {
            'user_review_stats': user_review_stats,
            'pr_reviewer_stats': pr_reviewer_stats,
            'summary': summary,
        }
