"""
Хранилище команд, пользователей, PR и связей PR-ревьювер.

Транзакционные варианты операций это те же методы, вызванные внутри
transaction.atomic(); for_update=True дополнительно блокирует строки
до конца транзакции.
"""
from typing import Iterable, List, Optional

from django.db import connection, models, transaction
from django.db.models import Count
from django.utils import timezone

from .models import PullRequest, ReviewerAssignment, Team, User


class ReviewStore:

    # Пользователи

    def get_user(self, user_id: str) -> Optional[User]:
        return User.objects.select_related('team').filter(id=user_id).first()

    def get_users_by_team(self, team_name: str) -> List[User]:
        return list(User.objects.filter(team__name=team_name).order_by('id'))

    def get_active_users_by_team(self, team_name: str, for_update: bool = False) -> List[User]:
        users = User.objects.filter(team__name=team_name, is_active=True).order_by('id')
        if for_update:
            # Меняется только is_active, FK-вставки в pr_reviewers не должны ждать
            users = users.select_for_update(no_key=connection.features.has_select_for_no_key_update)
        return list(users)

    def is_user_in_other_team(self, user_id: str, team_name: str) -> bool:
        return User.objects.filter(id=user_id).exclude(team__name=team_name).exists()

    def create_user(self, team: Team, user_id: str, username: str, is_active: bool) -> User:
        return User.objects.create(id=user_id, username=username, team=team, is_active=is_active)

    def update_user_active(self, user_id: str, is_active: bool) -> int:
        return User.objects.filter(id=user_id).update(is_active=is_active)

    # Команды

    def team_exists(self, team_name: str) -> bool:
        return Team.objects.filter(name=team_name).exists()

    def get_team(self, team_name: str) -> Optional[Team]:
        return Team.objects.prefetch_related('members').filter(name=team_name).first()

    def create_team(self, team_name: str) -> Team:
        return Team.objects.create(name=team_name)

    # Pull Request'ы

    def pr_exists(self, pr_id: str) -> bool:
        return PullRequest.objects.filter(id=pr_id).exists()

    def get_pr(self, pr_id: str, for_update: bool = False) -> Optional[PullRequest]:
        prs = PullRequest.objects.filter(id=pr_id)
        if for_update:
            prs = prs.select_for_update()
        return prs.first()

    @transaction.atomic
    def create_pr(self, pr_id: str, pr_name: str, author: User, reviewer_ids: List[str]) -> PullRequest:
        # Строка PR и связи с ревьюверами пишутся атомарно
        pr = PullRequest.objects.create(id=pr_id, name=pr_name, author=author)
        self._insert_reviewers(pr.id, reviewer_ids)
        return pr

    def update_pr_status(self, pr_id: str, status: str) -> int:
        merged_at = timezone.now() if status == PullRequest.Status.MERGED else None
        return PullRequest.objects.filter(id=pr_id).update(status=status, merged_at=merged_at)

    @transaction.atomic
    def update_pr_reviewers(self, pr_id: str, reviewer_ids: List[str]):
        """
        Полностью заменяет набор ревьюверов PR, порядок списка задает слоты
        """
        ReviewerAssignment.objects.filter(pull_request_id=pr_id).delete()
        self._insert_reviewers(pr_id, reviewer_ids)

    def get_open_prs_with_reviewers(self, user_ids: Iterable[str],
                                    for_update: bool = False) -> List[PullRequest]:
        """
        Открытые PR, где хотя бы один ревьювер из user_ids
        """
        pr_ids = set(
            ReviewerAssignment.objects
            .filter(reviewer_id__in=list(user_ids), pull_request__status=PullRequest.Status.OPEN)
            .values_list('pull_request_id', flat=True)
        )
        prs = PullRequest.objects.filter(id__in=pr_ids).order_by('created_at', 'id')
        if for_update:
            prs = prs.select_for_update()
        return list(prs)

    def get_prs_by_reviewer(self, user_id: str) -> List[PullRequest]:
        return list(
            PullRequest.objects
            .filter(assignments__reviewer_id=user_id)
            .select_related('author')
            .order_by('-created_at', 'id')
        )

    @staticmethod
    def _insert_reviewers(pr_id: str, reviewer_ids: List[str]):
        ReviewerAssignment.objects.bulk_create([
            ReviewerAssignment(pull_request_id=pr_id, reviewer_id=reviewer_id, slot=slot)
            for slot, reviewer_id in enumerate(reviewer_ids)
        ])

    # Статистика

    def get_user_review_stats(self) -> List[dict]:
        return list(
            User.objects
            .annotate(
                team_name=models.F('team__name'),
                prs_reviewed=Count('review_assignments'),
                open_prs_reviewed=Count(
                    'review_assignments',
                    filter=models.Q(review_assignments__pull_request__status=PullRequest.Status.OPEN),
                ),
                merged_prs_reviewed=Count(
                    'review_assignments',
                    filter=models.Q(review_assignments__pull_request__status=PullRequest.Status.MERGED),
                ),
            )
            .values(
                'id', 'username', 'team_name', 'is_active',
                'prs_reviewed', 'open_prs_reviewed', 'merged_prs_reviewed',
            )
            .order_by('-prs_reviewed', 'id')
        )

    def get_pr_reviewer_stats(self) -> List[dict]:
        return list(
            PullRequest.objects
            .annotate(
                reviewers_count=Count('assignments'),
                team_name=models.F('author__team__name'),
            )
            .values(
                'id', 'name', 'author_id', 'status', 'team_name',
                'reviewers_count', 'created_at', 'merged_at',
            )
            .order_by('-reviewers_count', 'id')
        )

    def count_assignments(self) -> int:
        return ReviewerAssignment.objects.count()
