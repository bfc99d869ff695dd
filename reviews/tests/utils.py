"""Вспомогательные функции и детерминированный источник случайности для тестов."""

from typing import Iterable, Sequence

from reviews.models import PullRequest, Team, User
from reviews.store import ReviewStore


class ScriptedRandom:
    """
    Предсказуемая замена random.Random.

    shuffle оставляет порядок как есть (или разворачивает при reverse=True),
    choice берет элементы по заранее заданным индексам, по умолчанию первый.
    """

    def __init__(self, choices: Iterable[int] = (), reverse: bool = False):
        self.choices = list(choices)
        self.reverse = reverse
        self.shuffled = []
        self.offered = []

    def shuffle(self, x: list) -> None:
        self.shuffled.append(list(x))
        if self.reverse:
            x.reverse()

    def choice(self, seq: Sequence):
        self.offered.append(list(seq))
        index = self.choices.pop(0) if self.choices else 0
        return seq[index]


def create_team(name: str, member_ids: Iterable[str], inactive: Iterable[str] = ()) -> Team:
    inactive = set(inactive)
    team = Team.objects.create(name=name)
    for user_id in member_ids:
        User.objects.create(
            id=user_id,
            username=f"User {user_id}",
            team=team,
            is_active=user_id not in inactive,
        )
    return team


def create_pr(pr_id: str, author_id: str, reviewer_ids: Iterable[str] = (),
              status: str = PullRequest.Status.OPEN) -> PullRequest:
    pr = PullRequest.objects.create(id=pr_id, name=f"PR {pr_id}", author_id=author_id, status=status)
    ReviewStore().update_pr_reviewers(pr_id, list(reviewer_ids))
    return pr


def reviewers_of(pr_id: str) -> list:
    return PullRequest.objects.get(id=pr_id).reviewer_ids()


def is_active(user_id: str) -> bool:
    return User.objects.get(id=user_id).is_active
