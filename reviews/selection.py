"""
Выбор кандидатов в ревьюверы.

Чистые функции без обращения к БД: на вход список активных участников
команды и множество исключенных ID, на выход кандидаты. Случайность
приходит снаружи через RandomSource, поэтому в тестах ее можно заменить
детерминированной последовательностью.
"""
from collections import deque
from typing import Iterable, Optional, Protocol, Sequence

MAX_REVIEWERS = 2


class RandomSource(Protocol):
    """Источник случайности. random.Random подходит без обертки"""

    def shuffle(self, x: list) -> None: ...

    def choice(self, seq: Sequence): ...


def eligible_candidates(active_member_ids: Iterable[str], excluded: Iterable[str]) -> list:
    """
    Активные участники за вычетом исключенных, порядок входа сохраняется
    """
    excluded = set(excluded)
    return [user_id for user_id in active_member_ids if user_id not in excluded]


def pick_initial_reviewers(candidates: Sequence[str], rng: RandomSource,
                           limit: int = MAX_REVIEWERS) -> list:
    """
    Равновероятно выбирает до limit ревьюверов для нового PR
    """
    shuffled = list(candidates)
    rng.shuffle(shuffled)
    return shuffled[:min(limit, len(shuffled))]


def pick_replacement(candidates: Sequence[str], rng: RandomSource) -> Optional[str]:
    """
    Случайный кандидат на замену или None, если заменить некем
    """
    if not candidates:
        return None
    return rng.choice(list(candidates))


def replace_in_slot(reviewer_ids: Sequence[str], old_id: str, new_id: str) -> list:
    return [new_id if reviewer_id == old_id else reviewer_id for reviewer_id in reviewer_ids]


class CandidatePool:
    """
    Пул замен для одного PR при массовой деактивации.

    Кандидаты выдаются строго с начала списка; выданный кандидат
    больше не попадает в этот же PR.
    """

    def __init__(self, candidates: Iterable[str]):
        self._candidates = deque(candidates)

    def __len__(self):
        return len(self._candidates)

    def __bool__(self):
        return bool(self._candidates)

    def pop(self) -> Optional[str]:
        if not self._candidates:
            return None
        return self._candidates.popleft()

    @classmethod
    def for_pull_request(cls, active_member_ids: Iterable[str], author_id: str,
                         current_reviewer_ids: Iterable[str],
                         deactivating_ids: Iterable[str]) -> 'CandidatePool':
        excluded = {author_id, *current_reviewer_ids, *deactivating_ids}
        return cls(eligible_candidates(active_member_ids, excluded))
