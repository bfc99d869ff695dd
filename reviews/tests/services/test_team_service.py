from django.db import DatabaseError
from django.test import TestCase

from reviews.exceptions import AlreadyExists, NotFound
from reviews.models import PullRequest, Team, User
from reviews.reporting import NO_REPLACEMENT_REASON, UserReplacement
from reviews.services import TeamService
from reviews.store import ReviewStore
from reviews.tests.utils import create_pr, create_team, is_active, reviewers_of


class TeamServiceTest(TestCase):
    def setUp(self):
        self.team_name = "backend"
        self.members_data = [
            {"user_id": "u1", "username": "Alice", "is_active": True},
            {"user_id": "u2", "username": "Bob", "is_active": True},
            {"user_id": "u3", "username": "Charlie", "is_active": False},
        ]

    def test_create_team_with_members_success(self):
        """Тест успешного создания команды с пользователями"""
        team = TeamService().create_team_with_members(self.team_name, self.members_data)

        self.assertEqual(team.name, self.team_name)
        self.assertEqual(team.members.count(), 3)

        user1 = User.objects.get(id="u1")
        self.assertEqual(user1.username, "Alice")
        self.assertTrue(user1.is_active)
        self.assertEqual(user1.team, team)
        self.assertFalse(User.objects.get(id="u3").is_active)

    def test_create_team_duplicate(self):
        """Тест создания дубликата команды"""
        TeamService().create_team_with_members(self.team_name, self.members_data)

        with self.assertRaises(AlreadyExists) as context:
            TeamService().create_team_with_members(self.team_name, [])

        self.assertEqual(context.exception.code, 'TEAM_EXISTS')
        self.assertEqual(str(context.exception), "team_name already exists")

    def test_create_team_duplicate_does_not_add_members(self):
        """Тест что в существующую команду нельзя добавить участников"""
        TeamService().create_team_with_members(self.team_name, self.members_data)

        with self.assertRaises(AlreadyExists):
            TeamService().create_team_with_members(
                self.team_name, [{"user_id": "u4", "username": "Dave", "is_active": True}]
            )

        self.assertFalse(User.objects.filter(id="u4").exists())

    def test_create_team_user_in_other_team(self):
        """Тест создания команды с пользователем из другой команды"""
        TeamService().create_team_with_members(self.team_name, self.members_data)

        with self.assertRaises(AlreadyExists) as context:
            TeamService().create_team_with_members("frontend", [
                {"user_id": "f1", "username": "Frank", "is_active": True},
                {"user_id": "u1", "username": "Alice", "is_active": True},
            ])

        self.assertEqual(context.exception.code, 'USER_IN_OTHER_TEAM')
        self.assertFalse(Team.objects.filter(name="frontend").exists())
        self.assertFalse(User.objects.filter(id="f1").exists())
        self.assertEqual(User.objects.get(id="u1").team.name, self.team_name)

    def test_create_team_empty_members(self):
        """Тест создания команды без пользователей"""
        team = TeamService().create_team_with_members("empty_team", [])

        self.assertEqual(team.name, "empty_team")
        self.assertEqual(team.members.count(), 0)

    def test_get_team_with_members_success(self):
        """Тест успешного получения команды с пользователями"""
        TeamService().create_team_with_members(self.team_name, self.members_data)

        team = TeamService().get_team_with_members(self.team_name)

        self.assertEqual(team.name, self.team_name)
        self.assertEqual(team.members.count(), 3)

    def test_get_team_with_members_not_found(self):
        """Тест получения несуществующей команды"""
        with self.assertRaises(NotFound):
            TeamService().get_team_with_members("nonexistent")


class BulkDeactivationTest(TestCase):
    def setUp(self):
        create_team("T", ["A", "B", "C", "D"])

    def test_replaces_reviewer_on_every_open_pr(self):
        """Тест замены деактивируемого ревьювера во всех открытых PR"""
        create_pr("pr1", "A", ["B", "C"])
        create_pr("pr2", "A", ["B", "D"])

        result = TeamService().bulk_deactivate_team_members("T", ["B"])

        self.assertEqual(result.team_name, "T")
        self.assertEqual(result.deactivated_users, ["B"])
        self.assertEqual(reviewers_of("pr1"), ["D", "C"])
        self.assertEqual(reviewers_of("pr2"), ["C", "D"])
        self.assertEqual(
            [(item.pull_request_id, item.replacements) for item in result.reassigned_prs],
            [("pr1", [UserReplacement("B", "D")]), ("pr2", [UserReplacement("B", "C")])],
        )
        self.assertEqual(result.failed_reassignments, [])
        self.assertFalse(is_active("B"))
        self.assertTrue(is_active("C"))
        self.assertTrue(is_active("D"))

    def test_slot_removed_when_no_candidate(self):
        """Тест удаления слота, когда заменить некем"""
        create_team("small", ["X", "Y"])
        create_pr("pr1", "X", ["Y"])

        result = TeamService().bulk_deactivate_team_members("small", ["Y"])

        self.assertEqual(reviewers_of("pr1"), [])
        self.assertFalse(is_active("Y"))
        self.assertEqual(len(result.reassigned_prs), 1)
        self.assertEqual(result.reassigned_prs[0].replacements, [])
        self.assertEqual(len(result.failed_reassignments), 1)
        failure = result.failed_reassignments[0]
        self.assertEqual(failure.pull_request_id, "pr1")
        self.assertEqual(failure.old_user_id, "Y")
        self.assertEqual(failure.reason, NO_REPLACEMENT_REASON)

    def test_candidate_not_reused_within_pr(self):
        """Тест что один кандидат не занимает два слота одного PR"""
        User.objects.create(id="E", username="E", team=Team.objects.get(name="T"))
        create_pr("pr1", "A", ["B", "C"])

        result = TeamService().bulk_deactivate_team_members("T", ["B", "C"])

        self.assertEqual(reviewers_of("pr1"), ["D", "E"])
        self.assertEqual(
            result.reassigned_prs[0].replacements,
            [UserReplacement("B", "D"), UserReplacement("C", "E")],
        )

    def test_partial_replacement_when_pool_runs_out(self):
        """Тест когда кандидатов хватает только на один слот"""
        create_pr("pr1", "A", ["B", "C"])

        result = TeamService().bulk_deactivate_team_members("T", ["B", "C"])

        self.assertEqual(reviewers_of("pr1"), ["D"])
        self.assertEqual(result.reassigned_prs[0].replacements, [UserReplacement("B", "D")])
        self.assertEqual(
            [(f.pull_request_id, f.old_user_id) for f in result.failed_reassignments],
            [("pr1", "C")],
        )

    def test_processing_follows_request_order(self):
        """Тест что слоты обрабатываются в порядке user_ids из запроса"""
        create_pr("pr1", "A", ["B", "C"])

        result = TeamService().bulk_deactivate_team_members("T", ["C", "B"])

        self.assertEqual(reviewers_of("pr1"), ["D"])
        self.assertEqual(result.reassigned_prs[0].replacements, [UserReplacement("C", "D")])
        self.assertEqual(result.failed_reassignments[0].old_user_id, "B")

    def test_same_standby_used_for_different_prs(self):
        """Тест что один кандидат может заменить ревьювера в разных PR"""
        create_pr("pr1", "A", ["B", "C"])
        create_pr("pr2", "A", ["B", "C"])

        TeamService().bulk_deactivate_team_members("T", ["B"])

        self.assertEqual(reviewers_of("pr1"), ["D", "C"])
        self.assertEqual(reviewers_of("pr2"), ["D", "C"])

    def test_deactivating_user_never_offered(self):
        """Тест что деактивируемый пользователь не становится заменой"""
        create_pr("pr1", "A", ["B"])

        result = TeamService().bulk_deactivate_team_members("T", ["B", "C", "D"])

        self.assertEqual(reviewers_of("pr1"), [])
        self.assertEqual(result.failed_reassignments[0].old_user_id, "B")

    def test_merged_prs_untouched(self):
        """Тест что мерженые PR не меняются"""
        create_pr("pr1", "A", ["B", "C"], status=PullRequest.Status.MERGED)

        result = TeamService().bulk_deactivate_team_members("T", ["B"])

        self.assertEqual(reviewers_of("pr1"), ["B", "C"])
        self.assertEqual(result.reassigned_prs, [])
        self.assertFalse(is_active("B"))

    def test_author_deactivation_keeps_pr(self):
        """Тест деактивации автора: его PR не трогаются"""
        create_pr("pr1", "B", ["C", "D"])

        result = TeamService().bulk_deactivate_team_members("T", ["B"])

        self.assertEqual(reviewers_of("pr1"), ["C", "D"])
        self.assertEqual(result.reassigned_prs, [])

    def test_duplicate_ids_collapsed(self):
        """Тест повторяющихся ID в запросе"""
        create_pr("pr1", "A", ["B", "C"])

        result = TeamService().bulk_deactivate_team_members("T", ["B", "B"])

        self.assertEqual(result.deactivated_users, ["B"])
        self.assertEqual(reviewers_of("pr1"), ["D", "C"])

    def test_empty_list_is_noop(self):
        create_pr("pr1", "A", ["B", "C"])

        result = TeamService().bulk_deactivate_team_members("T", [])

        self.assertEqual(result.deactivated_users, [])
        self.assertEqual(reviewers_of("pr1"), ["B", "C"])

    def test_team_not_found(self):
        """Тест несуществующей команды"""
        with self.assertRaises(NotFound):
            TeamService().bulk_deactivate_team_members("nonexistent", ["B"])

    def test_inactive_user_aborts_everything(self):
        """Тест что неактивный пользователь в списке отменяет всю операцию"""
        User.objects.filter(id="C").update(is_active=False)
        create_pr("pr1", "A", ["B", "D"])

        with self.assertRaises(NotFound) as context:
            TeamService().bulk_deactivate_team_members("T", ["B", "C"])

        self.assertIn("C", str(context.exception))
        self.assertTrue(is_active("B"))
        self.assertEqual(reviewers_of("pr1"), ["B", "D"])

    def test_user_from_other_team_aborts_everything(self):
        """Тест пользователя из чужой команды"""
        create_team("other", ["Z"])
        create_pr("pr1", "A", ["B", "C"])

        with self.assertRaises(NotFound):
            TeamService().bulk_deactivate_team_members("T", ["B", "Z"])

        self.assertTrue(is_active("B"))
        self.assertTrue(is_active("Z"))
        self.assertEqual(reviewers_of("pr1"), ["B", "C"])

    def test_retry_after_success_is_rejected(self):
        """Тест повторного вызова: пользователь уже неактивен"""
        TeamService().bulk_deactivate_team_members("T", ["B"])

        with self.assertRaises(NotFound):
            TeamService().bulk_deactivate_team_members("T", ["B"])


class FailingUserUpdateStore(ReviewStore):
    def update_user_active(self, user_id, is_active):
        raise DatabaseError("connection lost")


class FailingSecondPRUpdateStore(ReviewStore):
    def __init__(self):
        self.pr_updates = 0

    def update_pr_reviewers(self, pr_id, reviewer_ids):
        self.pr_updates += 1
        if self.pr_updates == 2:
            raise DatabaseError("write failed")
        super().update_pr_reviewers(pr_id, reviewer_ids)


class BulkDeactivationAtomicityTest(TestCase):
    """
    Любая ошибка внутри операции откатывает ее целиком
    """

    def setUp(self):
        create_team("T", ["A", "B", "C", "D"])
        create_pr("pr1", "A", ["B", "C"])
        create_pr("pr2", "A", ["B", "D"])

    def assert_state_unchanged(self):
        self.assertTrue(is_active("B"))
        self.assertEqual(reviewers_of("pr1"), ["B", "C"])
        self.assertEqual(reviewers_of("pr2"), ["B", "D"])

    def test_failure_on_deactivation_rolls_back_pr_updates(self):
        with self.assertRaises(DatabaseError):
            TeamService(store=FailingUserUpdateStore()).bulk_deactivate_team_members("T", ["B"])

        self.assert_state_unchanged()

    def test_failure_mid_cascade_rolls_back_earlier_prs(self):
        store = FailingSecondPRUpdateStore()

        with self.assertRaises(DatabaseError):
            TeamService(store=store).bulk_deactivate_team_members("T", ["B"])

        self.assertEqual(store.pr_updates, 2)
        self.assert_state_unchanged()
