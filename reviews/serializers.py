from rest_framework import serializers
from .models import Team, User, PullRequest


class TeamMemberSerializer(serializers.ModelSerializer):
    user_id = serializers.CharField(source='id')
    username = serializers.CharField()
    is_active = serializers.BooleanField()

    class Meta:
        model = User
        fields = ['user_id', 'username', 'is_active']


class TeamSerializer(serializers.ModelSerializer):
    team_name = serializers.CharField(source='name')
    members = serializers.SerializerMethodField()

    class Meta:
        model = Team
        fields = ['team_name', 'members']

    @staticmethod
    def get_members(obj):
        members = sorted(obj.members.all(), key=lambda user: user.id)
        return TeamMemberSerializer(members, many=True).data


class UserSerializer(serializers.ModelSerializer):
    user_id = serializers.CharField(source='id')
    username = serializers.CharField()
    team_name = serializers.CharField(source='team.name')
    is_active = serializers.BooleanField()

    class Meta:
        model = User
        fields = ['user_id', 'username', 'team_name', 'is_active']


class PullRequestSerializer(serializers.ModelSerializer):
    pull_request_id = serializers.CharField(source='id')
    pull_request_name = serializers.CharField(source='name')
    author_id = serializers.CharField()
    status = serializers.CharField()
    assigned_reviewers = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', format='%Y-%m-%dT%H:%M:%SZ')
    mergedAt = serializers.DateTimeField(source='merged_at', format='%Y-%m-%dT%H:%M:%SZ', allow_null=True)

    class Meta:
        model = PullRequest
        fields = [
            'pull_request_id', 'pull_request_name', 'author_id',
            'status', 'assigned_reviewers', 'createdAt', 'mergedAt'
        ]

    @staticmethod
    def get_assigned_reviewers(obj):
        return obj.reviewer_ids()


class PullRequestShortSerializer(serializers.ModelSerializer):
    pull_request_id = serializers.CharField(source='id')
    pull_request_name = serializers.CharField(source='name')
    author_id = serializers.CharField()
    status = serializers.CharField()

    class Meta:
        model = PullRequest
        fields = ['pull_request_id', 'pull_request_name', 'author_id', 'status']


class ReassignmentSerializer(serializers.Serializer):
    pr = PullRequestSerializer()
    replaced_by = serializers.CharField(source='replaced_by.id')


class UserReplacementSerializer(serializers.Serializer):
    old_user_id = serializers.CharField()
    new_user_id = serializers.CharField()


class ReassignedPullRequestSerializer(serializers.Serializer):
    pull_request_id = serializers.CharField()
    replacements = UserReplacementSerializer(many=True)


class FailedReassignmentSerializer(serializers.Serializer):
    pull_request_id = serializers.CharField()
    old_user_id = serializers.CharField()
    reason = serializers.CharField()


class BulkDeactivationSerializer(serializers.Serializer):
    team_name = serializers.CharField()
    deactivated_users = serializers.ListField(child=serializers.CharField())
    reassigned_prs = ReassignedPullRequestSerializer(many=True)
    failed_reassignments = FailedReassignmentSerializer(many=True)


class UserReviewStatsSerializer(serializers.Serializer):
    id = serializers.CharField()
    username = serializers.CharField()
    team_name = serializers.CharField()
    is_active = serializers.BooleanField()
    prs_reviewed = serializers.IntegerField()
    open_prs_reviewed = serializers.IntegerField()
    merged_prs_reviewed = serializers.IntegerField()


class PRReviewerStatsSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()
    author_id = serializers.CharField()
    status = serializers.CharField()
    team_name = serializers.CharField(allow_null=True)
    reviewers_count = serializers.IntegerField()
    created_at = serializers.DateTimeField()
    merged_at = serializers.DateTimeField(allow_null=True)


class StatsSummarySerializer(serializers.Serializer):
    total_users = serializers.IntegerField()
    total_prs = serializers.IntegerField()
    total_assignments = serializers.IntegerField()
    avg_reviewers_per_pr = serializers.FloatField()
    most_active_user = serializers.CharField(allow_null=True)
    most_reviewed_pr = serializers.CharField(allow_null=True)


class StatsSerializer(serializers.Serializer):
    user_review_stats = UserReviewStatsSerializer(many=True)
    pr_reviewer_stats = PRReviewerStatsSerializer(many=True)
    summary = StatsSummarySerializer()
