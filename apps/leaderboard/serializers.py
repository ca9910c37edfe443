from rest_framework import serializers

from .cache import PURPOSES
from .windows import Window


class LeaderboardEntrySerializer(serializers.Serializer):
    position = serializers.IntegerField(read_only=True)
    member_id = serializers.IntegerField(source="poster.member_id", read_only=True)
    display_name = serializers.CharField(source="poster.display_name", read_only=True)
    joined_at = serializers.DateTimeField(source="poster.joined_at", read_only=True)
    metric = serializers.IntegerField(source="poster.metric", read_only=True)


class RankSerializer(serializers.Serializer):
    member_id = serializers.IntegerField()
    window = serializers.CharField()
    rank = serializers.IntegerField(allow_null=True)


class TotalsSerializer(serializers.Serializer):
    total_members = serializers.IntegerField()
    total_posts = serializers.IntegerField()
    total_posters = serializers.IntegerField()
    total_channels = serializers.IntegerField()


class InvalidateSerializer(serializers.Serializer):
    purpose = serializers.ChoiceField(choices=[*PURPOSES, "all"])
    window = serializers.ChoiceField(
        choices=[w.value for w in Window],
        required=False,
        allow_null=True,
    )
