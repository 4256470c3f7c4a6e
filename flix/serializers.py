"""DRF serializers for the flix API."""
from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework import serializers

from . import models, services

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    """Expose public information about a user."""

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "name",
            "role",
            "email_verified",
            "is_two_factor_enabled",
            "is_blocked",
            "oauth_provider",
            "created_at",
        ]
        read_only_fields = fields


class RegisterSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=6)
    confirm = serializers.CharField(write_only=True, min_length=6)
    name = serializers.CharField(max_length=150)

    def validate(self, attrs):
        if attrs["password"] != attrs["confirm"]:
            raise serializers.ValidationError({"confirm": "Passwords don't match!"})
        return attrs

    def create(self, validated_data):
        try:
            return services.AuthService().register(
                validated_data["email"], validated_data["password"], validated_data["name"]
            )
        except ValueError as exc:
            raise serializers.ValidationError({"error": str(exc)}) from exc


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)
    code = serializers.CharField(required=False, allow_blank=True)


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField()


class TokenSerializer(serializers.Serializer):
    token = serializers.CharField()


class ResetSerializer(serializers.Serializer):
    email = serializers.EmailField(error_messages={"invalid": "Invalid email!", "required": "Invalid email!"})


class NewPasswordSerializer(serializers.Serializer):
    token = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    password = serializers.CharField(write_only=True, allow_blank=True)


class SettingsSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, max_length=150)
    is_two_factor_enabled = serializers.BooleanField(required=False, allow_null=True)
    role = serializers.ChoiceField(choices=models.User.Role.choices, required=False)
    email = serializers.EmailField(required=False)
    password = serializers.CharField(required=False, write_only=True, min_length=6)
    new_password = serializers.CharField(required=False, write_only=True, min_length=6)

    def validate(self, attrs):
        if attrs.get("password") and not attrs.get("new_password"):
            raise serializers.ValidationError({"new_password": "New password is required!"})
        if attrs.get("new_password") and not attrs.get("password"):
            raise serializers.ValidationError({"password": "Password is required!"})
        return attrs


class OAuthCallbackSerializer(serializers.Serializer):
    code = serializers.CharField()
    state = serializers.CharField()


class ProfileImageSerializer(serializers.ModelSerializer):
    class Meta:
        model = models.ProfileImage
        fields = ["id", "url"]
        read_only_fields = fields


class ProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = models.Profile
        fields = ["id", "name", "image", "in_use", "created_at"]
        read_only_fields = ["id", "in_use", "created_at"]

    def create(self, validated_data):
        user = self.context["request"].user
        return services.ProfileService(user).create(validated_data["name"], validated_data.get("image", ""))


class ActorSerializer(serializers.ModelSerializer):
    class Meta:
        model = models.Actor
        fields = ["id", "name"]
        extra_kwargs = {"name": {"validators": []}}

    def create(self, validated_data):
        try:
            return services.CatalogService.create_actor(validated_data["name"])
        except ValueError as exc:
            raise serializers.ValidationError({"error": str(exc)}) from exc


class ActorOverviewSerializer(serializers.ModelSerializer):
    movie_count = serializers.IntegerField(read_only=True)
    series_count = serializers.IntegerField(read_only=True)
    views = serializers.IntegerField(read_only=True)

    class Meta:
        model = models.Actor
        fields = ["id", "name", "movie_count", "series_count", "views"]
        read_only_fields = fields


class TitleSerializer(serializers.ModelSerializer):
    """A catalog title decorated with the viewer's stored playback position.

    The view passes ``watch_times`` (movie id -> seconds) in the context.
    """

    actors = serializers.SerializerMethodField()
    actor = serializers.SerializerMethodField()
    watch_time = serializers.SerializerMethodField()

    class Meta:
        model = models.Movie
        fields = [
            "id",
            "title",
            "description",
            "video_url",
            "thumbnail_url",
            "type",
            "genre",
            "duration",
            "created_at",
            "actors",
            "actor",
            "watch_time",
        ]
        read_only_fields = fields

    def get_actors(self, obj: models.Movie) -> list[str]:
        return obj.actor_names

    def get_actor(self, obj: models.Movie) -> str:
        return ", ".join(obj.actor_names)

    def get_watch_time(self, obj: models.Movie) -> float | None:
        return self.context.get("watch_times", {}).get(obj.pk)


class TitleDetailSerializer(TitleSerializer):
    actors = ActorSerializer(many=True, read_only=True)
    actor_ids = serializers.SerializerMethodField()

    class Meta(TitleSerializer.Meta):
        fields = TitleSerializer.Meta.fields + ["actor_ids"]
        read_only_fields = fields

    def get_actor_ids(self, obj: models.Movie) -> list[int]:
        return [actor.pk for actor in obj.actors.all()]


class TitleAdminSerializer(TitleSerializer):
    views = serializers.IntegerField(source="views_total", read_only=True)

    class Meta(TitleSerializer.Meta):
        fields = TitleSerializer.Meta.fields + ["views"]
        read_only_fields = fields


class ActorNamesField(serializers.Field):
    """Accept actor names as a list or as a comma separated string."""

    default_error_messages = {"invalid": "Expected a list of names or a comma separated string."}

    def to_internal_value(self, data):
        if isinstance(data, str):
            names = data.split(",")
        elif isinstance(data, (list, tuple)):
            names = data
        else:
            self.fail("invalid")
        return [str(name).strip() for name in names if str(name).strip()]

    def to_representation(self, value):
        return [actor.name for actor in value.all()]


class TitleWriteSerializer(serializers.ModelSerializer):
    actors = ActorNamesField(required=False)

    class Meta:
        model = models.Movie
        fields = ["title", "description", "video_url", "thumbnail_url", "genre", "duration", "actors"]
        extra_kwargs = {
            "description": {"required": False, "allow_blank": True},
            "thumbnail_url": {"required": False, "allow_blank": True},
            "genre": {"required": False, "allow_blank": True},
            "duration": {"required": False, "allow_blank": True},
        }

    def _catalog(self) -> services.CatalogService:
        return services.CatalogService(self.context.get("title_type"))

    def create(self, validated_data):
        return self._catalog().create_title(validated_data)

    def update(self, instance, validated_data):
        return self._catalog().update_title(instance, validated_data)

    def to_representation(self, instance):
        return TitleDetailSerializer(instance, context=self.context).data


class MovieReferenceSerializer(serializers.Serializer):
    movie_id = serializers.PrimaryKeyRelatedField(source="movie", queryset=models.Movie.objects.all())


class WatchTimeSerializer(MovieReferenceSerializer):
    watch_time = serializers.FloatField(min_value=0)


class PlaylistSerializer(serializers.ModelSerializer):
    movies = serializers.SerializerMethodField()

    class Meta:
        model = models.Playlist
        fields = ["id", "title", "created_at", "movies"]
        read_only_fields = ["id", "created_at", "movies"]

    def get_movies(self, obj: models.Playlist) -> list[dict]:
        entries = sorted(obj.entries.all(), key=lambda entry: entry.order)
        return TitleSerializer([entry.movie for entry in entries], many=True, context=self.context).data

    def create(self, validated_data):
        request = self.context["request"]
        service = services.PlaylistService(request.user, self.context["profile"])
        return service.create(validated_data["title"])


class PlaylistUpdateSerializer(serializers.Serializer):
    title = serializers.CharField(required=False, allow_blank=True, max_length=100)
    movies_to_remove = serializers.ListField(child=serializers.IntegerField(), required=False)
    movies_to_update = serializers.ListField(child=serializers.IntegerField(), required=False)

    def update(self, instance: models.Playlist, validated_data):
        request = self.context["request"]
        return services.PlaylistService(request.user, self.context["profile"]).update(
            instance,
            title=validated_data.get("title"),
            movies_to_remove=validated_data.get("movies_to_remove", []),
            movies_to_update=validated_data.get("movies_to_update", []),
        )

    def to_representation(self, instance):
        return PlaylistSerializer(instance, context=self.context).data


class AdminUserSerializer(UserSerializer):
    profiles = ProfileSerializer(many=True, read_only=True)

    class Meta(UserSerializer.Meta):
        fields = UserSerializer.Meta.fields + ["profiles"]
        read_only_fields = fields


class BlockUserSerializer(serializers.Serializer):
    user_id = serializers.PrimaryKeyRelatedField(source="user", queryset=User.objects.all())
    block = serializers.BooleanField()


class ChunkUploadSerializer(serializers.Serializer):
    chunk = serializers.FileField()
    chunk_index = serializers.IntegerField(min_value=0)
    total_chunks = serializers.IntegerField(min_value=1)
    file_name = serializers.CharField()
    file_id = serializers.CharField()
    video_type = serializers.ChoiceField(choices=models.Movie.Type.choices, default=models.Movie.Type.MOVIE)
    generated_id = serializers.CharField(required=False, allow_blank=True)


class VideoUploadSerializer(serializers.Serializer):
    video = serializers.FileField()
    video_type = serializers.ChoiceField(choices=models.Movie.Type.choices, default=models.Movie.Type.MOVIE)
