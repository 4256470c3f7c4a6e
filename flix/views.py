"""View layer of the flix API."""
from __future__ import annotations
import logging
import secrets
from typing import Any
from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import QuerySet
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.urls import reverse
from django.views.decorators.http import require_GET
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from . import models, permissions as custom_permissions, serializers, services
from .backend_log import clear_logs, log_backend_action, read_backend_log
from .media import ChunkedUpload, cleanup_temp_folders, store_upload, stream_file

logger = logging.getLogger(__name__)

User = get_user_model()


def active_profile_or_404(user) -> models.Profile:
    profile = user.active_profile
    if profile is None:
        raise NotFound("No active profile!")
    return profile


def service_error(exc: ValueError) -> ValidationError:
    return ValidationError({"error": str(exc)})


def parse_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class AccountViewSet(viewsets.GenericViewSet):
    """Registration, sign-in and account settings."""

    serializer_class = serializers.UserSerializer
    permission_classes = [permissions.AllowAny]

    def get_permissions(self):
        if self.action in {"logout", "me", "account_settings"}:
            return [permissions.IsAuthenticated()]
        return super().get_permissions()

    def get_serializer_class(self):
        return {
            "register": serializers.RegisterSerializer,
            "login": serializers.LoginSerializer,
            "logout": serializers.LogoutSerializer,
            "new_verification": serializers.TokenSerializer,
            "reset": serializers.ResetSerializer,
            "new_password": serializers.NewPasswordSerializer,
            "account_settings": serializers.SettingsSerializer,
        }.get(self.action, super().get_serializer_class())

    @action(detail=False, methods=["post"])
    def register(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response({"success": "Confirmation email sent!"}, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"])
    def login(self, request):
        serializer = self.get_serializer(data=request.data)
        if not serializer.is_valid():
            return Response({"error": "Invalid fields!"}, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        try:
            result = services.AuthService().login(data["email"], data["password"], data.get("code") or None)
        except ValueError as exc:
            raise service_error(exc) from exc

        if result.two_factor:
            return Response({"two_factor": True})
        if not result.signed_in:
            return Response({"success": result.message})
        payload = {"success": result.message, "user": serializers.UserSerializer(result.user).data}
        payload.update(result.tokens)
        return Response(payload)

    @action(detail=False, methods=["post"])
    def logout(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            services.AuthService().logout(serializer.validated_data["refresh"])
        except TokenError as exc:
            raise ValidationError({"error": "Invalid token!"}) from exc
        return Response(status=status.HTTP_205_RESET_CONTENT)

    @action(detail=False, methods=["post"], url_path="new-verification")
    def new_verification(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            services.AuthService().verify_email(serializer.validated_data["token"])
        except ValueError as exc:
            raise service_error(exc) from exc
        return Response({"success": "Email verified!"})

    @action(detail=False, methods=["post"])
    def reset(self, request):
        serializer = self.get_serializer(data=request.data)
        if not serializer.is_valid():
            return Response({"error": "Invalid email!"}, status=status.HTTP_400_BAD_REQUEST)
        try:
            services.AuthService().request_password_reset(serializer.validated_data["email"])
        except ValueError as exc:
            raise service_error(exc) from exc
        return Response({"success": "Reset email sent!"})

    @action(detail=False, methods=["post"], url_path="new-password")
    def new_password(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            services.AuthService().set_new_password(data.get("token"), data["password"])
        except ValueError as exc:
            raise service_error(exc) from exc
        return Response({"success": "New password set!"})

    @action(detail=False, methods=["get"])
    def me(self, request):
        return Response(serializers.UserSerializer(request.user).data)

    @action(detail=False, methods=["patch", "post"], url_path="settings")
    def account_settings(self, request):
        serializer = self.get_serializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        try:
            message = services.AuthService().update_settings(request.user, serializer.validated_data)
        except ValueError as exc:
            raise service_error(exc) from exc
        return Response({"success": message, "user": serializers.UserSerializer(request.user).data})


class OAuthAuthorizeView(APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request, provider: str):
        try:
            gateway = services.OAuthGateway(provider)
        except ValueError as exc:
            raise NotFound(str(exc)) from exc
        state = secrets.token_urlsafe(16)
        request.session[f"oauth_state_{provider}"] = state
        redirect_uri = request.build_absolute_uri(reverse("flix:oauth-callback", kwargs={"provider": provider}))
        return Response({"url": gateway.authorize_url(redirect_uri, state), "state": state})


class OAuthCallbackView(APIView):
    """Exchange the provider's authorization code for a JWT pair."""

    permission_classes = [permissions.AllowAny]

    def get(self, request, provider: str):
        return self.handle_callback(request, provider, request.query_params)

    def post(self, request, provider: str):
        return self.handle_callback(request, provider, request.data)

    def handle_callback(self, request, provider: str, params):
        serializer = serializers.OAuthCallbackSerializer(data=params)
        serializer.is_valid(raise_exception=True)
        expected_state = request.session.pop(f"oauth_state_{provider}", None)
        if not expected_state or expected_state != serializer.validated_data["state"]:
            raise ValidationError({"error": "Invalid state!"})

        try:
            gateway = services.OAuthGateway(provider)
        except ValueError as exc:
            raise NotFound(str(exc)) from exc
        redirect_uri = request.build_absolute_uri(reverse("flix:oauth-callback", kwargs={"provider": provider}))
        profile = gateway.fetch_profile(serializer.validated_data["code"], redirect_uri)
        if not profile.success:
            log_backend_action("oauth_failed", {"provider": provider, "message": profile.message}, "error")
            raise ValidationError({"error": profile.message})

        try:
            result = services.AuthService().oauth_sign_in(provider, profile.email, profile.name)
        except ValueError as exc:
            raise service_error(exc) from exc
        payload = {"success": result.message, "user": serializers.UserSerializer(result.user).data}
        payload.update(result.tokens)
        return Response(payload)


class AdminCheckView(APIView):
    """Answer 200 for admins and 403 for everyone else."""

    def get(self, request):
        if request.user.is_admin:
            log_backend_action("admin_allowed", {"userId": request.user.pk}, "info")
            return Response({"success": "Allowed"})
        log_backend_action("admin_forbidden", {"userId": request.user.pk}, "warning")
        return Response({"error": "Forbidden"}, status=status.HTTP_403_FORBIDDEN)


class ProfileViewSet(viewsets.ModelViewSet):
    serializer_class = serializers.ProfileSerializer
    permission_classes = [permissions.IsAuthenticated, custom_permissions.IsOwner]
    http_method_names = ["get", "post", "put", "patch", "delete"]

    def get_queryset(self) -> QuerySet[models.Profile]:
        return self.request.user.profiles.order_by("created_at", "pk")

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        profile = serializer.save()
        return Response(
            {"success": "Profil created!", "profile": self.get_serializer(profile).data},
            status=status.HTTP_201_CREATED,
        )

    def perform_destroy(self, instance: models.Profile) -> None:
        log_backend_action("profil_removed", {"userId": self.request.user.pk, "profilId": instance.pk}, "info")
        instance.delete()

    @action(detail=True, methods=["post"])
    def use(self, request, pk=None):
        profile = self.get_object()
        try:
            services.ProfileService(request.user).use(profile)
        except ValueError as exc:
            raise service_error(exc) from exc
        return Response(self.get_serializer(profile).data)

    @action(detail=False, methods=["get"])
    def current(self, request):
        return Response(self.get_serializer(active_profile_or_404(request.user)).data)


class ProfileImageViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = models.ProfileImage.objects.all()
    serializer_class = serializers.ProfileImageSerializer
    pagination_class = None


class TitleViewSet(viewsets.ModelViewSet):
    """Catalog titles of one type.

    Reads need an active profile so titles can carry the stored playback
    position; writes are reserved to admins.
    """

    title_type = models.Movie.Type.MOVIE
    permission_classes = [custom_permissions.IsAdminOrReadOnly]
    http_method_names = ["get", "post", "put", "patch", "delete"]
    filterset_fields = ["genre"]
    search_fields = ["title", "description", "actors__name"]
    ordering_fields = ["created_at", "title"]

    def get_catalog(self) -> services.CatalogService:
        return services.CatalogService(self.title_type)

    def get_queryset(self) -> QuerySet[models.Movie]:
        return self.get_catalog().queryset()

    def get_serializer_class(self):
        if self.action in {"create", "update", "partial_update"}:
            return serializers.TitleWriteSerializer
        if self.action == "retrieve":
            return serializers.TitleDetailSerializer
        if self.action == "all_titles":
            return serializers.TitleAdminSerializer
        return serializers.TitleSerializer

    def get_serializer_context(self) -> dict[str, Any]:
        context = super().get_serializer_context()
        context["title_type"] = self.title_type
        user = self.request.user
        profile = user.active_profile if user.is_authenticated else None
        if profile is not None:
            context["watch_times"] = services.watch_time_map(user, profile)
        return context

    def titles_response(self, titles) -> Response:
        active_profile_or_404(self.request.user)
        return Response(self.get_serializer(titles, many=True).data)

    def list(self, request, *args, **kwargs):
        return self.titles_response(self.get_catalog().latest())

    def retrieve(self, request, *args, **kwargs):
        active_profile_or_404(request.user)
        return super().retrieve(request, *args, **kwargs)

    def perform_destroy(self, instance: models.Movie) -> None:
        self.get_catalog().delete_title(instance)

    @action(detail=False, methods=["get"])
    def new(self, request):
        return self.titles_response(self.get_catalog().newest())

    @action(detail=False, methods=["get"])
    def random(self, request):
        count = parse_int(request.query_params.get("count"), settings.RANDOM_TITLES_MAX)
        return self.titles_response(self.get_catalog().random_titles(count))

    @action(detail=False, methods=["get"], url_path="by-actor")
    def by_actor(self, request):
        name = request.query_params.get("name", "")
        if not name:
            raise ValidationError({"error": "Missing actor name"})
        return self.titles_response(self.get_catalog().by_actor(name))

    @action(detail=False, methods=["get"])
    def actors(self, request):
        start = parse_int(request.query_params.get("start"), 0)
        limit = parse_int(request.query_params.get("limit"), 5)
        return Response(self.get_catalog().actor_names(start, limit))

    @action(detail=False, methods=["get"], url_path="actors-count")
    def actors_count(self, request):
        return Response({"count": self.get_catalog().actor_count()})

    @action(detail=False, methods=["get"], url_path="all", permission_classes=[custom_permissions.IsAdminRole])
    def all_titles(self, request):
        queryset = self.filter_queryset(self.get_catalog().with_view_counts())
        return Response(self.get_serializer(queryset, many=True).data)

    @action(detail=True, methods=["get"])
    def views(self, request, pk=None):
        movie = self.get_object()
        return Response({"views": movie.views_count})


class MovieViewSet(TitleViewSet):
    title_type = models.Movie.Type.MOVIE


class SeriesViewSet(TitleViewSet):
    title_type = models.Movie.Type.SERIE


class RandomTitleView(APIView):
    """A random title of any type for the billboard."""

    def get(self, request):
        movie = services.CatalogService().random_title()
        if movie is None:
            return Response(None)
        return Response(serializers.TitleSerializer(movie).data)


class SearchView(APIView):
    def get(self, request):
        profile = active_profile_or_404(request.user)
        term = request.query_params.get("q", "").strip()
        if not term:
            return Response([])
        watch_times = services.watch_time_map(request.user, profile)
        titles = services.CatalogService().search(term)
        return Response(serializers.TitleSerializer(titles, many=True, context={"watch_times": watch_times}).data)


class LibraryViewSet(viewsets.GenericViewSet):
    """Shared plumbing for the per-profile collections."""

    serializer_class = serializers.MovieReferenceSerializer
    lookup_value_regex = r"\d+"

    def get_library(self) -> services.LibraryService:
        return services.LibraryService(self.request.user, active_profile_or_404(self.request.user))

    def get_movie(self) -> models.Movie:
        serializer = self.get_serializer(data=self.request.data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data["movie"]

    def titles_response(self, library: services.LibraryService, titles) -> Response:
        context = {"watch_times": library.watch_time_map()}
        return Response(serializers.TitleSerializer(titles, many=True, context=context).data)


class FavoriteViewSet(LibraryViewSet):
    def list(self, request):
        library = self.get_library()
        return self.titles_response(library, library.favorites())

    def create(self, request):
        library = self.get_library()
        return Response({"favorites": library.add_favorite(self.get_movie())}, status=status.HTTP_201_CREATED)

    def destroy(self, request, pk=None):
        library = self.get_library()
        movie = get_object_or_404(models.Movie, pk=pk)
        return Response({"favorites": library.remove_favorite(movie)})


class WatchlistViewSet(LibraryViewSet):
    def list(self, request):
        if request.user.active_profile is None:
            return Response([])
        library = self.get_library()
        return self.titles_response(library, library.watchlist())

    def create(self, request):
        library = self.get_library()
        return Response(library.add_to_watchlist(self.get_movie()))

    def destroy(self, request, pk=None):
        library = self.get_library()
        movie = get_object_or_404(models.Movie, pk=pk)
        library.remove_from_watchlist(movie)
        return Response(status=status.HTTP_204_NO_CONTENT)


class WatchTimeView(APIView):
    def post(self, request):
        library = services.LibraryService(request.user, active_profile_or_404(request.user))
        serializer = serializers.WatchTimeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        watch_time = library.update_watch_time(
            serializer.validated_data["movie"], serializer.validated_data["watch_time"]
        )
        return Response({"success": True, "watch_time": watch_time.time})


class MovieViewCreateView(APIView):
    def post(self, request):
        library = services.LibraryService(request.user, active_profile_or_404(request.user))
        serializer = serializers.MovieReferenceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        created = library.add_movie_view(serializer.validated_data["movie"])
        return Response({"success": True, "created": created})


class PlaylistViewSet(viewsets.ModelViewSet):
    permission_classes = [permissions.IsAuthenticated, custom_permissions.IsOwner]
    http_method_names = ["get", "post", "put", "patch", "delete"]

    def get_profile(self) -> models.Profile:
        return active_profile_or_404(self.request.user)

    def get_queryset(self) -> QuerySet[models.Playlist]:
        return services.PlaylistService(self.request.user, self.get_profile()).playlists()

    def get_serializer_class(self):
        if self.action in {"update", "partial_update"}:
            return serializers.PlaylistUpdateSerializer
        if self.action in {"add_entry", "remove_entry"}:
            return serializers.MovieReferenceSerializer
        return serializers.PlaylistSerializer

    def get_serializer_context(self) -> dict[str, Any]:
        context = super().get_serializer_context()
        profile = self.get_profile()
        context["profile"] = profile
        context["watch_times"] = services.watch_time_map(self.request.user, profile)
        return context

    def perform_destroy(self, instance: models.Playlist) -> None:
        log_backend_action("playlist_removed", {"playlistId": instance.pk}, "info")
        instance.delete()

    @action(detail=True, methods=["post"], url_path="add-entry")
    def add_entry(self, request, pk=None):
        playlist = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        service = services.PlaylistService(request.user, self.get_profile())
        entry = service.add_entry(playlist, serializer.validated_data["movie"])
        return Response({"success": True, "order": entry.order}, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="remove-entry")
    def remove_entry(self, request, pk=None):
        playlist = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        service = services.PlaylistService(request.user, self.get_profile())
        removed = service.remove_entry(playlist, serializer.validated_data["movie"])
        return Response({"success": True, "removed": removed})


class AdminUserViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    queryset = User.objects.prefetch_related("profiles").order_by("-created_at")
    serializer_class = serializers.AdminUserSerializer
    permission_classes = [custom_permissions.IsAdminRole]
    filterset_fields = ["role", "is_blocked"]
    search_fields = ["email", "name"]

    @action(detail=False, methods=["post"], serializer_class=serializers.BlockUserSerializer)
    def block(self, request):
        serializer = self.get_serializer(data=request.data)
        if not serializer.is_valid():
            return Response({"error": "Invalid fields!"}, status=status.HTTP_400_BAD_REQUEST)
        user = serializer.validated_data["user"]
        blocked = serializer.validated_data["block"]
        user.block(blocked)
        log_backend_action("user_blocked" if blocked else "user_unblocked", {"userId": user.pk}, "info")
        return Response(serializers.AdminUserSerializer(user).data)


class ActorAdminViewSet(mixins.ListModelMixin, mixins.CreateModelMixin, mixins.DestroyModelMixin, viewsets.GenericViewSet):
    permission_classes = [custom_permissions.IsAdminRole]
    search_fields = ["name"]

    def get_queryset(self) -> QuerySet[models.Actor]:
        return services.CatalogService.actor_overview()

    def get_serializer_class(self):
        if self.action == "list":
            return serializers.ActorOverviewSerializer
        return serializers.ActorSerializer

    def perform_destroy(self, instance: models.Actor) -> None:
        try:
            services.CatalogService.delete_actor(instance)
        except ValueError as exc:
            raise service_error(exc) from exc


class AdminLogsView(APIView):
    permission_classes = [custom_permissions.IsAdminRole]

    def get(self, request):
        try:
            entries = read_backend_log()
        except OSError:
            logger.exception("Could not read the backend log")
            return Response({"error": "Could not read log file."}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response(entries)

    def delete(self, request):
        try:
            removed = clear_logs()
        except OSError:
            logger.exception("Could not clear the logs directory")
            return Response({"error": "Could not clear logs."}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response({"success": True, "removed": removed})


class StatisticsView(APIView):
    permission_classes = [custom_permissions.IsAdminRole]

    def get(self, request):
        return Response(services.StatisticsService.admin_overview())


class ChunkUploadView(APIView):
    permission_classes = [custom_permissions.IsAdminRole]
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request):
        serializer = serializers.ChunkUploadSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({"error": "Missing parameters"}, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        try:
            upload = ChunkedUpload(
                data["file_id"],
                data["file_name"],
                data["total_chunks"],
                data["video_type"],
                data.get("generated_id") or None,
            )
            result = upload.save_chunk(data["chunk_index"], data["chunk"])
        except ValueError as exc:
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except OSError:
            logger.error("Error merging chunks for %s", data["file_id"], exc_info=True)
            return Response({"error": "Error merging chunks"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        if not result.completed:
            return Response({"success": True, "chunk_index": result.chunk_index, "completed": False})
        return Response(
            {"success": True, "file_path": str(result.file_path), "video_id": result.video_id, "completed": True}
        )


class VideoUploadView(APIView):
    permission_classes = [custom_permissions.IsAdminRole]
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request):
        serializer = serializers.VideoUploadSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({"error": "No file uploaded"}, status=status.HTTP_400_BAD_REQUEST)
        try:
            target = store_upload(serializer.validated_data["video"], serializer.validated_data["video_type"])
        except ValueError as exc:
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except OSError:
            logger.error("Error storing uploaded video", exc_info=True)
            return Response({"error": "Error saving file"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response({"success": True, "file_path": str(target)}, status=status.HTTP_201_CREATED)


class UploadCleanupView(APIView):
    permission_classes = [custom_permissions.IsAdminRole]

    def post(self, request):
        removed = cleanup_temp_folders()
        return Response({"success": True, "removed": len(removed)})


def _video_response(request, pk: int, limit: int | None = None):
    movie = get_object_or_404(models.Movie, pk=pk)
    path = movie.find_video_file()
    if path is None:
        return JsonResponse({"error": "Video not found"}, status=404)
    return stream_file(path, request.headers.get("Range"), limit=limit)


@require_GET
def stream_video(request, pk: int):
    return _video_response(request, pk)


@require_GET
def billboard_video(request, pk: int):
    """Stream only the first ``BILLBOARD_PREVIEW_BYTES`` of a title."""

    return _video_response(request, pk, limit=settings.BILLBOARD_PREVIEW_BYTES)
