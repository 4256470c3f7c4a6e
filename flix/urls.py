"""Router configuration for the flix API."""
from __future__ import annotations
from django.urls import include, path
from rest_framework.routers import DefaultRouter
from . import views

app_name = "flix"

router = DefaultRouter()
router.register(r"auth", views.AccountViewSet, basename="auth")
router.register(r"profiles", views.ProfileViewSet, basename="profile")
router.register(r"profile-images", views.ProfileImageViewSet, basename="profile-image")
router.register(r"movies", views.MovieViewSet, basename="movie")
router.register(r"series", views.SeriesViewSet, basename="series")
router.register(r"favorites", views.FavoriteViewSet, basename="favorite")
router.register(r"watchlist", views.WatchlistViewSet, basename="watchlist")
router.register(r"playlists", views.PlaylistViewSet, basename="playlist")
router.register(r"admin/users", views.AdminUserViewSet, basename="admin-user")
router.register(r"admin/actors", views.ActorAdminViewSet, basename="admin-actor")

urlpatterns = [
    path("auth/oauth/<str:provider>/authorize/", views.OAuthAuthorizeView.as_view(), name="oauth-authorize"),
    path("auth/oauth/<str:provider>/callback/", views.OAuthCallbackView.as_view(), name="oauth-callback"),
    path("titles/random/", views.RandomTitleView.as_view(), name="random-title"),
    path("search/", views.SearchView.as_view(), name="search"),
    path("watch-time/", views.WatchTimeView.as_view(), name="watch-time"),
    path("movie-views/", views.MovieViewCreateView.as_view(), name="movie-view"),
    path("admin/check/", views.AdminCheckView.as_view(), name="admin-check"),
    path("admin/logs/", views.AdminLogsView.as_view(), name="admin-logs"),
    path("admin/statistics/", views.StatisticsView.as_view(), name="admin-statistics"),
    path("uploads/chunk/", views.ChunkUploadView.as_view(), name="upload-chunk"),
    path("uploads/video/", views.VideoUploadView.as_view(), name="upload-video"),
    path("uploads/cleanup/", views.UploadCleanupView.as_view(), name="upload-cleanup"),
    path("videos/<int:pk>/stream/", views.stream_video, name="video-stream"),
    path("videos/<int:pk>/billboard/", views.billboard_video, name="video-billboard"),
    path("", include(router.urls)),
]
