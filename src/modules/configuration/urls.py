"""Configuration URL configuration."""

from __future__ import annotations

from django.urls import path

from modules.configuration.views import TimingConfigDetailView, TimingConfigListView

urlpatterns = [
    path("config/timings/", TimingConfigListView.as_view(), name="config-timings"),
    path(
        "config/timings/<str:key>/",
        TimingConfigDetailView.as_view(),
        name="config-timing-detail",
    ),
]
