from django.urls import include, path

from tasks import views

urlpatterns = [
    path("", views.index),
    path("api/", include("tasks.urls")),
]
