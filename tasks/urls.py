from django.urls import re_path

from . import views

urlpatterns = [
    re_path(r"^tasks/?$", views.task_collection, name="task-collection"),
    re_path(r"^tasks/(?P<task_id>\d+)/?$", views.task_detail, name="task-detail"),
]
