import logging

from django.db import DatabaseError
from django.http import HttpResponse, HttpResponseNotAllowed, JsonResponse
from django.views.decorators.csrf import csrf_exempt

from .models import Task
from .schemas import SchemaError, TaskCreate, TaskPatch, parse_json

logger = logging.getLogger(__name__)

WELCOME_TEXT = "Welcome to the task manager backend (connected to the database)!"


def _message(text, status):
    return JsonResponse({"message": text}, status=status)


def _not_found():
    return _message("Task not found.", 404)


def index(request):
    return HttpResponse(WELCOME_TEXT, content_type="text/plain; charset=utf-8")


@csrf_exempt
def task_collection(request):
    """
    GET  /api/tasks  -> every task, newest first
    POST /api/tasks  body: {"title": "...", "description": "..."}
    """
    if request.method == "GET":
        return list_tasks(request)
    if request.method == "POST":
        return create_task(request)
    return HttpResponseNotAllowed(["GET", "POST"])


@csrf_exempt
def task_detail(request, task_id):
    """
    PUT    /api/tasks/<id>  body: any of {"title", "description", "completed"}
    DELETE /api/tasks/<id>
    """
    task_id = int(task_id)
    if request.method == "PUT":
        return update_task(request, task_id)
    if request.method == "DELETE":
        return delete_task(request, task_id)
    return HttpResponseNotAllowed(["PUT", "DELETE"])


def list_tasks(request):
    try:
        tasks = [task.to_dict() for task in Task.objects.all()]
    except DatabaseError:
        logger.exception("error fetching tasks")
        return _message("Internal server error while fetching tasks.", 500)
    return JsonResponse(tasks, safe=False)


def create_task(request):
    try:
        data = TaskCreate.from_payload(parse_json(request.body))
    except SchemaError as e:
        return _message(str(e), 400)

    try:
        task = Task.objects.create(title=data.title, description=data.description)
    except DatabaseError:
        logger.exception("error creating task")
        return _message("Internal server error while creating task.", 500)
    return JsonResponse(task.to_dict(), status=201)


def update_task(request, task_id):
    try:
        patch = TaskPatch.from_payload(parse_json(request.body))
    except SchemaError as e:
        return _message(str(e), 400)

    try:
        updated = Task.objects.filter(pk=task_id).update(**dict(patch.changes()))
        if not updated:
            return _not_found()
        task = Task.objects.get(pk=task_id)
    except Task.DoesNotExist:
        # deleted between the update and the read
        return _not_found()
    except DatabaseError:
        logger.exception("error updating task with id %s", task_id)
        return _message("Internal server error while updating task.", 500)
    return JsonResponse(task.to_dict())


def delete_task(request, task_id):
    try:
        deleted, _ = Task.objects.filter(pk=task_id).delete()
    except DatabaseError:
        logger.exception("error deleting task with id %s", task_id)
        return _message("Internal server error while deleting task.", 500)
    if not deleted:
        return _not_found()
    return HttpResponse(status=204)
