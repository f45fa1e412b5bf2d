import json
from unittest import mock

from django.core.management import call_command
from django.db import DatabaseError, OperationalError
from django.test import SimpleTestCase, TestCase, override_settings

from .db import connect
from .management.commands import runserver
from .models import Task
from .schemas import MISSING, TITLE_MAX_LENGTH, SchemaError, TaskCreate, TaskPatch, parse_json

TASKS_URL = "/api/tasks"


def detail_url(task_id):
    return f"{TASKS_URL}/{task_id}"


class TaskApiTestCase(TestCase):

    def post_json(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type="application/json")

    def put_json(self, url, payload):
        return self.client.put(url, data=json.dumps(payload), content_type="application/json")

    def make_task(self, title="write report", description=None):
        res = self.post_json(TASKS_URL, {"title": title, "description": description})
        self.assertEqual(res.status_code, 201)
        return res.json()


class ListTasksTests(TaskApiTestCase):

    def test_empty_list(self):
        res = self.client.get(TASKS_URL)
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json(), [])

    def test_newest_first(self):
        a = self.make_task("A")
        b = self.make_task("B")
        ids = [t["id"] for t in self.client.get(TASKS_URL).json()]
        self.assertEqual(ids[:2], [b["id"], a["id"]])

    def test_trailing_slash_is_accepted(self):
        self.make_task()
        res = self.client.get(TASKS_URL + "/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(len(res.json()), 1)

    def test_database_error_is_500(self):
        with mock.patch.object(Task.objects, "all", side_effect=DatabaseError("down")):
            with self.assertLogs("tasks.views", level="ERROR"):
                res = self.client.get(TASKS_URL)
        self.assertEqual(res.status_code, 500)
        self.assertNotIn("down", res.json()["message"])

    def test_method_not_allowed(self):
        res = self.client.patch(TASKS_URL)
        self.assertEqual(res.status_code, 405)
        self.assertIn("GET", res["Allow"])


class CreateTaskTests(TaskApiTestCase):

    def test_create_then_list(self):
        task = self.make_task("buy milk", "two litres")
        self.assertEqual(task["title"], "buy milk")
        self.assertEqual(task["description"], "two litres")
        self.assertIs(task["completed"], False)
        self.assertIsInstance(task["id"], int)

        listed = self.client.get(TASKS_URL).json()
        self.assertIn(task, listed)

    def test_response_shape(self):
        task = self.make_task()
        self.assertEqual(set(task), {"id", "title", "description", "completed"})

    def test_description_is_optional(self):
        res = self.post_json(TASKS_URL, {"title": "no details"})
        self.assertEqual(res.status_code, 201)
        self.assertIsNone(res.json()["description"])

    def test_empty_description_stored_as_null(self):
        task = self.make_task("blank", "")
        self.assertIsNone(task["description"])
        self.assertIsNone(Task.objects.get(pk=task["id"]).description)

    def test_missing_title_is_400(self):
        for payload in ({}, {"title": ""}, {"title": None}, {"description": "orphan"}):
            res = self.post_json(TASKS_URL, payload)
            self.assertEqual(res.status_code, 400)
            self.assertIn("message", res.json())
        self.assertEqual(Task.objects.count(), 0)

    def test_missing_title_never_touches_database(self):
        with mock.patch.object(Task.objects, "create") as create:
            res = self.post_json(TASKS_URL, {"description": "x"})
        self.assertEqual(res.status_code, 400)
        create.assert_not_called()

    def test_overlong_title_is_400(self):
        res = self.post_json(TASKS_URL, {"title": "x" * (TITLE_MAX_LENGTH + 1)})
        self.assertEqual(res.status_code, 400)
        self.assertEqual(Task.objects.count(), 0)
        self.make_task("x" * TITLE_MAX_LENGTH)

    def test_invalid_json_is_400(self):
        res = self.client.post(TASKS_URL, data="{not json", content_type="application/json")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["message"], "Invalid JSON body.")

    def test_sql_is_not_interpolated(self):
        title = "x'); DROP TABLE Tareas; --"
        task = self.make_task(title)
        self.assertEqual(task["title"], title)
        self.assertEqual(Task.objects.count(), 1)

    def test_database_error_is_500(self):
        with mock.patch.object(Task.objects, "create", side_effect=DatabaseError("down")):
            with self.assertLogs("tasks.views", level="ERROR"):
                res = self.post_json(TASKS_URL, {"title": "t"})
        self.assertEqual(res.status_code, 500)


class UpdateTaskTests(TaskApiTestCase):

    def test_complete_only_changes_completed(self):
        task = self.make_task("keep me", "and me")
        res = self.put_json(detail_url(task["id"]), {"completed": True})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(
            res.json(),
            {"id": task["id"], "title": "keep me", "description": "and me", "completed": True},
        )

    def test_update_title(self):
        task = self.make_task("old")
        res = self.put_json(detail_url(task["id"]), {"title": "new"})
        self.assertEqual(res.json()["title"], "new")
        self.assertEqual(Task.objects.get(pk=task["id"]).title, "new")

    def test_null_description_clears_it(self):
        task = self.make_task("t", "something")
        res = self.put_json(detail_url(task["id"]), {"description": None})
        self.assertEqual(res.status_code, 200)
        self.assertIsNone(res.json()["description"])

    def test_uncomplete(self):
        task = self.make_task()
        self.put_json(detail_url(task["id"]), {"completed": True})
        res = self.put_json(detail_url(task["id"]), {"completed": False})
        self.assertIs(res.json()["completed"], False)

    def test_no_fields_is_400(self):
        task = self.make_task()
        with mock.patch.object(Task.objects, "filter") as filter_:
            res = self.put_json(detail_url(task["id"]), {"unrelated": 1})
        self.assertEqual(res.status_code, 400)
        filter_.assert_not_called()

    def test_wrong_types_are_400(self):
        task = self.make_task()
        for payload in ({"completed": "yes"}, {"title": None}, {"description": 5}):
            res = self.put_json(detail_url(task["id"]), payload)
            self.assertEqual(res.status_code, 400)

    def test_overlong_title_is_400(self):
        task = self.make_task("short")
        res = self.put_json(detail_url(task["id"]), {"title": "x" * (TITLE_MAX_LENGTH + 1)})
        self.assertEqual(res.status_code, 400)
        self.assertEqual(Task.objects.get(pk=task["id"]).title, "short")

    def test_unknown_id_is_404(self):
        task = self.make_task("untouched")
        res = self.put_json(detail_url(999999), {"title": "ghost"})
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.json()["message"], "Task not found.")
        self.assertEqual(Task.objects.get(pk=task["id"]).title, "untouched")
        self.assertEqual(Task.objects.count(), 1)

    def test_non_numeric_id_is_404(self):
        res = self.put_json(f"{TASKS_URL}/abc", {"title": "x"})
        self.assertEqual(res.status_code, 404)

    def test_database_error_is_500(self):
        task = self.make_task()
        with mock.patch.object(Task.objects, "filter", side_effect=DatabaseError("down")):
            with self.assertLogs("tasks.views", level="ERROR"):
                res = self.put_json(detail_url(task["id"]), {"completed": True})
        self.assertEqual(res.status_code, 500)


class DeleteTaskTests(TaskApiTestCase):

    def test_delete(self):
        task = self.make_task()
        res = self.client.delete(detail_url(task["id"]))
        self.assertEqual(res.status_code, 204)
        self.assertEqual(res.content, b"")
        ids = [t["id"] for t in self.client.get(TASKS_URL).json()]
        self.assertNotIn(task["id"], ids)

    def test_ids_are_not_reused(self):
        first = self.make_task("first")
        self.client.delete(detail_url(first["id"]))
        second = self.make_task("second")
        self.assertNotEqual(first["id"], second["id"])

    def test_unknown_id_is_404(self):
        self.make_task()
        res = self.client.delete(detail_url(999999))
        self.assertEqual(res.status_code, 404)
        self.assertEqual(Task.objects.count(), 1)

    def test_method_not_allowed(self):
        task = self.make_task()
        res = self.client.get(detail_url(task["id"]))
        self.assertEqual(res.status_code, 405)

    def test_database_error_is_500(self):
        with mock.patch.object(Task.objects, "filter", side_effect=DatabaseError("down")):
            with self.assertLogs("tasks.views", level="ERROR"):
                res = self.client.delete(detail_url(1))
        self.assertEqual(res.status_code, 500)


class CompletedNormalizationTests(TestCase):

    def test_stored_values_serialize_as_bool(self):
        for stored, expected in ((0, False), (1, True), (False, False), (True, True)):
            task = Task.objects.create(title="t")
            Task.objects.filter(pk=task.pk).update(completed=stored)
            self.assertIs(Task.objects.get(pk=task.pk).to_dict()["completed"], expected)

    def test_unsaved_values_serialize_as_bool(self):
        self.assertIs(Task(title="t", completed=1).to_dict()["completed"], True)
        self.assertIs(Task(title="t", completed=0).to_dict()["completed"], False)


class IndexAndCorsTests(TestCase):

    def test_welcome(self):
        res = self.client.get("/")
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res["Content-Type"].startswith("text/plain"))
        self.assertIn(b"Welcome", res.content)

    @override_settings(CORS_ALLOWED_ORIGINS=["http://localhost:3000"])
    def test_cors_allows_configured_origin(self):
        res = self.client.get(TASKS_URL, HTTP_ORIGIN="http://localhost:3000")
        self.assertEqual(res["Access-Control-Allow-Origin"], "http://localhost:3000")

    @override_settings(CORS_ALLOWED_ORIGINS=["http://localhost:3000"])
    def test_cors_rejects_other_origin(self):
        res = self.client.get(TASKS_URL, HTTP_ORIGIN="http://evil.example")
        self.assertNotIn("Access-Control-Allow-Origin", res)


class SchemaTests(SimpleTestCase):

    def test_parse_json(self):
        self.assertEqual(parse_json(b""), {})
        self.assertEqual(parse_json(b'{"a": 1}'), {"a": 1})
        with self.assertRaises(SchemaError):
            parse_json(b"[1, 2]")
        with self.assertRaises(SchemaError):
            parse_json(b"\xff")

    def test_create_requires_title(self):
        with self.assertRaises(SchemaError):
            TaskCreate.from_payload({"title": ""})
        with self.assertRaises(SchemaError):
            TaskCreate.from_payload({"title": 12})
        self.assertEqual(TaskCreate.from_payload({"title": "a"}), TaskCreate(title="a"))

    def test_patch_tri_state(self):
        patch = TaskPatch.from_payload({"description": None})
        self.assertIs(patch.title, MISSING)
        self.assertIsNone(patch.description)
        self.assertIs(patch.completed, MISSING)
        self.assertEqual(patch.changes(), [("description", None)])

    def test_patch_changes_in_field_order(self):
        patch = TaskPatch.from_payload({"completed": True, "title": "t", "extra": 1})
        self.assertEqual(patch.changes(), [("title", "t"), ("completed", True)])

    def test_empty_patch(self):
        with self.assertRaises(SchemaError):
            TaskPatch.from_payload({})


class ConnectTests(SimpleTestCase):

    @mock.patch("tasks.db.connections")
    def test_connect_returns_handler(self, connections):
        self.assertIs(connect(), connections)
        connections.close_all.assert_called_once_with()
        connections.__getitem__.return_value.ensure_connection.assert_called_once_with()

    @mock.patch("tasks.db.connections")
    def test_connection_failure_exits(self, connections):
        connections.__getitem__.return_value.ensure_connection.side_effect = OperationalError("no server")
        with self.assertLogs("tasks.db", level="ERROR"):
            with self.assertRaises(SystemExit) as cm:
                connect()
        self.assertEqual(cm.exception.code, 1)


    def test_runserver_exits_without_database(self):
        # default options: the autoreloader stays on
        with mock.patch.object(runserver, "connect", side_effect=SystemExit(1)) as connect_, \
                mock.patch("django.utils.autoreload.run_with_reloader") as run_with_reloader:
            with self.assertRaises(SystemExit) as cm:
                call_command("runserver")
        self.assertEqual(cm.exception.code, 1)
        connect_.assert_called_once_with()
        run_with_reloader.assert_not_called()

    def test_runserver_starts_after_connect(self):
        calls = []
        with mock.patch.object(runserver, "connect", side_effect=lambda: calls.append("connect")), \
                mock.patch("django.utils.autoreload.run_with_reloader",
                           side_effect=lambda *a, **kw: calls.append("serve")):
            call_command("runserver")
        self.assertEqual(calls, ["connect", "serve"])
