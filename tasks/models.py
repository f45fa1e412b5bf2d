from django.db import models

from .schemas import TITLE_MAX_LENGTH


class Task(models.Model):
    title = models.CharField(max_length=TITLE_MAX_LENGTH)
    description = models.TextField(null=True, blank=True)
    # stored as a bit; the field hands back a bool on every read
    completed = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True, db_column="createdAt")

    class Meta:
        db_table = "Tareas"
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return self.title

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "completed": bool(self.completed),
        }
