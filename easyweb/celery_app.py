"""Celery application setup."""

from __future__ import annotations

from celery import Celery
from celery.signals import worker_init

from easyweb import db
from easyweb.config import settings

celery_app = Celery(
    "easyweb",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["easyweb.tasks.form_mail"],
)

celery_app.autodiscover_tasks(["easyweb.tasks"])


@worker_init.connect
def _configure_worker(**kwargs):
    db.configure(settings.db_path)
    db.init_db()
