# celery_app.py  ─────────────────────────────────────────────────────────
from celery import Celery
from celery.schedules import crontab
from dotenv import load_dotenv
import logging
import logging.config

load_dotenv()

from amm_indexer.config.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND

# ── 1.  Broker / backend  ────────────────────────────────────
celery_app = Celery(
    "amm_indexer",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# ── 2.  Core config Beat & routing tweaks ─────────────────────
celery_app.conf.update(
    task_serializer       ='json',
    result_serializer     ='json',
    accept_content        =['json'],
    timezone              ='UTC',
    enable_utc            =True,

    # --- use RedBeat for persistent schedules
    beat_scheduler        ="redbeat.RedBeatScheduler",

    # --- recycle workers to avoid long‑lived memory creep
    worker_max_tasks_per_child = 20,
)

# ── 3.  Beat schedule – sweeps active pools every 5 minutes ───────
celery_app.conf.beat_schedule = {
    "refresh-active-pools": {
        "task": "refresh_all_chains",
        "schedule": crontab(minute="*/5"),
        "options": {"queue": "refresh"},
    }
}

# ── 4.  Logging ────────────────────────────────────────────
LOGGING_CONFIG = {
    "version": 1,
    "filters": {
        "shortname": {"()": "amm_indexer.utils.shortname.ShortNameFilter"},
    },
    "formatters": {
        "custom": {
            "format": "[%(asctime)s] [%(levelname)s] %(shortname)s: %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "custom",
            "filters": ["shortname"],
        },
    },
    "root": {"level": "INFO", "handlers": ["console"]},
}
celery_app.conf.worker_hijack_root_logger = False
logging.config.dictConfig(LOGGING_CONFIG)

# ── 5.  Task modules so Celery registers them ───────────────
import amm_indexer.scheduler.dispatcher  # noqa: E402,F401
