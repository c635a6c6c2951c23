"""
Django settings for fleetrun hosts.

Everything operational is read from the environment so the same module
serves every instance of a fleet.
"""

import os

import dj_database_url
from dotenv import load_dotenv

load_dotenv()

PROJ_ROOT = os.path.dirname(os.path.abspath(__file__))

DEBUG = os.getenv('DEBUG', 'False') == 'True'
SECRET_KEY = os.getenv('SECRET_KEY', 'django-insecure-placeholder-change-me')
ALLOWED_HOSTS = os.getenv('ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',')

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'fleetrun.orchestration',
]

# Shared store - every cooperating instance must point at the same database
DATABASES = {
    'default': dj_database_url.config(
        default=os.getenv(
            'DATABASE_URL',
            'sqlite:///' + os.path.join(os.path.dirname(PROJ_ROOT), 'fleetrun.sqlite3'),
        ),
        conn_max_age=600,
        conn_health_checks=True,
    )
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

USE_TZ = True
TIME_ZONE = os.getenv('TIME_ZONE', 'UTC')

# Migration runner configuration
FLEETRUN_COLLECTION_NAME = os.getenv('FLEETRUN_COLLECTION_NAME', 'migrations')
FLEETRUN_AUTO_RUN = os.getenv('FLEETRUN_AUTO_RUN', 'True')
FLEETRUN_FAIL_FAST = os.getenv('FLEETRUN_FAIL_FAST', 'True')
FLEETRUN_SCHEDULER_ENABLED = os.getenv('FLEETRUN_SCHEDULER_ENABLED', 'True')
FLEETRUN_SCHEDULER_TIME_ZONE = os.getenv('FLEETRUN_SCHEDULER_TIME_ZONE', TIME_ZONE)
FLEETRUN_DESCRIPTOR_SOURCE = os.getenv('FLEETRUN_DESCRIPTOR_SOURCE') or None

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {process:d} {thread:d} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'INFO',
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': os.getenv('DJANGO_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
        'fleetrun': {
            'handlers': ['console'],
            'level': os.getenv('FLEETRUN_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
        # APScheduler reports job errors itself; keep it quieter than ours
        'apscheduler': {
            'handlers': ['console'],
            'level': os.getenv('APSCHEDULER_LOG_LEVEL', 'WARNING'),
            'propagate': False,
        },
    },
}
