"""Settings used by the test suite."""

import os
import tempfile

from .settings import *  # noqa: F401,F403

# File-backed so concurrent claims from several threads hit one database
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
        'TEST': {
            'NAME': os.path.join(tempfile.gettempdir(), 'fleetrun-tests.sqlite3'),
        },
    }
}

# Tests build their own coordinators; never run at app loading
FLEETRUN_AUTO_RUN = False
FLEETRUN_DESCRIPTOR_SOURCE = None
