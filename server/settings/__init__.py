"""Django settings entry point.

Settings are split into components and composed with django-split-settings.
Every value can be overridden from the environment (see components).
"""

from split_settings.tools import include

include(
    'components/common.py',
    'components/logging.py',
    'components/storages.py',
    'components/files.py',
)
