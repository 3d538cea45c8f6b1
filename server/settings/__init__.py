"""Main django-split-settings entry point.

Settings are split into components under ``components/``. Values that
differ between deployments are read from the environment (or a ``.env``
file) through python-decouple, see ``components/__init__.py``.
"""

from split_settings.tools import include, optional

include(
    'components/common.py',
    'components/logging.py',
    'components/storages.py',
    'components/library.py',
    # Machine-specific overrides, never committed:
    optional('components/local.py'),
)
