"""Shared helpers for settings components."""

from pathlib import Path

from decouple import AutoConfig

# Repository root: server/settings/components/__init__.py -> 4 levels up
BASE_DIR = Path(__file__).parent.parent.parent.parent

# Reads from environment variables first, then from BASE_DIR/.env
config = AutoConfig(search_path=BASE_DIR)
