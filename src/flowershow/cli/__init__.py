"""flowershow CLI — publish a vault to a Git-hosted site."""

from ._helpers import main  # noqa: F401 — entry point

# Import command modules to register Click commands with the main group.
from . import _status, _publish  # noqa: F401
