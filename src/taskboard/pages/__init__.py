"""NiceGUI pages for Taskboard.

Import this module to register all page routes with NiceGUI.
"""

from taskboard.pages import board, index

__all__ = ["board", "index"]

# Touch modules to prevent linter from removing "unused" imports.
# These imports register @ui.page decorators as a side effect.
_PAGES = (board, index)
