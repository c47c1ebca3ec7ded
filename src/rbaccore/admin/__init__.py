"""Administrative mutation entry points.

- ``GraphAdmin`` — users, groups, roles, permissions and their links.
- ``MenuAdmin`` — menu groups, menu functions and their role links.

Each write validates tenant ownership of both endpoints and ends with a
tenant version bump.
"""

from .graph import GraphAdmin
from .menu import MenuAdmin

__all__ = [
    "GraphAdmin",
    "MenuAdmin",
]
