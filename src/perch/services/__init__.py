"""Built-in services registered in every App's container.

=========  ======================
name       service
=========  ======================
auth       ``Authentication``
session    ``SessionManager``
router     ``Router``
files      ``FileManager``
db         ``Database``
errors     ``ErrorHandler``
=========  ======================
"""

from perch.services.auth import GUEST_GROUP, Authentication
from perch.services.container import Container, Provider
from perch.services.errors import ErrorHandler
from perch.services.files import FileManager
from perch.services.session import SessionManager

__all__ = [
    "GUEST_GROUP",
    "Authentication",
    "Container",
    "ErrorHandler",
    "FileManager",
    "Provider",
    "SessionManager",
]
