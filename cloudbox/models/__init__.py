from cloudbox.models.user import User
from cloudbox.models.folder import Folder
from cloudbox.models.file import File
from cloudbox.models.share import Share

__all__ = ["User", "Folder", "File", "Share"]
