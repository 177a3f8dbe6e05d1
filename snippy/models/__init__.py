"""SQLAlchemy database models."""
from dotenv import load_dotenv
from snippy.models.base import Base
from snippy.models.comment import Comment
from snippy.models.favorite import Favorite
from snippy.models.snippet import FileType, Snippet, SnippetFile
from snippy.models.user import User


load_dotenv()

__all__ = [
    "Base",
    "User",
    "Snippet",
    "SnippetFile",
    "FileType",
    "Favorite",
    "Comment",
]
