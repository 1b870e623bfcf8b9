# Re-export the Base class from db.py so scholarship models share its metadata
from db import Base

__all__ = ["Base"]
