from .database import Database, build_engine
from .models import Base, EventRecord

__all__ = ["Base", "Database", "EventRecord", "build_engine"]
