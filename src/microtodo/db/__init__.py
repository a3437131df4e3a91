from microtodo.db.engine import Database, get_db

__all__ = ["Database", "get_db"]
