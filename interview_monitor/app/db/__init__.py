"""Database modules"""
from interview_monitor.app.db.sqlite_queue import SQLiteQueue, QueueItem, get_sqlite_queue
