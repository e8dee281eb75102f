"""
QloudSound API

Small FastAPI service behind the public QloudSound site: accepts song
requests, keeps the track catalog in SQLite and pings a Telegram chat
whenever a new request arrives.
"""

__version__ = "0.1.0"
