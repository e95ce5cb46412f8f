"""
Backend for the Cal Planner annual planning tool.

Provides a FastAPI application that stores one plan document per year in
MySQL (or any SQLAlchemy database), with backup/restore and reset
endpoints, and serves the static frontend from the same process.
"""
