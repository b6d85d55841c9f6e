"""
Todo Backend package.

FastAPI service for todos with owners, assignees, tags, append-only notes and
CSV export. Build the application with `todo_api.main.create_app`.
"""

__version__ = "0.1.0"
