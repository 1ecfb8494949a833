"""Jira Walker.

Client library for the Jira REST API with lazy, restartable iteration
over paginated JQL search results.
"""

__version__ = "0.1.0"
