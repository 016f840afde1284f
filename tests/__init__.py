"""
Station Portal Test Suite

Test Files:
- conftest.py: Pytest fixtures and configuration
- test_database.py: Schema, CRUD, queries, activity log
- test_auth.py: Hashing, lockout, login/session/token routes
- test_polls.py: Polls, votes, comments, notifications
- test_resources_admin.py: Resource vault, admin users, profile settings, dashboard
- test_azuracast.py: AzuraCast client and proxy routes
- test_assistant.py: Groq client, tool execution, chat loop, chat route
- test_analytics.py: Listener CSV processing
- test_maintenance.py: Time zones, cleanup, scheduler, CLI

Running Tests:
    # Run all tests
    pytest

    # Run specific test file
    pytest tests/test_polls.py

    # Run only unit tests
    pytest -m unit
"""
