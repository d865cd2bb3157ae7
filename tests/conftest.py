"""Shared fixtures for the Task Master test suite."""

import copy
import os
import tempfile

# Keep the user config out of the real home directory; must run before config is imported
os.environ["TASK_MASTER_HOME"] = tempfile.mkdtemp(prefix="task-master-test-")
for _var in ("MODEL", "MAX_TOKENS", "TEMPERATURE", "PERPLEXITY_MODEL", "DEBUG", "LOG_LEVEL",
             "DEFAULT_SUBTASKS", "DEFAULT_PRIORITY", "PROJECT_NAME"):
    os.environ.pop(_var, None)

import pytest  # noqa: E402

import ai_services  # noqa: E402
import providers  # noqa: E402

SAMPLE_TASKS_RESPONSE = {
    "tasks": [
        {
            "id": 1,
            "title": "Initialize Project Structure",
            "description": "Set up the basic project structure and configuration files",
            "status": "pending",
            "dependencies": [],
            "priority": "high",
            "details": "Create package metadata, install dependencies, set up linting",
            "testStrategy": "Verify all config files exist and are valid"
        },
        {
            "id": 2,
            "title": "Implement Core Data Models",
            "description": "Create the fundamental data models for the application",
            "status": "pending",
            "dependencies": [1],
            "priority": "high",
            "details": "Define types for core entities",
            "testStrategy": "Write unit tests for all models"
        },
        {
            "id": 3,
            "title": "Setup Database Integration",
            "description": "Configure and implement database connectivity",
            "status": "pending",
            "dependencies": [2],
            "priority": "medium",
            "details": "Install and configure the ORM, create connection manager",
            "testStrategy": "Test database connections and basic CRUD operations"
        }
    ],
    "metadata": {
        "projectName": "Test Project",
        "totalTasks": 3,
        "sourceFile": "test-prd.txt",
        "generatedAt": "2024-01-01"
    }
}

SAMPLE_TASK = {
    "id": 5,
    "title": "Implement user authentication",
    "description": "Add login and registration endpoints",
    "status": "pending",
    "dependencies": [2],
    "priority": "high",
    "details": "Use JWT access tokens with refresh rotation",
    "testStrategy": "Integration tests for login and token refresh"
}


@pytest.fixture
def sample_tasks_response():
    return copy.deepcopy(SAMPLE_TASKS_RESPONSE)


@pytest.fixture
def sample_task():
    return copy.deepcopy(SAMPLE_TASK)


@pytest.fixture(autouse=True)
def sleeps(monkeypatch):
    """Backoff waits are recorded instead of slept."""
    recorded = []
    monkeypatch.setattr(ai_services, "_sleep", recorded.append)
    return recorded


@pytest.fixture(autouse=True)
def reset_clients():
    yield
    providers.gemini_client.reset()
    providers.perplexity_client.reset()
