"""
Shared pytest fixtures and configuration for the entire test suite.
Applies to all subdirectories: unit/, api/
"""

import sys
import os
import copy
import tempfile
import pytest

# ── Ensure backend is importable from every pytest session ──────────────────
BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "backend"))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

# Keep test logs out of the source tree
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "quizgen-test-logs"))


# ── Sample payloads ──────────────────────────────────────────────────────────

_VALID_QUIZ = {
    "title": "Data Structures Basics",
    "description": "A short quiz about queues, stacks and searching in sorted data.",
    "userId": "user-123",
    "category": "technology",
    "difficulty": "medium",
    "status": "draft",
    "isPublic": False,
    "timeLimit": 30,
    "questions": [
        {
            "question": "Which data structure is first-in first-out?",
            "type": "multiple_choice",
            "options": ["Stack", "Queue", "Tree", "Graph"],
            "correctAnswer": 1,
            "explanation": "A queue removes items in insertion order.",
            "difficulty": "easy",
        },
        {
            "question": "Binary search requires sorted input.",
            "type": "true_false",
            "correctAnswer": True,
            "explanation": "Each step halves a sorted range.",
            "difficulty": "medium",
        },
        {
            "question": "Which operation adds an item to the top of a stack?",
            "type": "multiple_choice",
            "options": ["Push", "Pop", "Peek", "Shift"],
            "correctAnswer": 0,
            "difficulty": "hard",
        },
    ],
}


@pytest.fixture
def valid_quiz():
    """A quiz payload that passes every validation rule group."""
    return copy.deepcopy(_VALID_QUIZ)


@pytest.fixture
def quiz_reply():
    """A well-formed AI reply for a two-question quiz."""
    return (
        '{"title": "Data Structures Basics",'
        ' "description": "Queues and stacks",'
        ' "questions": ['
        '{"question": "Which data structure is first-in first-out?", "type": "multiple_choice",'
        ' "options": ["Stack", "Queue", "Tree", "Graph"], "correctAnswer": 1,'
        ' "explanation": "A queue removes items in insertion order."},'
        '{"question": "Binary search requires sorted input.", "type": "true_false",'
        ' "correctAnswer": true}'
        "]}"
    )


# ── FastAPI test client ──────────────────────────────────────────────────────

@pytest.fixture
def app_client():
    """TestClient over the full application (routes + exception handlers)."""
    from fastapi.testclient import TestClient
    from quizgen.main import app
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
