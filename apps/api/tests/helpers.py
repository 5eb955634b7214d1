"""Shared fakes for the habit audio tests."""
from unittest.mock import MagicMock


def chat_response(content):
    """A requests-like response carrying one chat completion."""
    response = MagicMock()
    response.raise_for_status.return_value = None
    response.json.return_value = {"choices": [{"message": {"content": content}}]}
    return response


def ok_response():
    response = MagicMock()
    response.raise_for_status.return_value = None
    return response
