from __future__ import annotations

import asyncio

from commands.ai import LEARN_SYSTEM_MESSAGE, PROBLEM_SYSTEM_MESSAGE, run_ai_request
from commands.performance import VIEW_CHOICES


def run_async(coro):
    return asyncio.run(coro)


class RecordingService:
    def __init__(self):
        self.calls = []
        self.enforced = []

    async def generate_response(self, prompt, system_message=None, caller_id=None, enforce_rate_limit=True):
        self.calls.append(("response", prompt, system_message, caller_id))
        self.enforced.append(enforce_rate_limit)
        return "r"

    async def generate_code_response(self, prompt, language, caller_id=None, enforce_rate_limit=True):
        self.calls.append(("code", prompt, language, caller_id))
        self.enforced.append(enforce_rate_limit)
        return "c"

    async def generate_explanation(self, code, language, caller_id=None, enforce_rate_limit=True):
        self.calls.append(("explain", code, language, caller_id))
        self.enforced.append(enforce_rate_limit)
        return "e"

    async def generate_review(self, code, language, caller_id=None, enforce_rate_limit=True):
        self.calls.append(("review", code, language, caller_id))
        self.enforced.append(enforce_rate_limit)
        return "v"


def test_response_types_route_to_matching_service_call():
    service = RecordingService()

    async def scenario() -> None:
        assert await run_ai_request(service, "general", "hi", caller_id=1) == "r"
        assert await run_ai_request(service, "code", "sort", "python", caller_id=1) == "c"
        assert await run_ai_request(service, "explain", "x = 1", "go", caller_id=1) == "e"
        assert await run_ai_request(service, "review", "x = 1", "rust", caller_id=1) == "v"
        await run_ai_request(service, "problem", "stuck", caller_id=1)
        await run_ai_request(service, "learn", "async", caller_id=1)

    run_async(scenario())
    assert service.calls[0] == ("response", "hi", None, 1)
    assert service.calls[1] == ("code", "sort", "python", 1)
    assert service.calls[2] == ("explain", "x = 1", "go", 1)
    assert service.calls[3] == ("review", "x = 1", "rust", 1)
    assert service.calls[4][2] == PROBLEM_SYSTEM_MESSAGE
    assert service.calls[5][2] == LEARN_SYSTEM_MESSAGE
    assert all(service.enforced)


def test_caller_limit_flag_reaches_every_style():
    service = RecordingService()

    async def scenario() -> None:
        for style in ("general", "code", "explain", "review", "problem", "learn"):
            await run_ai_request(service, style, "x = 1", "python", caller_id=1, enforce_rate_limit=False)

    run_async(scenario())
    assert service.enforced == [False] * 6


def test_performance_offers_memory_view():
    assert "memory" in [choice.value for choice in VIEW_CHOICES]
