"""Unit tests for the chat provider chain."""
import asyncio
import pytest

from bzr_portal.core.exceptions import LLMUnavailableError
from bzr_portal.services.llm import LLMService, build_user_message


class FakeChatProvider:
    def __init__(self, name, answer=None, error=None, available=True, delay=0.0):
        self.name = name
        self.answer = answer
        self.error = error
        self.available = available
        self.delay = delay
        self.messages = []

    def is_available(self):
        return self.available

    async def complete(self, system_prompt, user_message, history):
        self.messages.append(user_message)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.answer


@pytest.mark.unit
class TestLLMService:
    """Test cases for LLMService."""

    @pytest.mark.asyncio
    async def test_falls_back_to_second_provider(self):
        primary = FakeChatProvider("openrouter", error=RuntimeError("429"))
        secondary = FakeChatProvider("gemini", answer="Odgovor")

        answer = await LLMService(providers=[primary, secondary]).complete("sistem", "kontekst", "pitanje")

        assert answer == "Odgovor"
        assert primary.messages and secondary.messages

    @pytest.mark.asyncio
    async def test_empty_answer_counts_as_failure(self):
        empty = FakeChatProvider("openrouter", answer="   ")
        secondary = FakeChatProvider("gemini", answer="Odgovor")

        assert await LLMService(providers=[empty, secondary]).complete("s", "", "p") == "Odgovor"

    @pytest.mark.asyncio
    async def test_timeout_moves_on(self):
        slow = FakeChatProvider("openrouter", answer="kasno", delay=5)
        fast = FakeChatProvider("gemini", answer="brzo")

        answer = await LLMService(providers=[slow, fast], timeout_seconds=0.05).complete("s", "", "p")

        assert answer == "brzo"

    @pytest.mark.asyncio
    async def test_all_failing_raises(self):
        service = LLMService(providers=[
            FakeChatProvider("openrouter", available=False),
            FakeChatProvider("gemini", error=RuntimeError("500")),
        ])

        with pytest.raises(LLMUnavailableError):
            await service.complete("s", "", "p")

    def test_build_user_message(self):
        assert build_user_message("", "Pitanje?") == "Pitanje?"
        message = build_user_message("Dokument 1: a.txt", "Pitanje?")
        assert message.startswith("--- Kontekst ---\nDokument 1: a.txt")
        assert message.endswith("--- Pitanje korisnika ---\nPitanje?")
