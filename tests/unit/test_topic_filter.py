"""Unit tests for the free-tier topic check."""
import pytest

from bzr_portal.services.serbian_text import fold, transliterate_cyrillic
from bzr_portal.services.topic_filter import check_question, is_bzr_related


@pytest.mark.unit
class TestTopicFilter:
    """Test cases for BZR keyword matching."""

    @pytest.mark.parametrize("question", [
        "Koje su obaveze poslodavca u vezi sa evakuacijom?",
        "Kako se radi PROCENA RIZIKA?",
        "Da li je lična zaštitna oprema obavezna?",
        "Sta je akt o proceni rizika",  # no diacritics
        "Шта је процена ризика?",  # Cyrillic
    ])
    def test_bzr_questions_accepted(self, question):
        assert is_bzr_related(question)

    @pytest.mark.parametrize("question", [
        "Kakvo će biti vreme sutra?",
        "Daj mi recept za palačinke",
    ])
    def test_off_topic_questions_rejected(self, question):
        assert not is_bzr_related(question)
        assert check_question(question, "free") is False

    def test_pro_subscription_skips_check(self):
        assert check_question("Daj mi recept za palačinke", "pro") is True
        assert check_question("Daj mi recept za palačinke", "PRO") is True


@pytest.mark.unit
class TestSerbianText:
    """Test cases for script and diacritic folding."""

    def test_transliterate_keeps_case(self):
        assert transliterate_cyrillic("Љубав и Њива") == "Ljubav i Njiva"

    def test_fold(self):
        assert fold("ЗАШТИТА") == "zastita"
        assert fold("Đak čita") == "djak cita"
