"""Keyword check that keeps free-tier questions on workplace safety topics."""
import logging

from bzr_portal.services.serbian_text import fold

logger = logging.getLogger(__name__)

BZR_KEYWORDS = [
    "bezbednost", "zdravlje", "rad", "zaštita", "rizik", "opasnost", "povreda", "povrede",
    "nezgoda", "nesreća", "pravila", "zakon", "propis", "propisi", "obuka", "trening",
    "sigurnost", "procena", "mere", "mera", "zaštitna", "oprema", "inspekcija", "akt",
    "procena rizika", "ppe", "lična zaštitna", "primena", "pravilnik", "obaveze",
    "radnog mesta", "osposobljavanje", "instrukcije", "pružanje prve pomoći", "prva pomoć",
    "prve pomoći", "hitna pomoć", "evakuacija", "požar", "protivpožarna", "protivpožarne",
    "eksplozija", "ventilacija", "buka", "vibracije", "zračenje", "temperatura", "ergonomija",
    "hemikalije", "materije", "otpad", "inspektor", "odgovornost", "lice za bzr", "bzr",
    "btzbr", "licenca", "provera", "nadzor", "prevencija", "uputstva", "elaborat",
    "službeni glasnik",
]

OFF_TOPIC_MESSAGE = (
    "Kao FREE korisnik, možete postavljati samo pitanja vezana za bezbednost i zdravlje na radu. "
    "Ažurirajte na PRO za neograničen pristup AI asistentu."
)

_FOLDED_KEYWORDS = [fold(keyword) for keyword in BZR_KEYWORDS]


def is_bzr_related(question: str) -> bool:
    """Case-insensitive substring match; Cyrillic and missing diacritics are accepted."""
    folded = fold(question)
    return any(keyword in folded for keyword in _FOLDED_KEYWORDS)


def check_question(question: str, subscription: str) -> bool:
    """True if the question may proceed. Pro subscribers skip the check."""
    if (subscription or "free").lower() == "pro":
        return True
    allowed = is_bzr_related(question)
    if not allowed:
        logger.info(f"Rejected off-topic question from free tier: '{question[:80]}'")
    return allowed
