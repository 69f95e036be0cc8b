"""Serbian script helpers shared by the topic filter and slug generation."""

CYRILLIC_TO_LATIN = {
    'а': 'a', 'б': 'b', 'в': 'v', 'г': 'g', 'д': 'd', 'ђ': 'đ', 'е': 'e', 'ж': 'ž',
    'з': 'z', 'и': 'i', 'ј': 'j', 'к': 'k', 'л': 'l', 'љ': 'lj', 'м': 'm', 'н': 'n',
    'њ': 'nj', 'о': 'o', 'п': 'p', 'р': 'r', 'с': 's', 'т': 't', 'ћ': 'ć', 'у': 'u',
    'ф': 'f', 'х': 'h', 'ц': 'c', 'ч': 'č', 'џ': 'dž', 'ш': 'š',
}

DIACRITICS = {'č': 'c', 'ć': 'c', 'š': 's', 'ž': 'z', 'đ': 'dj'}


def transliterate_cyrillic(text: str) -> str:
    """Serbian Cyrillic to Latin script; case is preserved for the first letter."""
    out = []
    for char in text:
        latin = CYRILLIC_TO_LATIN.get(char.lower())
        if latin is None:
            out.append(char)
        elif char.isupper():
            out.append(latin[0].upper() + latin[1:])
        else:
            out.append(latin)
    return "".join(out)


def strip_diacritics(text: str) -> str:
    return "".join(DIACRITICS.get(char, char) for char in text)


def fold(text: str) -> str:
    """Lower-case Latin form without diacritics, used for keyword matching."""
    return strip_diacritics(transliterate_cyrillic(text).lower())
