import re
from typing import List, Optional, Tuple

FUNCTION_WORDS = frozenset([
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
    "is", "are", "was", "were", "be", "been", "it", "this", "that", "from", "as", "so",
])

FILLER_WORDS = frozenset(["um", "uh", "uhh", "uhm", "er", "erm", "hmm"])
FILLER_PHRASES = ("you know", "i mean", "sort of", "kind of")

# "like" only counts as a filler when set off by commas ("it was, like, huge")
FILLER_LIKE = re.compile(r",\s*like\s*,", re.IGNORECASE)


def count_actual_words(text: str) -> int:
    """
    Count actual words in text, excluding punctuation and special characters.

    Args:
        text: Input text to count words from

    Returns:
        int: Number of actual words
    """
    if not text:
        return 0

    # Remove extra whitespace and normalize
    text = text.strip()

    # Remove common punctuation that might be counted as words
    text = re.sub(r'[.,!?;:"\(\)\[\]\{\}]', ' ', text)

    # Split on whitespace and filter out empty strings
    words = [word for word in text.split() if word.strip(" '")]

    return len(words)


def get_sentence_count(text: str) -> int:
    """
    Count the number of sentences in the text.

    Args:
        text: Input text

    Returns:
        int: Number of sentences
    """
    return len(split_sentences(text))


def split_sentences(text: str) -> List[str]:
    """Split on sentence-ending punctuation and drop empty pieces"""
    if not text:
        return []
    return [s.strip() for s in re.split(r'[.!?]+', text) if s.strip()]


def extract_words(text: str) -> List[str]:
    """Lower-case, punctuation-stripped word tokens"""
    if not text:
        return []
    cleaned = re.sub(r"[^\w\s']", " ", text.lower())
    return [word.strip("'") for word in cleaned.split() if word.strip("'")]


def is_content_word(word: str) -> bool:
    return word.lower() not in FUNCTION_WORDS and len(word) > 2


def find_word_span(text: str, word: str, occurrence: int = 0) -> Optional[Tuple[int, int]]:
    """Character span of the n-th whole-word, case-insensitive occurrence of word"""
    pattern = re.compile(r"\b" + re.escape(word) + r"\b", re.IGNORECASE)
    for index, match in enumerate(pattern.finditer(text)):
        if index == occurrence:
            return match.start(), match.end()
    return None


def count_fillers(text: str) -> int:
    """Count filler words and filler phrases in a transcript"""
    if not text:
        return 0
    words = extract_words(text)
    count = sum(1 for word in words if word in FILLER_WORDS)
    lowered = " ".join(words)
    for phrase in FILLER_PHRASES:
        count += len(re.findall(r"\b" + re.escape(phrase) + r"\b", lowered))
    count += len(FILLER_LIKE.findall(text))
    return count
