"""Reversible IPv4 address to DNS label encoding.

Each octet of an address is replaced by a word from a 256-entry dictionary
and the four words are joined with hyphens, e.g. 10.0.0.1 -> "bis-ban-ban-bar".
The result is a single DNS label, so the scanner can prefix it to a domain
and recover the queried address from whatever name later reaches the
authoritative server.
"""
from __future__ import annotations

import ipaddress
import re
from pathlib import Path
from typing import Iterable, List, Protocol, Union

from dnsSweep.logging_config import get_logger

logger = get_logger("encoder")

DICTIONARY_SIZE = 256
MAX_LABEL_LENGTH = 63
SEPARATOR = "-"
# Four words plus three separators must fit in a single label
MAX_WORD_LENGTH = (MAX_LABEL_LENGTH - 3) // 4

WORD_PATTERN = re.compile(r"^[a-z0-9]+$")

_CONSONANTS = "bdfghjklmnprstvz"
_VOWELS = "aeio"
_FINALS = "nrst"

AddressLike = Union[str, int, ipaddress.IPv4Address]


class QueryTargetEncoder(Protocol):
    def encode(self, address: AddressLike) -> str:
        ...


def default_dictionary() -> List[str]:
    """256 pronounceable consonant-vowel-consonant syllables."""
    return [c + v + f for c in _CONSONANTS for v in _VOWELS for f in _FINALS]


def build_dictionary(path: Union[str, Path]) -> List[str]:
    """Load a word list: one word per line, blanks and '#' comments ignored.

    Words are lowercased and deduplicated in file order; the first 256 are
    kept.
    """
    dict_path = Path(path)
    if not dict_path.exists():
        raise FileNotFoundError(f"Dictionary not found: {dict_path}")

    words: List[str] = []
    seen = set()
    for line in dict_path.read_text(encoding="utf-8").splitlines():
        word = line.strip().lower()
        if not word or word.startswith("#") or word in seen:
            continue
        seen.add(word)
        words.append(word)
        if len(words) == DICTIONARY_SIZE:
            break

    if len(words) < DICTIONARY_SIZE:
        raise ValueError(
            f"Dictionary {dict_path} has {len(words)} usable words, need {DICTIONARY_SIZE}"
        )

    logger.info(
        "Dictionary loaded",
        extra={"action": "dictionary_load", "outcome": "success", "records": len(words)},
    )
    return words


class DictionaryEncoder:
    """Maps each address octet to a dictionary word."""

    def __init__(self, words: Iterable[str]) -> None:
        word_list = list(words)[:DICTIONARY_SIZE]
        if len(word_list) < DICTIONARY_SIZE:
            raise ValueError(f"Dictionary needs {DICTIONARY_SIZE} words, got {len(word_list)}")
        if len(set(word_list)) != DICTIONARY_SIZE:
            raise ValueError("Dictionary words must be unique")
        for word in word_list:
            if not WORD_PATTERN.match(word):
                raise ValueError(f"Dictionary word {word!r} is not a valid label fragment")
            if len(word) > MAX_WORD_LENGTH:
                raise ValueError(
                    f"Dictionary word {word!r} is longer than {MAX_WORD_LENGTH} characters"
                )
        self.words = word_list
        self._index = {word: i for i, word in enumerate(word_list)}

    @classmethod
    def default(cls) -> "DictionaryEncoder":
        return cls(default_dictionary())

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "DictionaryEncoder":
        return cls(build_dictionary(path))

    def encode(self, address: AddressLike) -> str:
        packed = ipaddress.IPv4Address(address).packed
        return SEPARATOR.join(self.words[octet] for octet in packed)

    def decode(self, token: str) -> ipaddress.IPv4Address:
        """Reverse encode(); accepts a bare token or a name starting with one."""
        label = token.strip().lower().split(".", 1)[0]
        parts = label.split(SEPARATOR)
        if len(parts) != 4:
            raise ValueError(f"Token {token!r} does not contain four words")
        try:
            octets = bytes(self._index[part] for part in parts)
        except KeyError as exc:
            raise ValueError(f"Unknown dictionary word {exc.args[0]!r} in {token!r}") from None
        return ipaddress.IPv4Address(octets)


def make_fqdn(token: str, domain: str) -> str:
    return f"{token}.{domain}"
