"""
Regex heuristics that let the chat answer without the model.

- quick commands: fixed navigation/contact questions with canned replies
- book queries: text that names a title (quoted) or talks about books
- negative answers: model replies that claim nothing was found
"""
import re
from typing import List, Optional, Tuple

from . import prompts

# Order matters: e-books is checked before books.
QUICK_COMMANDS: List[Tuple[str, re.Pattern, str]] = [
    ("contact_support", re.compile(
        r"\b(contact|call|phone|email|reach)\b.*\b(support|you|team|us)\b|\bcustomer (care|service)\b|\bphone number\b",
        re.I), prompts.CONTACT_REPLY),
    ("browse_ebooks", re.compile(r"\b(browse|show|see|view|list)\b.*\be-?books?\b", re.I), prompts.BROWSE_EBOOKS_REPLY),
    ("browse_books", re.compile(r"\b(browse|show|see|view|list)\b.*\bbooks?\b|\bbookshop\b", re.I), prompts.BROWSE_BOOKS_REPLY),
    ("browse_computers", re.compile(
        r"\b(browse|show|see|view|list)\b.*\b(computers?|accessories|chargers?|cables?)\b", re.I),
        prompts.BROWSE_COMPUTERS_REPLY),
    ("track_order", re.compile(r"\b(track|where is|status of)\b.*\border\b|\border status\b", re.I), prompts.TRACK_ORDER_REPLY),
    ("business_services", re.compile(
        r"\bbusiness (center|centre|services?)\b|\b(print|printing|editing|project analysis)\b", re.I),
        prompts.BUSINESS_SERVICES_REPLY),
]

QUOTED = re.compile(r"[\"“”]([^\"“”]{2,120})[\"“”]")

BOOK_KEYWORDS = re.compile(
    r"\b(e-?books?|books?|novels?|textbooks?|titles?|authors?|written by|paperback|hardcover|pdf)\b", re.I)

# Leading phrases removed before a keyword query is sent to inventory search.
FILLER = re.compile(
    r"^(?:hi|hello|hey|please|pls|do you (?:guys )?(?:have|sell|stock)|is there|are there|have you got|"
    r"i(?:'m| am) looking for|i want|i need|can i (?:get|buy)|looking for|any|the|a|an)\b[\s,]*",
    re.I)
TRAILING = re.compile(r"\b(?:e-?books?|books?|novels?|textbooks?|in stock|available|please|pls)\b[\s?.!]*$", re.I)

NEGATIVE_ANSWER = re.compile(
    r"\b(couldn'?t|could not|can'?t|cannot|unable to|wasn'?t able to|was not able to)\s+(find|locate)\b"
    r"|\b(don'?t|do not)\s+(currently\s+)?(have|stock|carry)\b"
    r"|\bno (matches|results)\b|\bnot (currently )?available\b",
    re.I)


def match_quick_command(text: str) -> Optional[Tuple[str, str]]:
    """Return (command name, reply) for the first quick command the text matches."""
    for name, pattern, reply in QUICK_COMMANDS:
        if pattern.search(text):
            return name, reply
    return None


def quoted_titles(text: str) -> List[str]:
    return [m.strip() for m in QUOTED.findall(text) if m.strip()]


def looks_like_book_query(text: str) -> bool:
    return bool(quoted_titles(text)) or bool(BOOK_KEYWORDS.search(text))


def extract_book_query(text: str) -> Optional[str]:
    """
    Best search term for a book-looking message, or None.

    A quoted title wins; otherwise filler phrases and trailing
    book words are stripped from the message.
    """
    titles = quoted_titles(text)
    if titles:
        return titles[0]
    if not BOOK_KEYWORDS.search(text):
        return None

    term = text.strip().rstrip("?.! ")
    previous = None
    while previous != term:
        previous = term
        term = FILLER.sub("", term).strip()
    term = TRAILING.sub("", term).strip(" ,?.!")
    term = re.sub(r"\b(?:called|titled|named|by)\b\s*$", "", term, flags=re.I).strip()
    return term if len(term) >= 2 else None


def is_negative_answer(text: str) -> bool:
    return bool(NEGATIVE_ANSWER.search(text))
