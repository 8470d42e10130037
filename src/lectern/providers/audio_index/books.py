"""Canonical book codes used in section ids (``JN3`` = John chapter 3)."""

from __future__ import annotations

OT_BOOKS: list[tuple[str, str]] = [
    ("GN", "Genesis"), ("EX", "Exodus"), ("LV", "Leviticus"), ("NU", "Numbers"),
    ("DT", "Deuteronomy"), ("JS", "Joshua"), ("JG", "Judges"), ("RT", "Ruth"),
    ("S1", "1 Samuel"), ("S2", "2 Samuel"), ("K1", "1 Kings"), ("K2", "2 Kings"),
    ("R1", "1 Chronicles"), ("R2", "2 Chronicles"), ("ER", "Ezra"), ("NH", "Nehemiah"),
    ("ES", "Esther"), ("JB", "Job"), ("PS", "Psalms"), ("PR", "Proverbs"),
    ("EC", "Ecclesiastes"), ("SS", "Song of Solomon"), ("IS", "Isaiah"), ("JR", "Jeremiah"),
    ("LM", "Lamentations"), ("EK", "Ezekiel"), ("DN", "Daniel"), ("HO", "Hosea"),
    ("JL", "Joel"), ("AM", "Amos"), ("OB", "Obadiah"), ("JH", "Jonah"),
    ("MC", "Micah"), ("NM", "Nahum"), ("HK", "Habakkuk"), ("ZP", "Zephaniah"),
    ("HG", "Haggai"), ("ZC", "Zechariah"), ("ML", "Malachi"),
]  # fmt: skip

NT_BOOKS: list[tuple[str, str]] = [
    ("MT", "Matthew"), ("MK", "Mark"), ("LK", "Luke"), ("JN", "John"),
    ("AC", "Acts"), ("RM", "Romans"), ("C1", "1 Corinthians"), ("C2", "2 Corinthians"),
    ("GL", "Galatians"), ("EP", "Ephesians"), ("PP", "Philippians"), ("CL", "Colossians"),
    ("H1", "1 Thessalonians"), ("H2", "2 Thessalonians"), ("T1", "1 Timothy"), ("T2", "2 Timothy"),
    ("TT", "Titus"), ("PM", "Philemon"), ("HB", "Hebrews"), ("JM", "James"),
    ("P1", "1 Peter"), ("P2", "2 Peter"), ("J1", "1 John"), ("J2", "2 John"),
    ("J3", "3 John"), ("JD", "Jude"), ("RV", "Revelation"),
]  # fmt: skip

BOOK_NAMES: dict[str, str] = dict(OT_BOOKS + NT_BOOKS)


def book_from_number(number: int) -> str | None:
    """Book code for a 1-based canonical book number (1-39 OT, 40-66 NT)."""
    if 1 <= number <= len(OT_BOOKS):
        return OT_BOOKS[number - 1][0]
    if len(OT_BOOKS) < number <= len(OT_BOOKS) + len(NT_BOOKS):
        return NT_BOOKS[number - len(OT_BOOKS) - 1][0]
    return None
