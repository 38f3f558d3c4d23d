"""
Heuristic cleaning of text extracted from academic PDFs.

Each rule is a pure ``str -> str`` function so rules can be tested one by
one; ``clean_academic_text`` applies them in a fixed order, and the order
matters because later rules see the output of earlier ones.
"""
from collections import Counter
from typing import Optional
import re

from ..models import DocumentMetadata

# Earliest of these marks the start of the paper body
_START_PATTERNS = [
    re.compile(r"\bABSTRACT\b", re.IGNORECASE),
    re.compile(r"\bAbstract\b"),
    re.compile(r"\bABSTRAK\b", re.IGNORECASE),
    re.compile(r"\bINTRODUCTION\b", re.IGNORECASE),
    re.compile(r"\bPENDAHULUAN\b", re.IGNORECASE),
]

_METADATA_LINE_PATTERNS = [
    re.compile(r"^.*?(?:Majalah|Journal|Jurnal|ISSN|Vol\.|Volume).*?$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^.*?(?:Traditional|Medicine|Obat|Tradisional).*?ISSN.*?$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^.*?(?:p-ISSN|e-ISSN).*?$", re.IGNORECASE | re.MULTILINE),
]

_JOURNAL_FOOTER_PATTERNS = [
    # Journal name, vol(issue), year and page number
    re.compile(r"^.*?(?:Majalah|Journal|Jurnal).*?\d+\(\d+\).*?\d{4}\s*\d+\s*$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^.*?(?:Majalah|Journal|Jurnal).*?\d+.*?\d{4}.*?$", re.IGNORECASE | re.MULTILINE),
]

_IDENTIFIER_PATTERNS = [
    re.compile(r"ISSN[- ]*[pe]?\s*:?\s*\d{4}[-\s]*\d{4}", re.IGNORECASE),
    re.compile(r"DOI\s*:?\s*[\d./a-z-]+", re.IGNORECASE),
    re.compile(r"https?://[^\s]+", re.IGNORECASE),
    re.compile(r"[\w.-]+@[\w.-]+\.[a-z]{2,}", re.IGNORECASE),
]

_PAGE_NUMBER_PATTERNS = [
    re.compile(r"^\s*\d+\s*$", re.MULTILINE),
    re.compile(r"^\s*-\s*\d+\s*-\s*$", re.MULTILINE),
    re.compile(r"^.*?\d{4}\s+\d{1,4}\s*$", re.MULTILINE),
]

_JOURNAL_LINE = re.compile(r"(?:Majalah|Journal|Jurnal).*?\d+", re.IGNORECASE)

_CONFLICTS = re.compile(
    r"\b(CONFLICTS?\s+OF\s+INTEREST|COMPETING\s+INTERESTS?|KONFLIK\s+KEPENTINGAN)\b",
    re.IGNORECASE,
)
_ACKNOWLEDGEMENTS = re.compile(
    r"\b(ACKNOWLEDGE?MENTS?|UCAPAN\s+TERIMA\s+KASIH)\b",
    re.IGNORECASE,
)
_REFERENCES = re.compile(
    r"\b(REFERENCES?|DAFTAR\s+PUSTAKA|BIBLIOGRAPHY|LITERATUR|CITATIONS?)\b",
    re.IGNORECASE,
)
_NUMBERED_REFERENCE = re.compile(r"^\s*\d+\.\s+[A-Z]", re.MULTILINE)
_AUTHOR_CONTRIBUTIONS = re.compile(
    r"\b(AUTHORS?\s+CONTRIBUTIONS?|KONTRIBUSI\s+PENULIS)\b",
    re.IGNORECASE,
)

_CAPTION = re.compile(
    r"^(Figure|Fig\.|Table|Tabel|Gambar)\s*\d+[:.].{0,200}$",
    re.IGNORECASE | re.MULTILINE,
)

# Trailing sections may only be cut inside this fraction of the text
SECTION_POSITION_LIMIT = 0.9
# A references heading is trusted when what follows is shorter than this fraction
REFERENCES_REMAINDER_LIMIT = 0.4

PATTERN_MIN_LENGTH = 5
HEADER_WORD_MIN_LENGTH = 5
SHORT_LINE_LENGTH = 15
HEADING_NEXT_LINE_LENGTH = 40
NOISE_LINE_LENGTH = 3
REPEATED_LINE_MIN = 5
REPEATED_LINE_MAX = 150


def start_from_abstract(text: str) -> str:
    """Drop everything before the first abstract/introduction heading."""
    positions = [m.start() for m in (p.search(text) for p in _START_PATTERNS) if m]
    if positions:
        start = min(positions)
        if start > 0:
            return text[start:]
    return text


def remove_header_pattern(text: str, header_pattern: Optional[str]) -> str:
    """Remove a detected running header, plus any line sharing one of its long words."""
    if not header_pattern or len(header_pattern) <= PATTERN_MIN_LENGTH:
        return text

    text = re.sub(re.escape(header_pattern), "", text, flags=re.IGNORECASE)
    for word in header_pattern.split():
        if len(word) > HEADER_WORD_MIN_LENGTH:
            text = re.sub(
                r"^.*?" + re.escape(word) + r".*?$",
                "",
                text,
                flags=re.IGNORECASE | re.MULTILINE,
            )
    return text


def remove_journal_metadata_lines(text: str) -> str:
    for pattern in _METADATA_LINE_PATTERNS:
        text = pattern.sub("", text)
    return text


def remove_footer_pattern(text: str, footer_pattern: Optional[str]) -> str:
    if not footer_pattern or len(footer_pattern) <= PATTERN_MIN_LENGTH:
        return text
    return re.sub(re.escape(footer_pattern), "", text, flags=re.IGNORECASE)


def remove_journal_footer_lines(text: str) -> str:
    for pattern in _JOURNAL_FOOTER_PATTERNS:
        text = pattern.sub("", text)
    return text


def strip_academic_identifiers(text: str) -> str:
    """Strip ISSN codes, DOIs, URLs and email addresses wherever they occur."""
    for pattern in _IDENTIFIER_PATTERNS:
        text = pattern.sub("", text)
    return text


def remove_page_numbers(text: str) -> str:
    for pattern in _PAGE_NUMBER_PATTERNS:
        text = pattern.sub("", text)
    return text


def normalize_whitespace(text: str) -> str:
    text = re.sub(r"[ \t]+", " ", text)
    return re.sub(r"\n\s*\n\s*\n+", "\n\n", text)


def filter_short_lines(text: str) -> str:
    """
    Drop journal-name lines and 1-2 character noise lines.

    A short line followed by a long one is treated as a section heading
    and kept. Blank lines are always kept.
    """
    lines = text.split("\n")
    kept = []
    for index, line in enumerate(lines):
        trimmed = line.strip()
        if not trimmed:
            kept.append(line)
            continue
        if _JOURNAL_LINE.search(trimmed):
            continue
        if len(trimmed) < SHORT_LINE_LENGTH:
            next_line = lines[index + 1] if index + 1 < len(lines) else None
            if next_line and len(next_line.strip()) > HEADING_NEXT_LINE_LENGTH:
                kept.append(line)
            elif len(trimmed) >= NOISE_LINE_LENGTH:
                kept.append(line)
            continue
        kept.append(line)
    return "\n".join(kept)


def remove_repeated_lines(text: str) -> str:
    """Remove every occurrence of a mid-length line that appears more than once."""
    frequency = Counter(
        trimmed
        for trimmed in (line.strip() for line in text.split("\n"))
        if REPEATED_LINE_MIN < len(trimmed) < REPEATED_LINE_MAX
    )
    for line, count in frequency.items():
        if count >= 2:
            text = re.sub(r"^\s*" + re.escape(line) + r"\s*$", "", text, flags=re.MULTILINE)
    return text


def truncate_trailing_sections(text: str) -> str:
    """
    Cut conflicts of interest, acknowledgements, references and author
    contributions along with everything after them.
    """
    match = _CONFLICTS.search(text)
    if match and match.start() > 0:
        text = text[:match.start()].strip()

    match = _ACKNOWLEDGEMENTS.search(text)
    if match and 0 < match.start() < len(text) * SECTION_POSITION_LIMIT:
        text = text[:match.start()].strip()

    match = _REFERENCES.search(text)
    if match and 0 < match.start() < len(text) * SECTION_POSITION_LIMIT:
        remainder = text[match.start():]
        numbered = _NUMBERED_REFERENCE.search(remainder) is not None
        if numbered or len(remainder) < len(text) * REFERENCES_REMAINDER_LIMIT:
            text = text[:match.start()].strip()

    match = _AUTHOR_CONTRIBUTIONS.search(text)
    if match and 0 < match.start() < len(text) * SECTION_POSITION_LIMIT:
        text = text[:match.start()].strip()

    return text


def remove_captions(text: str) -> str:
    return _CAPTION.sub("", text)


def clean_academic_text(
    text: str,
    header_pattern: Optional[str] = "",
    footer_pattern: Optional[str] = ""
) -> str:
    """
    Clean academic text by removing headers, footers, and metadata.

    Args:
        text: Raw text extracted from the PDF
        header_pattern: Repeating page header detected by the LLM (may be empty)
        footer_pattern: Repeating page footer detected by the LLM (may be empty)

    Returns:
        Trimmed body text; may be empty for pathological input
    """
    cleaned = start_from_abstract(text)
    cleaned = remove_header_pattern(cleaned, header_pattern)
    cleaned = remove_journal_metadata_lines(cleaned)
    cleaned = remove_footer_pattern(cleaned, footer_pattern)
    cleaned = remove_journal_footer_lines(cleaned)
    cleaned = strip_academic_identifiers(cleaned)
    cleaned = remove_page_numbers(cleaned)
    cleaned = normalize_whitespace(cleaned)
    cleaned = filter_short_lines(cleaned)
    cleaned = remove_repeated_lines(cleaned)
    cleaned = truncate_trailing_sections(cleaned)
    cleaned = remove_captions(cleaned)
    return normalize_whitespace(cleaned).strip()


def format_document_text(metadata: DocumentMetadata, cleaned_text: str, fallback_title: str = "") -> str:
    """Prefix cleaned text with title/author/year; the body follows the ``Isi:`` marker."""
    return (
        f"Judul: {metadata.title or fallback_title}\n\n"
        f"Penulis: {metadata.authors or 'Unknown'}\n\n"
        f"Tahun: {metadata.year or 'Unknown'}\n\n"
        f"Isi:\n{cleaned_text}"
    )
