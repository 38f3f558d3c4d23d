"""Unit tests for academic PDF text cleaning."""

from herbrag.models import DocumentMetadata
from herbrag.processors.text_cleaning import (
    clean_academic_text,
    filter_short_lines,
    format_document_text,
    remove_captions,
    remove_header_pattern,
    remove_page_numbers,
    remove_repeated_lines,
    start_from_abstract,
    strip_academic_identifiers,
    truncate_trailing_sections,
)

BODY = "Ginger reduces nausea in clinical trials. " * 12


def test_start_from_abstract_drops_front_matter():
    text = "Effect of Ginger\nA. Author, B. Author\nABSTRACT\nGinger is a rhizome."
    assert start_from_abstract(text) == "ABSTRACT\nGinger is a rhizome."


def test_start_from_abstract_without_heading_is_unchanged():
    text = "Ginger is a rhizome used in cooking."
    assert start_from_abstract(text) == text


def test_start_from_abstract_uses_earliest_heading():
    text = "Title\nPENDAHULUAN\nIntro text\nABSTRAK\nRingkasan"
    assert start_from_abstract(text).startswith("PENDAHULUAN")


def test_header_pattern_removes_lines_sharing_long_words():
    text = "Herbal Medicine Review 12\nGinger reduces nausea.\nThe medicine works."
    cleaned = remove_header_pattern(text, "Herbal Medicine Review")
    assert "Ginger reduces nausea." in cleaned
    assert "medicine" not in cleaned.lower()


def test_short_header_pattern_is_ignored():
    text = "JTM 12\nGinger reduces nausea."
    assert remove_header_pattern(text, "JTM") == text
    assert remove_header_pattern(text, "") == text


def test_strip_academic_identifiers():
    text = "Contact a.b@univ.ac.id or https://journal.example.org/x and DOI: 10.1234/abc here"
    cleaned = strip_academic_identifiers(text)
    assert "@" not in cleaned
    assert "https" not in cleaned
    assert "example.org" not in cleaned
    assert "10.1234" not in cleaned
    assert cleaned.endswith("here")


def test_doi_link_leaves_bare_scheme():
    # DOIs are stripped before URLs, so a doi.org link loses its path first
    cleaned = strip_academic_identifiers("see https://doi.org/10.1/x now")
    assert cleaned == "see https:// now"


def test_remove_page_numbers():
    text = "Text line one\n12\n- 3 -\nMore text"
    lines = [l for l in remove_page_numbers(text).split("\n") if l.strip()]
    assert lines == ["Text line one", "More text"]


def test_filter_short_lines_keeps_headings_and_drops_noise():
    text = "\n".join([
        "Methods",
        "This sentence is definitely longer than forty characters.",
        "ab",
        "xyz",
        "Jurnal Farmasi Vol 12",
        "final line that is long enough",
    ])
    lines = filter_short_lines(text).split("\n")
    assert "Methods" in lines
    assert "ab" not in lines
    assert "xyz" in lines
    assert not any("Jurnal" in l for l in lines)


def test_remove_repeated_lines():
    text = "Running title of paper\nBody one here.\nRunning title of paper\nBody two here."
    cleaned = remove_repeated_lines(text)
    assert "Running title" not in cleaned
    assert "Body one here." in cleaned
    assert "Body two here." in cleaned


def test_conflicts_section_is_cut():
    text = "Body text.\nCONFLICT OF INTEREST\nNone declared."
    assert truncate_trailing_sections(text) == "Body text."


def test_numbered_references_are_cut():
    references = (
        "REFERENCES\n"
        "1. Smith J. Ginger study.\n"
        "2. Doe A. Turmeric review.\n"
        "3. Lee K. Garlic trial."
    )
    cleaned = truncate_trailing_sections(BODY + "\n" + references)
    assert "Smith" not in cleaned
    assert cleaned == BODY.strip()


def test_references_heading_in_last_tenth_is_kept():
    text = BODY + "\nReferences on request"
    assert "References on request" in truncate_trailing_sections(text)


def test_acknowledgements_are_cut():
    text = BODY + "\nACKNOWLEDGEMENTS\nWe thank the lab staff for their help with samples."
    cleaned = truncate_trailing_sections(text)
    assert "lab staff" not in cleaned


def test_remove_captions():
    text = "Figure 1. Ginger rhizome\nGinger is used."
    assert remove_captions(text).strip() == "Ginger is used."


def test_clean_academic_text_end_to_end():
    raw = "\n".join([
        "Jurnal Obat Tradisional 25(2) 2020 101",
        "Effect of ginger on nausea",
        "ABSTRACT",
        "Ginger has been used for centuries to relieve nausea and vomiting.",
        "DOI: 10.22146/jtm.5123",
        "Contact: author@ugm.ac.id",
        "102",
        "The rhizome contains gingerol which reduces inflammation in the gut.",
        "Figure 1. Ginger rhizome",
    ])
    cleaned = clean_academic_text(raw)
    assert cleaned.startswith("ABSTRACT")
    assert "gingerol" in cleaned
    assert "Effect of ginger" not in cleaned
    assert "DOI" not in cleaned
    assert "@" not in cleaned
    assert "102" not in cleaned
    assert "Figure 1" not in cleaned


def test_clean_academic_text_with_detected_patterns():
    raw = "ABSTRACT\nPhytomedica Bulletin\nGinger relieves nausea in most patients.\nPage footer text"
    cleaned = clean_academic_text(raw, header_pattern="Phytomedica Bulletin", footer_pattern="Page footer text")
    assert "Phytomedica" not in cleaned
    assert "Page footer" not in cleaned
    assert "Ginger relieves nausea" in cleaned


def test_format_document_text():
    metadata = DocumentMetadata(title="Ginger and Nausea", authors="A. Author", year="2020")
    text = format_document_text(metadata, "Body text.")
    assert text == (
        "Judul: Ginger and Nausea\n\nPenulis: A. Author\n\nTahun: 2020\n\nIsi:\nBody text."
    )


def test_format_document_text_falls_back():
    text = format_document_text(DocumentMetadata(), "Body.", fallback_title="paper.pdf")
    assert text.startswith("Judul: paper.pdf\n\nPenulis: Unknown\n\nTahun: Unknown")
