"""
Test models
"""
from slides2pdf.core.models import (
    AssetCandidate,
    AssetOrigin,
    DocumentJob,
    ExtractionResult,
    JobStatus,
    deduplicate_candidates,
    sanitize_title,
)


def _candidate(url: str, index: int, origin=AssetOrigin.DOM_SELECTOR) -> AssetCandidate:
    return AssetCandidate(url=url, page_index=index, origin=origin)


class TestSanitizeTitle:
    """Test title sanitization"""

    def test_strips_unsafe_characters(self):
        assert sanitize_title('Annual "Report": 2023/24?') == "Annual_Report_202324"

    def test_collapses_whitespace(self):
        assert sanitize_title("  Deck   with \t spaces ") == "Deck_with_spaces"

    def test_length_bounded(self):
        assert len(sanitize_title("x" * 500)) == 100

    def test_empty_falls_back_to_default(self):
        assert sanitize_title("") == "document"
        assert sanitize_title("???") == "document"
        assert sanitize_title(None, default="presentation") == "presentation"

    def test_idempotent(self):
        """Sanitizing twice gives the same result as sanitizing once"""
        samples = [
            "Plain title",
            "Título con acentos y símbolos ¡!",
            " trailing space " * 20,
            "a-b_c d/e\\f:g*h?i\"j<k>l|m",
            "",
            "tab\tnew\nline",
        ]
        for raw in samples:
            once = sanitize_title(raw)
            assert sanitize_title(once) == once


class TestDeduplicate:
    """Test candidate deduplication"""

    def test_removes_duplicates_keeping_first_seen_order(self):
        candidates = [
            _candidate("https://cdn.example.com/1.jpg", 1),
            _candidate("https://cdn.example.com/2.jpg", 2),
            _candidate("https://cdn.example.com/1.jpg", 3, AssetOrigin.GENERIC),
            _candidate("https://cdn.example.com/3.jpg", 4),
            _candidate("https://cdn.example.com/2.jpg", 5),
        ]
        unique = deduplicate_candidates(candidates)

        assert len(unique) == len(candidates) - 2
        assert [c.url for c in unique] == [
            "https://cdn.example.com/1.jpg",
            "https://cdn.example.com/2.jpg",
            "https://cdn.example.com/3.jpg",
        ]
        assert unique[0].origin == AssetOrigin.DOM_SELECTOR

    def test_renumbers_page_indexes(self):
        candidates = [_candidate("a", 7), _candidate("a", 8), _candidate("b", 12)]
        unique = deduplicate_candidates(candidates)
        assert [c.page_index for c in unique] == [1, 2]

    def test_does_not_mutate_input(self):
        original = _candidate("a", 9)
        deduplicate_candidates([original])
        assert original.page_index == 9


class TestDocumentJob:
    """Test DocumentJob lifecycle helpers"""

    def test_defaults(self):
        job = DocumentJob(source_url="https://www.scribd.com/document/1/x")
        assert job.status == JobStatus.PENDING
        assert job.mode == "/i"
        assert len(job.job_id) == 32
        assert job.output_filename is None

    def test_transition_updates_timestamp(self):
        job = DocumentJob(source_url="https://example.com")
        before = job.updated_at
        job.transition(JobStatus.EXTRACTING, "Extracting")
        assert job.status == JobStatus.EXTRACTING
        assert job.message == "Extracting"
        assert job.updated_at >= before

    def test_terminal_states(self):
        assert JobStatus.COMPLETED.is_terminal
        assert JobStatus.FAILED.is_terminal
        assert not JobStatus.DOWNLOADING.is_terminal

    def test_set_title_sanitizes(self):
        job = DocumentJob(source_url="https://example.com")
        job.set_title("My: Deck")
        assert job.title == "My_Deck"


class TestExtractionResult:
    def test_is_empty(self):
        assert ExtractionResult(title="x").is_empty
        assert not ExtractionResult(title="x", assets=[_candidate("a", 1)]).is_empty
