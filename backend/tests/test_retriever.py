from __future__ import annotations

import asyncio

import pytest

from conftest import ExplodingObserver, FakeIndex, make_chunk
from rag.errors import InvalidLimit, InvalidQuery, UpstreamSearchFailure
from rag.retriever import NOT_SELECTED, FilteredRetriever, filter_candidates
from rag.types import UNFILTERED, DocumentSelection, FilterRecord, OnlyDocuments, RetrievalSummary


def only(*ids: str) -> OnlyDocuments:
    return OnlyDocuments(DocumentSelection.of(ids))


def test_selected_documents_filter_preserves_order(fake_index, collector) -> None:
    retriever = FilteredRetriever(fake_index, observer=collector)
    out = asyncio.run(retriever.retrieve("refund policy", 5, only("file1.pdf", "file2.pdf")))

    assert [c.source_id for c in out] == ["file1.pdf", "file2.pdf"]
    assert out.candidates == 3
    assert out.filtered_out == 1

    dropped = collector.filtered
    assert dropped == [FilterRecord(chunk_id="file3.pdf#0", source_id="file3.pdf", reason=NOT_SELECTED)]
    summary = collector.records[-1]
    assert isinstance(summary, RetrievalSummary)
    assert (summary.candidates, summary.kept, summary.dropped, summary.returned) == (3, 2, 1, 2)


def test_limit_applies_after_filtering() -> None:
    index = FakeIndex(
        [
            make_chunk("other.pdf", 0, 0.99),
            make_chunk("file1.pdf", 0, 0.9),
            make_chunk("file1.pdf", 1, 0.5),
        ]
    )
    out = asyncio.run(FilteredRetriever(index).retrieve("q", 1, only("file1.pdf")))
    assert [c.id for c in out] == ["file1.pdf#0"]


def test_unfiltered_returns_truncated_candidates_in_order(ranked_chunks) -> None:
    index = FakeIndex(ranked_chunks)
    retriever = FilteredRetriever(index)

    out = asyncio.run(retriever.retrieve("q", 2))
    assert out.chunks == ranked_chunks[:2]
    assert index.calls == [("q", 2)]

    out = asyncio.run(retriever.retrieve("q", 10, UNFILTERED))
    assert out.chunks == ranked_chunks
    assert out.filtered_out == 0


def test_unfiltered_emits_no_filter_records(fake_index, collector) -> None:
    asyncio.run(FilteredRetriever(fake_index, observer=collector).retrieve("q", 5))
    assert collector.filtered == []
    assert len(collector.records) == 1


def test_matching_is_case_sensitive_and_exact() -> None:
    index = FakeIndex(
        [
            make_chunk("File1.pdf", 0),
            make_chunk("docs/file1.pdf", 0),
            make_chunk("file1.pdf ", 0),
            make_chunk("file1.pdf", 0),
        ]
    )
    out = asyncio.run(FilteredRetriever(index).retrieve("q", 10, only("file1.pdf")))
    assert [c.source_id for c in out] == ["file1.pdf"]


def test_everything_filtered_out_is_an_empty_result(fake_index, collector) -> None:
    out = asyncio.run(FilteredRetriever(fake_index, observer=collector).retrieve("q", 5, only("missing.pdf")))
    assert len(out) == 0
    assert out.candidates == 3
    assert len(collector.filtered) == 3


def test_filtered_search_asks_for_a_wider_candidate_pool(fake_index) -> None:
    retriever = FilteredRetriever(fake_index, candidate_multiplier=3, min_candidates=10)
    asyncio.run(retriever.retrieve("q", 2, only("file1.pdf")))
    asyncio.run(retriever.retrieve("q", 5, only("file1.pdf")))
    asyncio.run(retriever.retrieve("q", 5))
    assert [n for _, n in fake_index.calls] == [10, 15, 5]


def test_max_limit_caps_the_result(ranked_chunks) -> None:
    index = FakeIndex(ranked_chunks)
    out = asyncio.run(FilteredRetriever(index, max_limit=1).retrieve("q", 50))
    assert len(out) == 1
    assert index.calls == [("q", 1)]


def test_retrieve_is_idempotent(fake_index) -> None:
    retriever = FilteredRetriever(fake_index)
    first = asyncio.run(retriever.retrieve("q", 5, only("file2.pdf", "file1.pdf")))
    second = asyncio.run(retriever.retrieve("q", 5, only("file1.pdf", "file2.pdf")))
    assert first.chunks == second.chunks


@pytest.mark.parametrize("query", ["", "   ", None, 42])
def test_invalid_query_rejected_before_search(fake_index, collector, query) -> None:
    with pytest.raises(InvalidQuery):
        asyncio.run(FilteredRetriever(fake_index, observer=collector).retrieve(query, 5))
    assert fake_index.calls == []
    assert collector.records == []


@pytest.mark.parametrize("limit", [0, -1, 2.5, "3", True, None])
def test_invalid_limit_rejected_before_search(fake_index, limit) -> None:
    with pytest.raises(InvalidLimit):
        asyncio.run(FilteredRetriever(fake_index).retrieve("q", limit))
    assert fake_index.calls == []


def test_upstream_failure_propagates_without_results(collector) -> None:
    index = FakeIndex([make_chunk("file1.pdf")], fail=ConnectionError("index down"))
    with pytest.raises(UpstreamSearchFailure) as excinfo:
        asyncio.run(FilteredRetriever(index, observer=collector).retrieve("q", 5, only("file1.pdf")))
    assert isinstance(excinfo.value.__cause__, ConnectionError)
    assert excinfo.value.backend == "fake"
    assert collector.records == []


def test_failing_observer_does_not_change_results(fake_index) -> None:
    retriever = FilteredRetriever(fake_index, observer=ExplodingObserver())
    out = asyncio.run(retriever.retrieve("q", 5, only("file1.pdf", "file2.pdf")))
    assert [c.source_id for c in out] == ["file1.pdf", "file2.pdf"]


def test_per_call_observer_overrides_default(fake_index, collector) -> None:
    default = type(collector)()
    retriever = FilteredRetriever(fake_index, observer=default)
    asyncio.run(retriever.retrieve("q", 5, only("file1.pdf"), observer=collector))
    assert default.records == []
    assert len(collector.filtered) == 2


def test_cancellation_at_search_emits_nothing(fake_index, collector) -> None:
    async def scenario() -> None:
        fake_index.release = asyncio.Event()
        retriever = FilteredRetriever(fake_index, observer=collector)
        task = asyncio.create_task(retriever.retrieve("q", 5, only("file1.pdf")))
        await asyncio.sleep(0)
        assert fake_index.calls
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
    assert collector.records == []


def test_concurrent_requests_do_not_share_state(fake_index) -> None:
    retriever = FilteredRetriever(fake_index)

    async def scenario():
        return await asyncio.gather(
            retriever.retrieve("q", 5, only("file1.pdf")),
            retriever.retrieve("q", 5, only("file3.pdf")),
            retriever.retrieve("q", 5),
        )

    a, b, c = asyncio.run(scenario())
    assert [x.source_id for x in a] == ["file1.pdf"]
    assert [x.source_id for x in b] == ["file3.pdf"]
    assert len(c) == 3


def test_filter_candidates_is_a_subset_and_complete(ranked_chunks) -> None:
    scope = only("file1.pdf", "file3.pdf")
    kept, dropped = filter_candidates(ranked_chunks, scope)
    assert kept == [c for c in ranked_chunks if c.source_id in {"file1.pdf", "file3.pdf"}]
    assert [r.source_id for r in dropped] == ["file2.pdf"]
