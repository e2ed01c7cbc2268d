"""Unit tests for the pagination engine."""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta

import pytest

from pagewise.insights.core import (
    CursorComputationError,
    RowShapeError,
    ScanCancelledError,
    ScanState,
    TransportError,
    UpstreamShapeError,
    UpstreamShapePolicy,
)
from pagewise.insights.models import Page, TimeWindow
from pagewise.insights.runtime.pagination import TIME_QUANTUM, PaginationEngine
from pagewise.insights.sinks import BufferedJsonSink

T0 = datetime(2024, 1, 1, tzinfo=UTC)


def ts(offset_seconds: int) -> str:
    return (T0 + timedelta(seconds=offset_seconds)).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def page(*timestamps: str, extra: str = "x") -> Page:
    return Page(columns=["timestamp", "name"], rows=[[t, extra] for t in timestamps])


class FakeFetcher:
    """Serves pre-baked pages and records every query it receives."""

    def __init__(self, pages):
        self._pages = list(pages)
        self.queries: list[str] = []

    async def __call__(self, query: str):
        self.queries.append(query)
        if not self._pages:
            raise AssertionError("unexpected extra fetch")
        result = self._pages.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class FilteringUpstream:
    """Applies the page query's lower bound and row limit to a fixed table."""

    _START_RE = re.compile(r"timestamp >= datetime\('([^']+)'\)")
    _TAKE_RE = re.compile(r"take (\d+)$")

    def __init__(self, rows):
        self._rows = sorted(rows, key=lambda row: row[0])
        self.queries: list[str] = []

    async def __call__(self, query: str):
        self.queries.append(query)
        start = self._START_RE.search(query).group(1)
        limit = int(self._TAKE_RE.search(query).group(1))
        selected = [[stamp, ident] for stamp, ident in self._rows if stamp >= start][:limit]
        return Page(columns=["timestamp", "name"], rows=selected)


class RecordingSink(BufferedJsonSink):
    def __init__(self) -> None:
        super().__init__()
        self.pages: list[int] = []
        self.error: BaseException | None = None

    async def write_page(self, records):
        self.pages.append(len(records))
        await super().write_page(records)

    async def fail(self, exc):
        self.error = exc
        await super().fail(exc)


class TestPaginationEngine:
    """Test PaginationEngine loop behavior."""

    @pytest.mark.asyncio
    async def test_multi_page_scan(self):
        """Pages [T0,T1], [T2,T3], [T4] give three fetches and five ordered records."""
        fetcher = FakeFetcher(
            [page(ts(0), ts(1)), page(ts(2), ts(3)), page(ts(4))]
        )
        sink = RecordingSink()
        engine = PaginationEngine(fetcher, page_size=2)

        result = await engine.run("requests", TimeWindow(start=T0), sink)

        assert len(fetcher.queries) == 3
        assert result.pages_fetched == 3
        assert result.total_records == 5
        assert [r["timestamp"] for r in sink.records] == [ts(i) for i in range(5)]
        assert result.windows[2].start == T0 + timedelta(seconds=3) + TIME_QUANTUM
        assert "datetime('2024-01-01T00:00:03.001000Z')" in fetcher.queries[2]
        assert result.state == ScanState.COMPLETE
        assert engine.state == ScanState.COMPLETE
        assert sink.closed

    @pytest.mark.asyncio
    async def test_each_window_starts_after_last_emitted(self):
        """No window revisits an instant already consumed."""
        fetcher = FakeFetcher(
            [page(ts(0), ts(5)), page(ts(6), ts(6)), page(ts(9), ts(12)), page()]
        )
        sink = RecordingSink()
        result = await PaginationEngine(fetcher, page_size=2).run(
            "requests", TimeWindow(start=T0), sink
        )

        emitted = [r["timestamp"] for r in sink.records]
        last_per_page = [emitted[1], emitted[3], emitted[5]]
        for window, last in zip(result.windows[1:], last_per_page):
            assert window.start > datetime.strptime(last, "%Y-%m-%dT%H:%M:%S.%fZ").replace(
                tzinfo=UTC
            )
        assert all(a.start < b.start for a, b in zip(result.windows, result.windows[1:]))

    @pytest.mark.asyncio
    async def test_sentinel_first_page_yields_empty_result(self):
        fetcher = FakeFetcher([Page(columns=[], rows=[])])
        sink = RecordingSink()
        result = await PaginationEngine(fetcher, page_size=10).run(
            "requests", TimeWindow(start=T0), sink
        )
        assert len(fetcher.queries) == 1
        assert result.total_records == 0
        assert sink.body() == b"[]"

    @pytest.mark.asyncio
    async def test_sentinel_after_full_page_keeps_records(self):
        fetcher = FakeFetcher([page(ts(0), ts(1)), Page(columns=["timestamp"], rows=[])])
        sink = RecordingSink()
        result = await PaginationEngine(fetcher, page_size=2).run(
            "requests", TimeWindow(start=T0), sink
        )
        assert result.pages_fetched == 2
        assert len(sink.records) == 2
        assert result.state == ScanState.COMPLETE

    @pytest.mark.asyncio
    async def test_short_page_terminates(self):
        """A page shorter than the page size ends the loop whatever it contains."""
        fetcher = FakeFetcher([page(ts(0), "not-a-date")])
        sink = RecordingSink()
        result = await PaginationEngine(fetcher, page_size=3).run(
            "requests", TimeWindow(start=T0), sink
        )
        assert result.pages_fetched == 1
        assert sink.records[1]["timestamp"] == "not-a-date"

    @pytest.mark.asyncio
    async def test_page_query_shape(self):
        fetcher = FakeFetcher([page()])
        window = TimeWindow(start=T0, end=T0 + timedelta(hours=1))
        await PaginationEngine(fetcher, page_size=7).run("requests", window, RecordingSink())
        assert fetcher.queries[0] == (
            "requests | where timestamp >= datetime('2024-01-01T00:00:00.000000Z') "
            "and timestamp < datetime('2024-01-01T01:00:00.000000Z') "
            "| order by timestamp asc | take 7"
        )

    @pytest.mark.asyncio
    async def test_upper_bound_kept_fixed(self):
        end = T0 + timedelta(hours=1)
        fetcher = FakeFetcher([page(ts(0), ts(1)), page()])
        result = await PaginationEngine(fetcher, page_size=2).run(
            "requests", TimeWindow(start=T0, end=end), RecordingSink()
        )
        assert [w.end for w in result.windows] == [end, end]

    @pytest.mark.asyncio
    async def test_cursor_reaching_end_stops_without_fetch(self):
        end = T0 + timedelta(seconds=1, microseconds=500)
        fetcher = FakeFetcher([page(ts(0), ts(1))])
        result = await PaginationEngine(fetcher, page_size=2).run(
            "requests", TimeWindow(start=T0, end=end), RecordingSink()
        )
        assert result.pages_fetched == 1
        assert result.state == ScanState.COMPLETE

    @pytest.mark.asyncio
    async def test_unparseable_last_timestamp_is_fatal(self):
        """A full page whose last timestamp cannot be parsed fails the scan."""
        fetcher = FakeFetcher([page(ts(0), "not-a-date")])
        sink = RecordingSink()
        engine = PaginationEngine(fetcher, page_size=2)
        with pytest.raises(CursorComputationError):
            await engine.run("requests", TimeWindow(start=T0), sink)
        assert len(fetcher.queries) == 1
        assert engine.state == ScanState.FAILED
        assert isinstance(sink.error, CursorComputationError)
        assert len(sink.records) == 2

    @pytest.mark.asyncio
    async def test_missing_timestamp_column_is_fatal(self):
        fetcher = FakeFetcher([Page(columns=["name"], rows=[["a"], ["b"]])])
        with pytest.raises(CursorComputationError):
            await PaginationEngine(fetcher, page_size=2).run(
                "requests", TimeWindow(start=T0), RecordingSink()
            )

    @pytest.mark.asyncio
    async def test_cursor_must_advance(self):
        """Rows older than the window start cannot move the cursor backwards."""
        fetcher = FakeFetcher([page(ts(10), ts(20)), page(ts(1), ts(2))])
        with pytest.raises(CursorComputationError):
            await PaginationEngine(fetcher, page_size=2).run(
                "requests", TimeWindow(start=T0), RecordingSink()
            )

    @pytest.mark.asyncio
    async def test_row_shape_error_fails_scan(self):
        bad = Page(columns=["timestamp", "name"], rows=[[ts(0)]])
        sink = RecordingSink()
        engine = PaginationEngine(FakeFetcher([bad]), page_size=2)
        with pytest.raises(RowShapeError):
            await engine.run("requests", TimeWindow(start=T0), sink)
        assert sink.records == []
        assert engine.state == ScanState.FAILED

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self):
        fetcher = FakeFetcher([page(ts(0), ts(1)), TransportError("down", status_code=503)])
        sink = RecordingSink()
        with pytest.raises(TransportError):
            await PaginationEngine(fetcher, page_size=2).run(
                "requests", TimeWindow(start=T0), sink
            )
        assert len(sink.records) == 2
        assert sink.failed

    @pytest.mark.asyncio
    async def test_absent_table_on_first_page_is_error(self):
        engine = PaginationEngine(FakeFetcher([None]), page_size=2)
        with pytest.raises(UpstreamShapeError):
            await engine.run("requests", TimeWindow(start=T0), RecordingSink())

    @pytest.mark.asyncio
    async def test_absent_table_after_pages_is_end_of_data(self):
        fetcher = FakeFetcher([page(ts(0), ts(1)), None])
        sink = RecordingSink()
        result = await PaginationEngine(fetcher, page_size=2).run(
            "requests", TimeWindow(start=T0), sink
        )
        assert result.state == ScanState.COMPLETE
        assert len(sink.records) == 2

    @pytest.mark.asyncio
    async def test_tolerant_policy_accepts_absent_first_table(self):
        engine = PaginationEngine(
            FakeFetcher([None]), page_size=2, shape_policy=UpstreamShapePolicy.TOLERANT
        )
        sink = RecordingSink()
        await engine.run("requests", TimeWindow(start=T0), sink)
        assert sink.body() == b"[]"

    @pytest.mark.asyncio
    async def test_strict_policy_rejects_absent_later_table(self):
        fetcher = FakeFetcher([page(ts(0), ts(1)), None])
        engine = PaginationEngine(fetcher, page_size=2, shape_policy=UpstreamShapePolicy.STRICT)
        with pytest.raises(UpstreamShapeError):
            await engine.run("requests", TimeWindow(start=T0), RecordingSink())

    @pytest.mark.asyncio
    async def test_cancellation_checked_before_each_fetch(self):
        fetcher = FakeFetcher([page(ts(0), ts(1)), page(ts(2), ts(3))])
        sink = RecordingSink()
        checks = iter([False, True])
        engine = PaginationEngine(fetcher, page_size=2)
        with pytest.raises(ScanCancelledError):
            await engine.run(
                "requests", TimeWindow(start=T0), sink, is_cancelled=lambda: next(checks)
            )
        assert len(fetcher.queries) == 1
        assert len(sink.records) == 2
        assert engine.state == ScanState.FAILED

    @pytest.mark.asyncio
    async def test_boundary_tie_logged(self, caplog):
        fetcher = FakeFetcher([page(ts(0), ts(1), ts(1)), page()])
        with caplog.at_level("WARNING"):
            await PaginationEngine(fetcher, page_size=3).run(
                "requests", TimeWindow(start=T0), RecordingSink()
            )
        tie = [r for r in caplog.records if r.getMessage() == "page_boundary_tie"]
        assert len(tie) == 1
        assert tie[0].tied_rows == 2

    @pytest.mark.asyncio
    async def test_row_cut_at_page_limit_is_warned(self, caplog):
        """A single row on the last timestamp still warns when the page is full."""
        upstream = FilteringUpstream([(ts(0), 0), (ts(1), 1), (ts(1), 2), (ts(2), 3)])
        sink = RecordingSink()
        with caplog.at_level("WARNING"):
            await PaginationEngine(upstream, page_size=2).run(
                "requests", TimeWindow(start=T0), sink
            )

        # id 2 shares the boundary timestamp and falls past the page limit
        assert [r["name"] for r in sink.records] == [0, 1, 3]
        tie = [r for r in caplog.records if r.getMessage() == "page_boundary_tie"]
        assert len(tie) == 1
        assert tie[0].tied_rows == 1
        assert tie[0].timestamp == ts(1)

    @pytest.mark.asyncio
    async def test_short_page_not_warned(self, caplog):
        upstream = FilteringUpstream([(ts(0), 0), (ts(0), 1)])
        with caplog.at_level("WARNING"):
            await PaginationEngine(upstream, page_size=5).run(
                "requests", TimeWindow(start=T0), RecordingSink()
            )
        assert not [r for r in caplog.records if r.getMessage() == "page_boundary_tie"]

    @pytest.mark.asyncio
    async def test_run_only_once(self):
        engine = PaginationEngine(FakeFetcher([page()]), page_size=2)
        await engine.run("requests", TimeWindow(start=T0), RecordingSink())
        with pytest.raises(RuntimeError):
            await engine.run("requests", TimeWindow(start=T0), RecordingSink())

    @pytest.mark.parametrize("size", [0, -1, True, 2.5])
    def test_invalid_page_size_rejected(self, size):
        with pytest.raises(ValueError):
            PaginationEngine(FakeFetcher([]), page_size=size)
