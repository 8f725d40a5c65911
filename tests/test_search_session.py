"""Tests for the search & suggestion session."""

import asyncio

from fakes import EchoSuggestions, GatedSearch, GatedSuggestions, StaticSearch, place

from poi_finder.errors import NoResults, SearchFailed, SuggestionFailed
from poi_finder.models.config import FinderConfig
from poi_finder.models.map import MapRegion
from poi_finder.models.poi import Coordinate
from poi_finder.models.search import SearchState
from poi_finder.search.session import SearchSession

REGION = MapRegion.around(Coordinate(latitude=6.5244, longitude=3.3792), 0.05)


def _session(search=None, suggestions=None, debounce: float = 0.0, events=None) -> SearchSession:
    return SearchSession(
        search or StaticSearch(),
        suggestions or EchoSuggestions(),
        config=FinderConfig(debounce_seconds=debounce),
        on_change=events.append if events is not None else None,
    )


class TestSuggestions:
    def test_debounce_coalesces_rapid_typing(self):
        """Only the last text of a burst reaches the provider."""
        provider = EchoSuggestions()

        async def scenario():
            session = _session(suggestions=provider, debounce=0.05)
            for text in ["p", "pi", "piz"]:
                session.update_query(text)
            assert session.debounce_pending
            await asyncio.sleep(0.1)
            await session.drain()
            return session

        session = asyncio.run(scenario())
        assert provider.calls == ["piz"]
        assert [s.title for s in session.suggestions] == ["piz place"]
        assert session.state == SearchState.COMPLETED

    def test_unchanged_text_is_suppressed(self):
        provider = EchoSuggestions()

        async def scenario():
            session = _session(suggestions=provider, debounce=0.02)
            session.update_query("piz")
            await asyncio.sleep(0.05)
            await session.drain()
            session.update_query("pizz")
            session.update_query("piz")
            await asyncio.sleep(0.05)
            await session.drain()

        asyncio.run(scenario())
        assert provider.calls == ["piz"]

    def test_empty_text_clears_immediately(self):
        provider = EchoSuggestions()
        events = []

        async def scenario():
            session = _session(suggestions=provider, events=events)
            session.update_query("piz")
            await asyncio.sleep(0.01)
            await session.drain()
            assert session.suggestions
            session.update_query("")
            assert session.suggestions == []
            assert not session.debounce_pending

        asyncio.run(scenario())
        assert provider.calls == ["piz"]
        assert events.count("suggestions") == 2

    def test_empty_text_cancels_pending_timer(self):
        provider = EchoSuggestions()

        async def scenario():
            session = _session(suggestions=provider, debounce=0.02)
            session.update_query("pi")
            session.update_query("")
            await asyncio.sleep(0.05)

        asyncio.run(scenario())
        assert provider.calls == []

    def test_retyping_after_clear_is_forwarded_again(self):
        provider = EchoSuggestions()

        async def scenario():
            session = _session(suggestions=provider)
            session.update_query("piz")
            await asyncio.sleep(0.01)
            session.update_query("")
            session.update_query("piz")
            await asyncio.sleep(0.01)
            await session.drain()
            return session

        session = asyncio.run(scenario())
        assert provider.calls == ["piz", "piz"]
        assert session.suggestions

    def test_stale_batch_is_discarded(self):
        """'piz' answered after 'pizza' was forwarded must not win."""
        provider = GatedSuggestions()

        async def scenario():
            session = _session(suggestions=provider)
            session.update_query("piz")
            await asyncio.sleep(0.01)
            session.update_query("pizza")
            await asyncio.sleep(0.01)
            assert provider.calls == ["piz", "pizza"]

            provider.release("pizza")
            await asyncio.sleep(0.01)
            provider.release("piz")
            await session.drain()
            return session

        session = asyncio.run(scenario())
        assert [s.title for s in session.suggestions] == ["pizza place"]

    def test_sequence_increases_per_forward(self):
        async def scenario():
            session = _session()
            start = session.sequence
            session.update_query("a")
            await asyncio.sleep(0.01)
            session.update_query("ab")
            await asyncio.sleep(0.01)
            await session.drain()
            return session.sequence - start

        assert asyncio.run(scenario()) == 2

    def test_provider_failure_clears_and_reports(self):
        async def scenario():
            session = _session(suggestions=EchoSuggestions(error=RuntimeError("offline")))
            session.update_query("piz")
            await asyncio.sleep(0.01)
            await session.drain()
            return session

        session = asyncio.run(scenario())
        assert session.suggestions == []
        assert isinstance(session.last_error, SuggestionFailed)
        assert "offline" in session.last_error.status_message
        assert session.state == SearchState.FAILED

    def test_same_text_retried_after_failure(self):
        provider = EchoSuggestions(error=RuntimeError("offline"))

        async def scenario():
            session = _session(suggestions=provider)
            session.update_query("piz")
            await asyncio.sleep(0.01)
            await session.drain()
            provider.error = None
            session.update_query("piz")
            await asyncio.sleep(0.01)
            await session.drain()
            return session

        session = asyncio.run(scenario())
        assert provider.calls == ["piz", "piz"]
        assert [s.title for s in session.suggestions] == ["piz place"]
        assert session.state == SearchState.COMPLETED

    def test_clear_resets_query(self):
        async def scenario():
            session = _session()
            session.update_query("piz")
            await asyncio.sleep(0.01)
            await session.drain()
            session.clear()
            return session

        session = asyncio.run(scenario())
        assert session.query_text == ""
        assert session.suggestions == []


class TestSearch:
    def test_results_replace_and_clear_error(self):
        search = StaticSearch(RuntimeError("boom"), [place("A"), place("B")])
        session = _session(search=search)

        asyncio.run(session.search("x", REGION))
        assert isinstance(session.last_error, SearchFailed)

        pois = asyncio.run(session.search("food", REGION))
        assert [p.name for p in pois] == ["A", "B"]
        assert session.results == pois
        assert session.last_error is None
        assert session.state == SearchState.COMPLETED

    def test_no_results_retains_previous(self):
        """Existing [A], then an empty search: status changes, results stay."""
        search = StaticSearch([place("A")], [])
        session = _session(search=search)
        asyncio.run(session.search("a", REGION))
        first = list(session.results)

        returned = asyncio.run(session.search("zzz", REGION))

        assert returned == []
        assert session.results == first
        assert isinstance(session.last_error, NoResults)
        assert "zzz" in session.last_error.status_message

    def test_failure_retains_previous(self):
        search = StaticSearch([place("A")], RuntimeError("network down"))
        session = _session(search=search)
        asyncio.run(session.search("a", REGION))
        first = list(session.results)

        asyncio.run(session.search("b", REGION))

        assert session.results == first
        assert session.last_error.status_message == "Search failed: network down"
        assert session.state == SearchState.FAILED

    def test_unnamed_places_dropped(self):
        search = StaticSearch([place("A"), place(None), place("")])
        session = _session(search=search)
        pois = asyncio.run(session.search("a", REGION))
        assert [p.name for p in pois] == ["A"]

    def test_only_unnamed_places_count_as_no_results(self):
        session = _session(search=StaticSearch([place(None)]))
        asyncio.run(session.search("ghost", REGION))
        assert isinstance(session.last_error, NoResults)
        assert session.results == []

    def test_concurrent_searches_apply_in_arrival_order(self):
        search = GatedSearch({"first": [place("One")], "second": [place("Two")]})

        async def scenario():
            session = _session(search=search)
            first = asyncio.ensure_future(session.search("first", REGION))
            second = asyncio.ensure_future(session.search("second", REGION))
            await asyncio.sleep(0)
            search.release("second")
            await second
            search.release("first")
            await first
            return session

        session = asyncio.run(scenario())
        assert [p.name for p in session.results] == ["One"]

    def test_change_events(self):
        events = []
        session = _session(search=StaticSearch([place("A")], []), events=events)
        asyncio.run(session.search("a", REGION))
        asyncio.run(session.search("b", REGION))
        assert events == ["results", "status", "status"]
