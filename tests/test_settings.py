"""Tests for per-document settings resolution and invalidation."""

import asyncio

import pytest

from exls.config import DEFAULT_SETTINGS, ExampleSettings
from exls.lsp.settings import SettingsResolutionError, SettingsResolver

URI = "file:///workspace/a.txt"
OTHER_URI = "file:///workspace/b.txt"


class RecordingFetch:
    """Fetch callable that counts requests and can be held open."""

    def __init__(self, payload=None, error: Exception | None = None):
        self.payload = payload if payload is not None else {"maxNumberOfProblems": 5}
        self.error = error
        self.calls: list[str] = []
        self.release: asyncio.Event | None = None

    async def __call__(self, uri: str):
        self.calls.append(uri)
        if self.release is not None:
            await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.payload


def test_global_settings_when_not_scoped():
    fetch = RecordingFetch()
    resolver = SettingsResolver(fetch, scoped=False)

    settings = asyncio.run(resolver.resolve(URI))

    assert settings == DEFAULT_SETTINGS
    assert fetch.calls == []


def test_scoped_resolve_fetches_once_and_caches():
    fetch = RecordingFetch({"maxNumberOfProblems": 7})
    resolver = SettingsResolver(fetch, scoped=True)

    async def scenario():
        first = await resolver.resolve(URI)
        second = await resolver.resolve(URI)
        return first, second

    first, second = asyncio.run(scenario())

    assert first == second == ExampleSettings(max_number_of_problems=7)
    assert fetch.calls == [URI]
    assert URI in resolver


def test_concurrent_resolves_share_one_request():
    fetch = RecordingFetch({"maxNumberOfProblems": 3})
    resolver = SettingsResolver(fetch, scoped=True)

    async def scenario():
        fetch.release = asyncio.Event()
        first = asyncio.ensure_future(resolver.resolve(URI))
        second = asyncio.ensure_future(resolver.resolve(URI))
        # Let both callers reach the cache and the fetch start
        for _ in range(3):
            await asyncio.sleep(0)
        assert fetch.calls == [URI]
        fetch.release.set()
        return await asyncio.gather(first, second)

    results = asyncio.run(scenario())

    assert results == [ExampleSettings(max_number_of_problems=3)] * 2
    assert fetch.calls == [URI]


def test_cancelled_caller_does_not_cancel_shared_fetch():
    fetch = RecordingFetch()
    resolver = SettingsResolver(fetch, scoped=True)

    async def scenario():
        fetch.release = asyncio.Event()
        impatient = asyncio.ensure_future(resolver.resolve(URI))
        patient = asyncio.ensure_future(resolver.resolve(URI))
        await asyncio.sleep(0)
        impatient.cancel()
        await asyncio.sleep(0)
        fetch.release.set()
        return await patient

    assert asyncio.run(scenario()) == ExampleSettings(max_number_of_problems=5)
    assert fetch.calls == [URI]


def test_configuration_change_forces_fresh_fetch():
    fetch = RecordingFetch()
    resolver = SettingsResolver(fetch, scoped=True)

    async def scenario():
        await resolver.resolve(URI)
        await resolver.resolve(OTHER_URI)
        resolver.configuration_changed({"languageServerExample": {"maxNumberOfProblems": 1}})
        assert len(resolver) == 0
        fetch.payload = {"maxNumberOfProblems": 9}
        return await resolver.resolve(URI)

    assert asyncio.run(scenario()) == ExampleSettings(max_number_of_problems=9)
    assert fetch.calls == [URI, OTHER_URI, URI]


def test_invalidate_drops_only_that_document():
    fetch = RecordingFetch()
    resolver = SettingsResolver(fetch, scoped=True)

    async def scenario():
        await resolver.resolve(URI)
        await resolver.resolve(OTHER_URI)
        resolver.invalidate(URI)
        assert URI not in resolver
        assert OTHER_URI in resolver
        await resolver.resolve(URI)
        await resolver.resolve(OTHER_URI)

    asyncio.run(scenario())
    assert fetch.calls == [URI, OTHER_URI, URI]


def test_global_configuration_change_replaces_settings():
    resolver = SettingsResolver(RecordingFetch(), scoped=False)

    resolver.configuration_changed({"languageServerExample": {"maxNumberOfProblems": 2}})
    assert asyncio.run(resolver.resolve(URI)) == ExampleSettings(max_number_of_problems=2)

    # Section absent: back to the defaults
    resolver.configuration_changed({"somethingElse": {}})
    assert asyncio.run(resolver.resolve(URI)) == DEFAULT_SETTINGS

    resolver.configuration_changed(None)
    assert asyncio.run(resolver.resolve(URI)) == DEFAULT_SETTINGS


def test_configured_fallback_is_restored_when_section_missing():
    fallback = ExampleSettings(max_number_of_problems=50)
    resolver = SettingsResolver(RecordingFetch(), scoped=False, global_settings=fallback)

    resolver.configuration_changed({"languageServerExample": {"maxNumberOfProblems": 2}})
    resolver.configuration_changed({})

    assert resolver.global_settings == fallback


def test_fetch_failure_surfaces_as_resolution_error():
    fetch = RecordingFetch(error=ConnectionError("transport closed"))
    resolver = SettingsResolver(fetch, scoped=True)

    with pytest.raises(SettingsResolutionError) as exc_info:
        asyncio.run(resolver.resolve(URI))

    assert exc_info.value.uri == URI
    assert "transport closed" in str(exc_info.value)


def test_null_configuration_uses_defaults():
    fetch = RecordingFetch()
    fetch.payload = None
    resolver = SettingsResolver(fetch, scoped=True)

    assert asyncio.run(resolver.resolve(URI)) == DEFAULT_SETTINGS
